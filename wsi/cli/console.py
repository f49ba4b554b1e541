"""Rich-rendered output for ``wsi`` commands.

Commands never print directly; they go through ``get_console()`` so styling
stays consistent and tests can swap the instance.
"""

from typing import Any

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from wsi.domain.catalog.model.url_item import UrlItem
from wsi.domain.pipeline.model.value import PipelineRun, RunOutcome

_THEME = Theme(
    {
        "ok": "green",
        "bad": "red",
        "warn": "yellow",
        "note": "dim",
        "label": "cyan",
    }
)

_OUTCOME_STYLE = {
    RunOutcome.COMPLETED: "ok",
    RunOutcome.ABORTED: "bad",
    RunOutcome.SKIPPED_ALREADY_RUNNING: "warn",
    RunOutcome.SKIPPED_DISABLED: "warn",
}

class Console:
    def __init__(self, *, force_terminal: bool | None = None) -> None:
        self._out = RichConsole(theme=_THEME, force_terminal=force_terminal)
        self._err = RichConsole(theme=_THEME, force_terminal=force_terminal, stderr=True)

    def success(self, message: str) -> None:
        self._out.print(f"[ok]✓[/ok] {message}")

    def warning(self, message: str) -> None:
        self._out.print(f"[warn]![/warn] {message}")

    def info(self, message: str) -> None:
        self._out.print(message, style="note")

    def error(self, message: str, *, hint: str | None = None) -> None:
        """Errors go to stderr, with an optional hint on the next line."""
        self._err.print(f"[bad]✗[/bad] {message}")
        if hint:
            self._err.print(f"  {hint}", style="note")

    def status(self, message: str):
        """Spinner context manager for slow, blocking steps."""
        return self._out.status(message)

    def table(
        self,
        rows: list[dict[str, Any]],
        columns: list[tuple[str, str]],
        *,
        title: str | None = None,
    ) -> None:
        """Render ``rows`` with ``columns`` given as ``(row key, header)`` pairs."""
        table = Table(title=title, header_style="bold")
        for _, header in columns:
            table.add_column(header)
        for row in rows:
            table.add_row(*(str(row.get(key, "")) for key, _ in columns))
        self._out.print(table)

    def run_summary(self, run: PipelineRun) -> None:
        style = _OUTCOME_STYLE.get(run.outcome, "note") if run.outcome else "note"
        lines = [
            f"[label]Outcome:[/label] [{style}]{run.outcome}[/{style}]",
            f"[label]Started:[/label] {run.started_at:%Y-%m-%d %H:%M:%S %Z}",
        ]
        if run.ended_at:
            seconds = (run.ended_at - run.started_at).total_seconds()
            lines.append(f"[label]Duration:[/label] {seconds:.1f}s")
        counts = {
            "Requeued": run.requeued,
            "Verified": run.verified,
            "Submitted": run.submitted,
            "Failed": run.failed,
            "Retried": run.retried,
        }
        lines.append("    ".join(f"[label]{k}:[/label] {v}" for k, v in counts.items()))
        if run.submission and run.submission.deferred:
            lines.append(f"[label]Deferred (quota):[/label] {run.submission.deferred}")
        if run.failed_stage:
            lines.append(f"[bad]Stopped in {run.failed_stage}:[/bad] {run.error}")

        self._out.print(
            Panel("\n".join(lines), title=f"Pipeline run {run.id}", border_style=style)
        )

    def url_detail(self, item: UrlItem) -> None:
        """Status panel for one URL followed by its transition history."""
        lines = [
            f"[label]Status:[/label] {item.status}    "
            f"[label]Attempts:[/label] {item.attempt_count}",
            f"[label]Type:[/label] {item.type}    "
            f"[label]Priority:[/label] {item.priority.name.lower()}",
        ]
        if item.service_account_id:
            lines.append(f"[label]Account:[/label] {item.service_account_id}")
        if item.retry_not_before:
            lines.append(
                f"[label]Retry after:[/label] {item.retry_not_before:%Y-%m-%d %H:%M:%S %Z}"
            )
        if item.last_error:
            lines.append(f"[label]Last error:[/label] {item.last_error}")
        self._out.print(
            Panel(
                "\n".join(lines),
                title=f"[bold]{item.url}[/bold]",
                subtitle=f"[note]{item.id}[/note]",
            )
        )

        self.table(
            [
                {
                    "at": f"{record.at:%Y-%m-%d %H:%M:%S}",
                    "change": f"{record.from_status} → {record.to_status}",
                    "reason": record.reason or "",
                    "delay": record.retry_delay or "",
                }
                for record in item.history
            ],
            [
                ("at", "At"),
                ("change", "Transition"),
                ("reason", "Reason"),
                ("delay", "Retry delay"),
            ],
            title="History",
        )


_console: Console | None = None

def get_console() -> Console:
    global _console
    if _console is None:
        _console = Console()
    return _console
