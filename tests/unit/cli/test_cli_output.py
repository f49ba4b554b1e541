"""CLI output helpers and the manual-run signal handler."""

from datetime import timedelta
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from tests.fakes import NOON
from wsi.cli import console as console_module
from wsi.cli.commands.pipeline import _queue_manual_run
from wsi.cli.console import Console
from wsi.domain.pipeline.model.value import PipelineRun, RunOutcome
from wsi.domain.shared.error import RunQueueFullError
from wsi.infrastructure.pipeline.worker import PipelineHost, PipelineWorker


@pytest.fixture
def console(monkeypatch: pytest.MonkeyPatch) -> Console:
    console = Console(force_terminal=False)
    monkeypatch.setattr(console_module, "_console", console)
    return console


class TestRunSummary:
    def test_prints_outcome_and_counts(self, console, capsys):
        run = PipelineRun(started_at=NOON, requeued=3)
        run.finish(RunOutcome.COMPLETED, NOON + timedelta(seconds=12))

        console.run_summary(run)

        out = capsys.readouterr().out
        assert "completed" in out
        assert "12.0s" in out
        assert "Requeued: 3" in out

    def test_prints_failed_stage(self, console, capsys):
        run = PipelineRun(started_at=NOON, failed_stage="submit", error="database is locked")
        run.finish(RunOutcome.ABORTED, NOON)

        console.run_summary(run)

        assert "Stopped in submit: database is locked" in capsys.readouterr().out


class TestQueueManualRun:
    def test_queued_run_is_reported(self, console, capsys):
        # Arrange
        ticket = MagicMock()
        ticket.id = uuid4()
        host = MagicMock(spec=PipelineHost)
        host.worker = MagicMock(spec=PipelineWorker)
        host.worker.request_run.return_value = ticket

        # Act
        _queue_manual_run(host)

        # Assert
        host.worker.request_run.assert_called_once_with(force=True)
        assert f"Queued manual run {ticket.id}" in capsys.readouterr().out

    def test_full_queue_is_a_warning(self, console, capsys):
        host = MagicMock(spec=PipelineHost)
        host.worker = MagicMock(spec=PipelineWorker)
        host.worker.request_run.side_effect = RunQueueFullError(8)

        _queue_manual_run(host)

        assert "Run queue is full" in capsys.readouterr().out
