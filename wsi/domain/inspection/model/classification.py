"""Reading submission and outcome responses into failure categories."""

from wsi.domain.catalog.model.value import FailureCategory
from wsi.domain.inspection.model.value import Classification

_RATE_LIMIT_MARKERS = (
    "rate limit",
    "ratelimit",
    "quota",
    "resource_exhausted",
    "too many requests",
)


def _mentions_rate_limit(error: str | None) -> bool:
    if not error:
        return False
    lowered = error.lower()
    return any(marker in lowered for marker in _RATE_LIMIT_MARKERS)


def classify_outcome(
    processed: bool | None,
    status_code: int | None = None,
    error: str | None = None,
) -> Classification:
    """Classify an outcome.

    Never returns PERMANENT for a response it cannot read; those err toward
    retry and are flagged ambiguous.
    """
    if processed:
        return Classification(category=None, reason="processed")

    if status_code == 429 or _mentions_rate_limit(error):
        return Classification(
            category=FailureCategory.RATE_LIMITED,
            reason=error or f"HTTP {status_code}",
        )

    if status_code is None:
        if error:
            # No response at all: network error or timeout.
            return Classification(category=FailureCategory.TRANSIENT, reason=error)
        return Classification(
            category=FailureCategory.TRANSIENT, reason="unknown outcome", ambiguous=True
        )

    if status_code >= 500 or status_code == 408:
        return Classification(
            category=FailureCategory.TRANSIENT, reason=error or f"HTTP {status_code}"
        )

    if 400 <= status_code < 500:
        return Classification(
            category=FailureCategory.PERMANENT, reason=error or f"HTTP {status_code}"
        )

    return Classification(
        category=FailureCategory.TRANSIENT,
        reason=error or f"unrecognised response (HTTP {status_code})",
        ambiguous=True,
    )
