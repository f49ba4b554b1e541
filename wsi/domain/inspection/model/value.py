from datetime import timedelta

from wsi.domain.catalog.model.value import FailureCategory
from wsi.domain.shared.model.value import ValueObject


class Classification(ValueObject):
    """How an inspected outcome was read.

    ``category`` is None for a processed URL. ``ambiguous`` marks a response
    that could not be read either way; it is treated as transient with one
    extra backoff step.
    """

    category: FailureCategory | None
    reason: str
    ambiguous: bool = False

    @property
    def succeeded(self) -> bool:
        return self.category is None


class RetryRecommendation(ValueObject):
    """Advisory output of inspection, consumed immediately."""

    should_retry: bool
    delay: timedelta = timedelta(0)
    reason: FailureCategory
    detail: str | None = None
