from dataclasses import dataclass
from datetime import datetime, timedelta

from wsi.domain.catalog.model.value import FailureCategory
from wsi.domain.inspection.model.value import RetryRecommendation
from wsi.domain.quota.model.period import QuotaPeriod

# 2**32 minutes is far past any sensible cap; larger exponents only risk overflow.
_MAX_EXPONENT = 32


@dataclass(frozen=True)
class RetryPolicy:
    """Turns a failure category into a retry recommendation.

    The attempt ceiling is checked last and always wins over a retry.
    """

    period: QuotaPeriod
    base: timedelta = timedelta(minutes=1)
    cap: timedelta = timedelta(hours=24)
    max_attempts: int = 5

    def backoff(self, attempt: int) -> timedelta:
        exponent = min(max(attempt, 0), _MAX_EXPONENT)
        return min(self.base * (2**exponent), self.cap)

    def recommend(
        self,
        category: FailureCategory,
        attempt_count: int,
        now: datetime,
        ambiguous: bool = False,
    ) -> RetryRecommendation:
        if category == FailureCategory.PERMANENT:
            return RetryRecommendation(should_retry=False, reason=category)

        if category == FailureCategory.RATE_LIMITED:
            delay = self.period.time_until_next(now)
        else:
            delay = self.backoff(attempt_count + 1 if ambiguous else attempt_count)

        if attempt_count >= self.max_attempts:
            return RetryRecommendation(
                should_retry=False,
                reason=category,
                detail=f"attempt ceiling of {self.max_attempts} reached",
            )
        return RetryRecommendation(should_retry=True, delay=delay, reason=category)
