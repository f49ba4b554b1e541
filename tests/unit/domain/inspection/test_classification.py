"""Unit tests for outcome classification."""

import pytest

from wsi.domain.catalog.model.value import FailureCategory
from wsi.domain.inspection.model.classification import classify_outcome


class TestClassifyOutcome:
    def test_processed_is_success(self):
        result = classify_outcome(True, 200)

        assert result.succeeded
        assert result.category is None

    @pytest.mark.parametrize(
        "status_code,error",
        [
            (429, None),
            (403, "RESOURCE_EXHAUSTED: Quota exceeded for quota metric"),
            (None, "rate limit exceeded"),
        ],
    )
    def test_rate_limits(self, status_code, error):
        """429 and quota rejections wait for the next period, whatever the status."""
        result = classify_outcome(False, status_code, error)

        assert result.category == FailureCategory.RATE_LIMITED

    @pytest.mark.parametrize("status_code", [500, 502, 503, 504, 408])
    def test_server_errors_and_timeouts_are_transient(self, status_code):
        result = classify_outcome(False, status_code)

        assert result.category == FailureCategory.TRANSIENT
        assert not result.ambiguous

    def test_network_error_without_status_is_transient(self):
        result = classify_outcome(False, None, "request failed: connection reset")

        assert result.category == FailureCategory.TRANSIENT
        assert result.reason == "request failed: connection reset"
        assert not result.ambiguous

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404, 410])
    def test_other_client_errors_are_permanent(self, status_code):
        result = classify_outcome(False, status_code, "PERMISSION_DENIED: not an owner")

        assert result.category == FailureCategory.PERMANENT

    def test_unknown_outcome_is_ambiguous_and_never_permanent(self):
        result = classify_outcome(None)

        assert result.category == FailureCategory.TRANSIENT
        assert result.ambiguous

    def test_unrecognised_status_is_ambiguous(self):
        result = classify_outcome(False, 302)

        assert result.category == FailureCategory.TRANSIENT
        assert result.ambiguous
        assert "302" in result.reason
