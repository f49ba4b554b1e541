from datetime import UTC, datetime, timedelta, timezone

from tests.fakes import NOON, make_account, make_url
from wsi.domain.catalog.model.value import FailureCategory, UrlItemStatus
from wsi.infrastructure.persistence.mappers.service_account import (
    row_to_service_account,
    service_account_to_dict,
)
from wsi.infrastructure.persistence.mappers.url_item import (
    as_utc,
    row_to_transition,
    row_to_url_item,
    transition_to_dict,
    url_item_to_dict,
)


class TestAsUtc:
    def test_naive_values_are_read_as_utc(self):
        assert as_utc(datetime(2026, 3, 2, 12, 0)) == NOON
        assert as_utc(datetime(2026, 3, 2, 12, 0)).tzinfo == UTC

    def test_aware_values_are_converted(self):
        local = datetime(2026, 3, 2, 13, 0, tzinfo=timezone(timedelta(hours=1)))

        assert as_utc(local) == NOON
        assert as_utc(local).tzinfo == UTC

    def test_none_passes_through(self):
        assert as_utc(None) is None


class TestUrlItemMappers:
    def test_url_item_mapping(self):
        item = make_url(status=UrlItemStatus.INSPECTING)
        item.schedule_retry(NOON, timedelta(minutes=8), FailureCategory.RATE_LIMITED, "HTTP 429")

        data = url_item_to_dict(item)
        assert data["status"] == "retrying"
        assert data["failure_category"] == "rate_limited"
        assert data["attempt_count"] == 1
        assert data["service_account_id"] is None

        history = [
            row_to_transition(transition_to_dict(item.id, seq, r))
            for seq, r in enumerate(item.history)
        ]
        reconstructed = row_to_url_item(data, history)
        assert reconstructed == item

    def test_transition_delay_is_stored_in_seconds(self):
        item = make_url(status=UrlItemStatus.INSPECTING)
        item.schedule_retry(NOON, timedelta(minutes=2), FailureCategory.TRANSIENT, "HTTP 503")

        row = transition_to_dict(item.id, 0, item.history[0])

        assert row["seq"] == 0
        assert row["retry_delay_seconds"] == 120
        assert row["url_item_id"] == str(item.id)


class TestServiceAccountMappers:
    def test_service_account_mapping(self):
        account = make_account(limit=50, used=7, period_start=NOON.replace(hour=0))

        data = service_account_to_dict(account)
        assert data["id"] == str(account.id)
        assert data["quota_used_in_period"] == 7

        assert row_to_service_account(data) == account
