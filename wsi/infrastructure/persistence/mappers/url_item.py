from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from wsi.domain.catalog.model.url_item import UrlItem
from wsi.domain.catalog.model.value import (
    FailureCategory,
    ServiceAccountId,
    TransitionRecord,
    UrlItemId,
    UrlItemPriority,
    UrlItemStatus,
    UrlItemType,
)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything is stored in UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def row_to_transition(row: dict[str, Any]) -> TransitionRecord:
    delay = row.get("retry_delay_seconds")
    category = row.get("category")
    return TransitionRecord(
        from_status=UrlItemStatus(row["from_status"]),
        to_status=UrlItemStatus(row["to_status"]),
        at=as_utc(row["at"]),
        reason=row.get("reason"),
        category=FailureCategory(category) if category else None,
        retry_delay=timedelta(seconds=delay) if delay is not None else None,
    )


def transition_to_dict(item_id: UrlItemId, seq: int, record: TransitionRecord) -> dict[str, Any]:
    return {
        "url_item_id": str(item_id),
        "seq": seq,
        "from_status": str(record.from_status),
        "to_status": str(record.to_status),
        "at": as_utc(record.at),
        "reason": record.reason,
        "category": str(record.category) if record.category else None,
        "retry_delay_seconds": (
            int(record.retry_delay.total_seconds()) if record.retry_delay is not None else None
        ),
    }


def row_to_url_item(
    row: dict[str, Any], history: list[TransitionRecord] | None = None
) -> UrlItem:
    account_id = row.get("service_account_id")
    category = row.get("failure_category")
    return UrlItem(
        id=UrlItemId(UUID(row["id"])),
        url=row["url"],
        type=UrlItemType(row["type"]),
        priority=UrlItemPriority(row["priority"]),
        status=UrlItemStatus(row["status"]),
        service_account_id=ServiceAccountId(UUID(account_id)) if account_id else None,
        attempt_count=row["attempt_count"],
        last_error=row.get("last_error"),
        last_status_code=row.get("last_status_code"),
        failure_category=FailureCategory(category) if category else None,
        submit_failed=bool(row.get("submit_failed")),
        verification_attempts=row.get("verification_attempts") or 0,
        retry_not_before=as_utc(row.get("retry_not_before")),
        created_at=as_utc(row["created_at"]),
        last_transition_at=as_utc(row["last_transition_at"]),
        history=history or [],
    )


def url_item_to_dict(item: UrlItem) -> dict[str, Any]:
    """Row values for the item itself; history is stored separately."""
    return {
        "id": str(item.id),
        "url": item.url,
        "type": str(item.type),
        "priority": int(item.priority),
        "status": str(item.status),
        "service_account_id": str(item.service_account_id) if item.service_account_id else None,
        "attempt_count": item.attempt_count,
        "last_error": item.last_error,
        "last_status_code": item.last_status_code,
        "failure_category": str(item.failure_category) if item.failure_category else None,
        "submit_failed": item.submit_failed,
        "verification_attempts": item.verification_attempts,
        "retry_not_before": as_utc(item.retry_not_before),
        "created_at": as_utc(item.created_at),
        "last_transition_at": as_utc(item.last_transition_at),
    }
