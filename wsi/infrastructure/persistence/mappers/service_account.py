from typing import Any
from uuid import UUID

from wsi.domain.catalog.model.service_account import ServiceAccount
from wsi.domain.catalog.model.value import ServiceAccountId
from wsi.infrastructure.persistence.mappers.url_item import as_utc


def row_to_service_account(row: dict[str, Any]) -> ServiceAccount:
    return ServiceAccount(
        id=ServiceAccountId(UUID(row["id"])),
        project_id=row["project_id"],
        credential_ref=row["credential_ref"],
        quota_limit_per_day=row["quota_limit_per_day"],
        quota_used_in_period=row["quota_used_in_period"],
        quota_period_start=as_utc(row.get("quota_period_start")),
        created_at=as_utc(row["created_at"]),
        deleted_at=as_utc(row.get("deleted_at")),
    )


def service_account_to_dict(account: ServiceAccount) -> dict[str, Any]:
    return {
        "id": str(account.id),
        "project_id": account.project_id,
        "credential_ref": account.credential_ref,
        "quota_limit_per_day": account.quota_limit_per_day,
        "quota_used_in_period": account.quota_used_in_period,
        "quota_period_start": as_utc(account.quota_period_start),
        "created_at": as_utc(account.created_at),
        "deleted_at": as_utc(account.deleted_at),
    }
