"""AccountService - registers and retires service accounts."""

import logging
from uuid import uuid4

from wsi.domain.catalog.model.service_account import ServiceAccount
from wsi.domain.catalog.model.value import ServiceAccountId
from wsi.domain.catalog.port.service_account_repository import ServiceAccountRepository
from wsi.domain.shared.error import NotFoundError, ValidationError
from wsi.domain.shared.port.clock import Clock
from wsi.domain.shared.service import Service

logger = logging.getLogger(__name__)


class AccountService(Service):
    accounts: ServiceAccountRepository
    clock: Clock

    async def register(
        self, project_id: str, credential_ref: str, quota_limit_per_day: int
    ) -> ServiceAccount:
        if quota_limit_per_day < 0:
            raise ValidationError("quota must not be negative", field="quota_limit_per_day")
        if not project_id:
            raise ValidationError("project_id is required", field="project_id")

        account = ServiceAccount(
            id=ServiceAccountId(uuid4()),
            project_id=project_id,
            credential_ref=credential_ref,
            quota_limit_per_day=quota_limit_per_day,
            created_at=self.clock.now(),
        )
        await self.accounts.add(account)
        logger.info(f"Registered service account {account.id} for project {project_id}")
        return account

    async def list_active(self) -> list[ServiceAccount]:
        return await self.accounts.list_active()

    async def delete(self, id: ServiceAccountId) -> None:
        """Soft-delete; historical quota usage is kept."""
        account = await self.accounts.get(id)
        if account is None:
            raise NotFoundError(f"Service account not found: {id}")
        account.mark_deleted(self.clock.now())
        await self.accounts.save(account)
        logger.info(f"Deleted service account {id}")

    async def update_quota(self, id: ServiceAccountId, quota_limit_per_day: int) -> ServiceAccount:
        """Change the daily limit. Usage already recorded today is kept."""
        account = await self.accounts.get(id)
        if account is None or account.is_deleted:
            raise NotFoundError(f"Service account not found: {id}")
        previous = account.quota_limit_per_day
        account.update_quota(quota_limit_per_day)
        await self.accounts.save(account)
        logger.info(
            f"Quota of service account {id} changed from {previous} to {quota_limit_per_day}"
        )
        return account
