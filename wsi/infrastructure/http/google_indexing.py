"""Google Indexing API adapter for the IndexingApiClient port."""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import httpx
import jwt
import logfire

from wsi.config import IndexingApiConfig
from wsi.domain.catalog.model.service_account import ServiceAccount
from wsi.domain.catalog.model.value import FailureCategory, ServiceAccountId
from wsi.domain.shared.error import ConfigurationError, ExternalServiceError
from wsi.domain.submission.port.indexing_api import (
    IndexingApiClient,
    NotificationType,
    OutcomeReport,
    SubmissionReceipt,
)

logger = logging.getLogger(__name__)

_JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
_DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
_ASSERTION_LIFETIME_SECONDS = 3600
# Refresh tokens this long before they expire
_EXPIRY_MARGIN_SECONDS = 60


@dataclass
class _CachedToken:
    value: str
    expires_at: float


class GoogleIndexingApiClient(IndexingApiClient):
    """Publishes URL notifications and reads their metadata.

    ``ServiceAccount.credential_ref`` is the path to a Google service-account
    JSON key. Access tokens are minted with a signed JWT bearer assertion and
    cached per account until shortly before they expire.

    Remote failures are returned as receipts and reports, never raised. A
    credential that cannot be read or is rejected is reported as a permanent
    failure. Every remote call, token exchange included, is bounded by
    ``timeout_seconds`` from start to last byte.
    """

    def __init__(self, client: httpx.AsyncClient, config: IndexingApiConfig) -> None:
        self._client = client
        self._config = config
        self._tokens: dict[ServiceAccountId, _CachedToken] = {}

    async def publish(
        self, account: ServiceAccount, url: str, notification: NotificationType
    ) -> SubmissionReceipt:
        try:
            headers = await self._auth_headers(account)
        except ConfigurationError as e:
            return SubmissionReceipt(
                accepted=False, error=e.message, category=FailureCategory.PERMANENT
            )
        except ExternalServiceError as e:
            return SubmissionReceipt(accepted=False, error=e.message)

        endpoint = f"{self._config.base_url}/v3/urlNotifications:publish"
        try:
            async with asyncio.timeout(self._config.timeout_seconds):
                response = await self._client.post(
                    endpoint,
                    json={"url": url, "type": str(notification)},
                    headers=headers,
                    timeout=self._config.timeout_seconds,
                )
        except (TimeoutError, httpx.TimeoutException):
            return SubmissionReceipt(
                accepted=False, error=f"timed out after {self._config.timeout_seconds}s"
            )
        except httpx.RequestError as e:
            return SubmissionReceipt(accepted=False, error=f"request failed: {e}")

        if response.is_success:
            return SubmissionReceipt(accepted=True, status_code=response.status_code)

        error = _error_text(response)
        logfire.warn(
            "Indexing API publish rejected",
            url=url,
            account_id=str(account.id),
            status_code=response.status_code,
            error=error,
        )
        if response.status_code == 401:
            self._tokens.pop(account.id, None)
        return SubmissionReceipt(accepted=False, status_code=response.status_code, error=error)

    async def get_outcome(
        self, account: ServiceAccount, url: str, notification: NotificationType
    ) -> OutcomeReport:
        try:
            headers = await self._auth_headers(account)
        except (ConfigurationError, ExternalServiceError) as e:
            return OutcomeReport(processed=False, error=e.message)

        endpoint = f"{self._config.base_url}/v3/urlNotifications/metadata"
        try:
            async with asyncio.timeout(self._config.timeout_seconds):
                response = await self._client.get(
                    endpoint,
                    params={"url": url},
                    headers=headers,
                    timeout=self._config.timeout_seconds,
                )
        except (TimeoutError, httpx.TimeoutException):
            return OutcomeReport(
                processed=False, error=f"timed out after {self._config.timeout_seconds}s"
            )
        except httpx.RequestError as e:
            return OutcomeReport(processed=False, error=f"request failed: {e}")

        if response.status_code == 404:
            # No notification on record for this URL; neither success nor a rejection.
            return OutcomeReport(processed=None, error="no notification metadata recorded")

        if not response.is_success:
            return OutcomeReport(
                processed=False, status_code=response.status_code, error=_error_text(response)
            )

        key = "latestRemove" if notification == NotificationType.URL_DELETED else "latestUpdate"
        latest = response.json().get(key) or {}
        notify_time = latest.get("notifyTime")
        if not notify_time:
            return OutcomeReport(processed=None, status_code=response.status_code)

        return OutcomeReport(
            processed=True,
            status_code=response.status_code,
            notify_time=_parse_time(notify_time),
        )

    async def _auth_headers(self, account: ServiceAccount) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self._access_token(account)}"}

    async def _access_token(self, account: ServiceAccount) -> str:
        cached = self._tokens.get(account.id)
        if cached is not None and cached.expires_at - _EXPIRY_MARGIN_SECONDS > time.time():
            return cached.value

        key = _load_credential(account.credential_ref)
        token_uri = key.get("token_uri", _DEFAULT_TOKEN_URI)
        assertion = self._sign_assertion(key, token_uri)

        try:
            async with asyncio.timeout(self._config.timeout_seconds):
                response = await self._client.post(
                    token_uri,
                    data={"grant_type": _JWT_BEARER_GRANT, "assertion": assertion},
                    timeout=self._config.timeout_seconds,
                )
        except TimeoutError as e:
            raise ExternalServiceError(
                f"Token request timed out after {self._config.timeout_seconds}s",
                code="token_unavailable",
            ) from e
        except httpx.RequestError as e:
            raise ExternalServiceError(
                f"Token request failed: {e}", code="token_unavailable"
            ) from e

        if response.status_code in (400, 401, 403):
            raise ConfigurationError(
                f"Credential rejected for account {account.id}: {_error_text(response)}",
                code="credential_rejected",
            )
        if not response.is_success:
            raise ExternalServiceError(
                f"Token endpoint returned {response.status_code}", code="token_unavailable"
            )

        data = response.json()
        token = _CachedToken(
            value=data["access_token"],
            expires_at=time.time() + int(data.get("expires_in", _ASSERTION_LIFETIME_SECONDS)),
        )
        self._tokens[account.id] = token
        logger.debug(f"Minted access token for account {account.id}")
        return token.value

    def _sign_assertion(self, key: dict, token_uri: str) -> str:
        now = int(time.time())
        claims = {
            "iss": key["client_email"],
            "scope": self._config.scope,
            "aud": token_uri,
            "iat": now,
            "exp": now + _ASSERTION_LIFETIME_SECONDS,
        }
        try:
            return jwt.encode(
                claims,
                key["private_key"],
                algorithm="RS256",
                headers={"kid": key.get("private_key_id", "")},
            )
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            raise ConfigurationError(f"Cannot sign with credential key: {e}") from e


def _load_credential(credential_ref: str) -> dict:
    path = Path(credential_ref).expanduser()
    try:
        key = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read credential {path}: {e}") from e
    missing = [f for f in ("client_email", "private_key") if not key.get(f)]
    if missing:
        raise ConfigurationError(f"Credential {path} is missing {', '.join(missing)}")
    return key


def _error_text(response: httpx.Response) -> str:
    """``STATUS: message`` from a Google error body, or the raw status line."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        status = error.get("status")
        message = error.get("message", "")
        return f"{status}: {message}" if status else message or f"HTTP {response.status_code}"
    if isinstance(error, str):
        # OAuth token endpoint errors
        return f"{error}: {body.get('error_description', '')}".rstrip(": ")
    return f"HTTP {response.status_code}"


def _parse_time(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
