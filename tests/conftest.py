"""Global test fixtures."""

import os

import pytest

from tests.fakes import FakeClock, InMemoryServiceAccountRepository, InMemoryUrlRepository
from wsi.domain.quota.model.period import QuotaPeriod

# A developer's config file must not leak into tests that build Config()
os.environ.pop("WSI_CONFIG_FILE", None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def period() -> QuotaPeriod:
    return QuotaPeriod.for_timezone("UTC")


@pytest.fixture
def urls() -> InMemoryUrlRepository:
    return InMemoryUrlRepository()


@pytest.fixture
def accounts() -> InMemoryServiceAccountRepository:
    return InMemoryServiceAccountRepository()
