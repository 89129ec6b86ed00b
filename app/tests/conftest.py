"""Shared fixtures for the test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from infrastructure.persistence import InMemoryRecordStore
from infrastructure.security import Principal


class FakeClock:
    """Controllable UTC clock. Call it to read the time."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def system_principal():
    return Principal.system()


@pytest.fixture
def admin_principal():
    return Principal(
        is_system=False, user_id="user-1", tenant_id="tenant-a", role="tenant_admin"
    )


@pytest.fixture
def other_tenant_admin():
    return Principal(
        is_system=False, user_id="user-2", tenant_id="tenant-b", role="tenant_admin"
    )
