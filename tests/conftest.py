# tests/conftest.py
# In-memory stand-in for SharedConfigurationRepository.
# Transactions run one at a time under an asyncio.Lock (serializable by
# construction) and buffer their inserts until the unit of work returns.

import asyncio
import dataclasses
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from chaoslinks.config import Settings
from chaoslinks.middleware.error_handler import NotFoundError
from chaoslinks.repositories.shared_configuration_repository import (
    SharedConfiguration,
    ShortCodeCollision,
)


class FakeClock:
    """Controllable replacement for utcnow()."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class _FakeScope:
    def __init__(self, store: "InMemorySharedConfigurationRepository"):
        self._store = store
        self.pending: dict[str, SharedConfiguration] = {}

    def _visible(self):
        return list(self._store.rows.values()) + list(self.pending.values())

    async def list_recent_for_owner(self, owner_id, since):
        # yield so concurrent callers really interleave on the lock
        await asyncio.sleep(0)
        rows = [r for r in self._visible() if r.user_id == owner_id and r.created_at >= since]
        return sorted(rows, key=lambda r: r.created_at)

    async def get_username(self, owner_id):
        return self._store.usernames.get(owner_id)

    async def insert(self, *, short_code, owner_id, username, map_type, parameters, created_at, expires_at):
        if self._store.insert_error is not None:
            raise self._store.insert_error
        if any(r.short_code == short_code for r in self._visible()):
            raise ShortCodeCollision(short_code)
        share = SharedConfiguration(
            id=str(uuid.uuid4()),
            short_code=short_code,
            user_id=owner_id,
            username=username,
            map_type=map_type,
            parameters=parameters,
            view_count=0,
            created_at=created_at,
            expires_at=expires_at,
        )
        self.pending[share.id] = share
        return share


class InMemorySharedConfigurationRepository:
    def __init__(self):
        self.rows: dict[str, SharedConfiguration] = {}
        self.usernames: dict[str, str] = {}
        self.insert_error = None
        self.increment_error = None
        self.transactions = 0
        self.lock_keys = []
        self.transaction_error = None
        self._lock = asyncio.Lock()

    async def transaction(self, work, lock_key=None):
        async with self._lock:
            self.transactions += 1
            self.lock_keys.append(lock_key)
            if self.transaction_error is not None:
                raise self.transaction_error
            scope = _FakeScope(self)
            result = await work(scope)
            # commit only after work returned normally
            self.rows.update(scope.pending)
            return result

    async def code_in_use(self, short_code, now):
        return any(r.short_code == short_code and r.expires_at > now for r in self.rows.values())

    async def get_by_code(self, short_code):
        return next((r for r in self.rows.values() if r.short_code == short_code), None)

    async def delete(self, share_id):
        return self.rows.pop(share_id, None) is not None

    async def increment_view_count(self, share_id):
        if self.increment_error is not None:
            raise self.increment_error
        if share_id not in self.rows:
            raise NotFoundError("Shared configuration not found")
        share = self.rows[share_id]
        self.rows[share_id] = dataclasses.replace(share, view_count=share.view_count + 1)

    async def delete_expired(self, now):
        expired = [k for k, r in self.rows.items() if r.expires_at < now]
        for key in expired:
            del self.rows[key]
        return len(expired)

    # --- test helpers ---

    def seed(self, *, owner_id, short_code, created_at, expires_at=None, map_type="lorenz", view_count=0):
        share = SharedConfiguration(
            id=str(uuid.uuid4()),
            short_code=short_code,
            user_id=owner_id,
            username=self.usernames.get(owner_id),
            map_type=map_type,
            parameters={"sigma": 10, "rho": 28, "beta": 2.667},
            view_count=view_count,
            created_at=created_at,
            expires_at=expires_at or created_at + timedelta(days=7),
        )
        self.rows[share.id] = share
        return share

    def owned_by(self, owner_id):
        return [r for r in self.rows.values() if r.user_id == owner_id]


@pytest.fixture
def repository():
    return InMemorySharedConfigurationRepository()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def share_settings():
    return Settings(
        SHARE_RATE_LIMIT_PER_HOUR=10,
        SHARE_RATE_LIMIT_WINDOW_SECONDS=3600,
        SHARE_RESET_GRACE_SECONDS=1,
        SHARE_CODE_MAX_RETRIES=5,
        SHARE_EXPIRATION_DAYS=7,
    )


@pytest.fixture
def owner_id():
    return str(uuid.uuid4())


@pytest.fixture
def lorenz_params():
    return {"sigma": 10, "rho": 28, "beta": 2.667}
