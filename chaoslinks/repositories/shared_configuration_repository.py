# chaoslinks/repositories/shared_configuration_repository.py
# Repository for share link persistence

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chaoslinks.constants import SHORT_CODE_CONSTRAINT
from chaoslinks.db.base import get_session, serializable_transaction
from chaoslinks.middleware.error_handler import NotFoundError
from chaoslinks.models.profiles_table import profiles
from chaoslinks.models.shared_configuration_table import shared_configurations
from chaoslinks.utils.retry import retry_with_backoff, with_timeout

T = TypeVar("T")

UNIQUE_VIOLATION = "23505"
# serialization_failure, deadlock_detected
SERIALIZATION_SQLSTATES = {"40001", "40P01"}


class ShortCodeCollision(Exception):
    """Insert rejected because another row already holds the short code."""

    def __init__(self, short_code: str):
        super().__init__(f"short code already in use: {short_code}")
        self.short_code = short_code


class SerializationFailure(Exception):
    """The store aborted the transaction to keep it serializable; safe to rerun."""


@dataclass(frozen=True)
class SharedConfiguration:
    id: str
    short_code: str
    user_id: str
    username: Optional[str]
    map_type: str
    parameters: dict[str, Any]
    view_count: int
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SharedConfiguration":
        return cls(
            id=str(row["id"]),
            short_code=row["short_code"],
            user_id=str(row["user_id"]),
            username=row["username"],
            map_type=row["map_type"],
            parameters=row["parameters"],
            view_count=row["view_count"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    # SQLAlchemy's asyncpg adapter copies the server's SQLSTATE onto the DBAPI error
    return getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)


def _is_short_code_violation(exc: IntegrityError) -> bool:
    if _sqlstate(exc) != UNIQUE_VIOLATION:
        return False
    # asyncpg's original exception carries the constraint name
    constraint = getattr(getattr(exc.orig, "__cause__", None), "constraint_name", None)
    if constraint is not None:
        return constraint == SHORT_CODE_CONSTRAINT
    return SHORT_CODE_CONSTRAINT in str(exc.orig)


class SharedConfigurationScope:
    """Store operations bound to one open transaction."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_recent_for_owner(self, owner_id: str, since: datetime) -> list[SharedConfiguration]:
        """Shares created by owner_id at or after since, oldest first."""
        result = await self._session.execute(
            select(shared_configurations)
            .where(
                shared_configurations.c.user_id == owner_id,
                shared_configurations.c.created_at >= since,
            )
            .order_by(shared_configurations.c.created_at.asc())
        )
        return [SharedConfiguration.from_row(r) for r in result.mappings().all()]

    async def get_username(self, owner_id: str) -> Optional[str]:
        result = await self._session.execute(
            select(profiles.c.username).where(profiles.c.id == owner_id)
        )
        return result.scalar_one_or_none()

    async def insert(
        self,
        *,
        short_code: str,
        owner_id: str,
        username: Optional[str],
        map_type: str,
        parameters: dict[str, Any],
        created_at: datetime,
        expires_at: datetime,
    ) -> SharedConfiguration:
        """Insert a share row.

        Runs inside a savepoint so a short-code collision leaves the outer
        transaction usable. Raises ShortCodeCollision for that case only.
        """
        try:
            async with self._session.begin_nested():
                result = await self._session.execute(
                    insert(shared_configurations)
                    .values(
                        short_code=short_code,
                        user_id=owner_id,
                        username=username,
                        map_type=map_type,
                        parameters=parameters,
                        created_at=created_at,
                        expires_at=expires_at,
                    )
                    .returning(*shared_configurations.c)
                )
                row = result.mappings().one()
        except IntegrityError as e:
            if _is_short_code_violation(e):
                raise ShortCodeCollision(short_code) from e
            raise
        return SharedConfiguration.from_row(row)


class SharedConfigurationRepository:
    """Repository for shared configuration persistence."""

    def __init__(self, max_transaction_retries: int = 3, transaction_timeout: float = 10.0):
        self._max_transaction_retries = max_transaction_retries
        self._transaction_timeout = transaction_timeout

    async def transaction(
        self,
        work: Callable[[SharedConfigurationScope], Awaitable[T]],
        lock_key: Optional[str] = None,
    ) -> T:
        """Run work atomically at SERIALIZABLE isolation and return its result.

        Nothing work writes is visible unless it returns normally. A
        serialization failure reruns work from scratch in a new transaction.
        Transactions with the same lock_key never overlap.

        The timeout bounds all attempts together; on expiry the running
        attempt is cancelled and rolled back, then asyncio.TimeoutError is raised.
        """
        @with_timeout(self._transaction_timeout)
        @retry_with_backoff(
            max_retries=self._max_transaction_retries,
            exceptions=(SerializationFailure,),
        )
        async def run_once() -> T:
            try:
                async with serializable_transaction(lock_key) as session:
                    return await work(SharedConfigurationScope(session))
            except DBAPIError as e:
                if _sqlstate(e) in SERIALIZATION_SQLSTATES:
                    raise SerializationFailure(str(e.orig)) from e
                raise

        return await run_once()

    async def code_in_use(self, short_code: str, now: datetime) -> bool:
        """True if a non-expired share already holds short_code."""
        async with get_session() as session:
            result = await session.execute(
                select(shared_configurations.c.id)
                .where(
                    shared_configurations.c.short_code == short_code,
                    shared_configurations.c.expires_at > now,
                )
                .limit(1)
            )
            return result.first() is not None

    async def get_by_code(self, short_code: str) -> Optional[SharedConfiguration]:
        async with get_session() as session:
            result = await session.execute(
                select(shared_configurations).where(shared_configurations.c.short_code == short_code)
            )
            row = result.mappings().first()
            return SharedConfiguration.from_row(row) if row else None

    async def delete(self, share_id: str) -> bool:
        async with get_session() as session:
            result = await session.execute(
                delete(shared_configurations).where(shared_configurations.c.id == share_id)
            )
            await session.commit()
            return result.rowcount > 0

    async def increment_view_count(self, share_id: str) -> None:
        """Atomic view_count + 1; concurrent viewers never lose increments."""
        async with get_session() as session:
            result = await session.execute(
                update(shared_configurations)
                .where(shared_configurations.c.id == share_id)
                .values(view_count=shared_configurations.c.view_count + 1)
            )
            await session.commit()
            if result.rowcount == 0:
                raise NotFoundError("Shared configuration not found", details={"id": share_id})

    async def delete_expired(self, now: datetime) -> int:
        """Remove every share past its expiry. Used by the periodic purge job."""
        async with get_session() as session:
            result = await session.execute(
                delete(shared_configurations).where(shared_configurations.c.expires_at < now)
            )
            await session.commit()
            return result.rowcount
