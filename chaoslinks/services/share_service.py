# chaoslinks/services/share_service.py

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from chaoslinks.config import Settings, settings as default_settings
from chaoslinks.middleware.error_handler import NotFoundError
from chaoslinks.observability import metrics
from chaoslinks.repositories.shared_configuration_repository import (
    SharedConfiguration,
    SharedConfigurationRepository,
    SharedConfigurationScope,
    ShortCodeCollision,
)
from chaoslinks.utils.expiration import calculate_expiration, is_expired, utcnow
from chaoslinks.utils.logger import log_info, log_exception
from chaoslinks.utils.share_codes import generate_short_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShareCreated:
    share: SharedConfiguration
    remaining_quota: int
    accepted: bool = dataclasses.field(default=True, init=False)


@dataclass(frozen=True)
class RateLimited:
    reset_at: datetime
    limit: int
    accepted: bool = dataclasses.field(default=False, init=False)


@dataclass(frozen=True)
class GenerationExhausted:
    """Every generated code collided; transient, the whole call may be retried."""
    attempts: int


@dataclass(frozen=True)
class ShareNotFound:
    short_code: str


@dataclass(frozen=True)
class ShareExpired:
    short_code: str
    expires_at: datetime


CreateShareResult = Union[ShareCreated, RateLimited, GenerationExhausted]
ShareLookupResult = Union[SharedConfiguration, ShareNotFound, ShareExpired]


class ShareService:
    """Issues rate-limited share links and resolves them for public viewers.

    All coordination goes through the repository's transactions; the service
    holds no per-owner state between calls.
    """

    def __init__(
        self,
        repository: SharedConfigurationRepository,
        settings: Optional[Settings] = None,
        code_generator: Callable[[], str] = generate_short_code,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._repo = repository
        self._settings = settings or default_settings
        self._generate_code = code_generator
        self._clock = clock

    @property
    def quota(self) -> int:
        return self._settings.SHARE_RATE_LIMIT_PER_HOUR

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self._settings.SHARE_RATE_LIMIT_WINDOW_SECONDS)

    async def reserve_unique_code(self) -> Union[str, GenerationExhausted]:
        """Generate a code no live share currently uses.

        Check-then-use is racy: the insert in create_share still handles
        collisions. Use this only for a non-authoritative pre-check.
        """
        max_attempts = self._settings.SHARE_CODE_MAX_RETRIES
        now = self._clock()
        for attempt in range(1, max_attempts + 1):
            code = self._generate_code()
            if not await self._repo.code_in_use(code, now):
                return code
            metrics.SHORT_CODE_COLLISIONS.inc()
            logger.warning(f"Short code pre-check collision (attempt {attempt}/{max_attempts})")
        metrics.CODE_GENERATION_EXHAUSTED.inc()
        return GenerationExhausted(attempts=max_attempts)

    async def create_share(
        self,
        owner_id: str,
        map_type: str,
        parameters: dict[str, Any],
        expires_at: Optional[datetime] = None,
        candidate_code: Optional[str] = None,
    ) -> CreateShareResult:
        """Check the owner's sliding-window quota and insert a share, atomically.

        Calls for one owner are serialized by the store; calls for different
        owners run concurrently.

        map_type and parameters are stored as given; validate them first.
        """
        quota = self.quota
        window = self.window
        grace = timedelta(seconds=self._settings.SHARE_RESET_GRACE_SECONDS)
        max_attempts = self._settings.SHARE_CODE_MAX_RETRIES

        if expires_at is not None and expires_at <= self._clock():
            raise ValueError("expires_at must be later than the creation time")

        async def work(scope: SharedConfigurationScope) -> CreateShareResult:
            now = self._clock()
            recent = await scope.list_recent_for_owner(owner_id, now - window)
            if len(recent) >= quota:
                return RateLimited(reset_at=recent[0].created_at + window + grace, limit=quota)

            expiry = expires_at or calculate_expiration(self._settings.SHARE_EXPIRATION_DAYS, now)

            username = await scope.get_username(owner_id)
            code = candidate_code or self._generate_code()
            for attempt in range(1, max_attempts + 1):
                try:
                    share = await scope.insert(
                        short_code=code,
                        owner_id=owner_id,
                        username=username,
                        map_type=map_type,
                        parameters=parameters,
                        created_at=now,
                        expires_at=expiry,
                    )
                except ShortCodeCollision:
                    metrics.SHORT_CODE_COLLISIONS.inc()
                    logger.warning(f"Short code insert collision (attempt {attempt}/{max_attempts})")
                    code = self._generate_code()
                    continue
                return ShareCreated(share=share, remaining_quota=quota - len(recent) - 1)
            return GenerationExhausted(attempts=max_attempts)

        result = await self._repo.transaction(work, lock_key=f"share-quota:{owner_id}")

        if isinstance(result, ShareCreated):
            metrics.SHARES_CREATED.labels(result.share.map_type).inc()
            log_info(
                f"ShareService: created share code={result.share.short_code} owner={owner_id} "
                f"remaining={result.remaining_quota}"
            )
        elif isinstance(result, RateLimited):
            metrics.SHARES_RATE_LIMITED.inc()
            log_info(f"ShareService: owner={owner_id} rate limited until {result.reset_at.isoformat()}")
        else:
            metrics.CODE_GENERATION_EXHAUSTED.inc()
            logger.error(f"Short code generation exhausted after {result.attempts} attempts for owner={owner_id}")
        return result

    async def get_share_by_code(self, short_code: str) -> ShareLookupResult:
        """Resolve a public share.

        Expired shares are deleted on access. The view counter is bumped
        best-effort: a failed increment is logged and the read still succeeds.
        """
        share = await self._repo.get_by_code(short_code)
        if share is None:
            return ShareNotFound(short_code=short_code)

        if is_expired(share.expires_at, self._clock()):
            await self._repo.delete(share.id)
            metrics.SHARES_EXPIRED_ON_READ.inc()
            log_info(f"ShareService: removed expired share code={short_code}")
            return ShareExpired(short_code=short_code, expires_at=share.expires_at)

        try:
            await self._repo.increment_view_count(share.id)
        except (SQLAlchemyError, NotFoundError) as e:
            metrics.VIEW_COUNT_FAILURES.inc()
            log_exception(e, context=f"view count increment for share {short_code}")
            return share

        # Include the current view
        return dataclasses.replace(share, view_count=share.view_count + 1)
