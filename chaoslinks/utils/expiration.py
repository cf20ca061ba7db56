# chaoslinks/utils/expiration.py

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from chaoslinks.constants import SECONDS_PER_DAY


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calculate_expiration(days: int, now: Optional[datetime] = None) -> datetime:
    """Expiry timestamp `days` whole days after `now`."""
    return (now or utcnow()) + timedelta(seconds=days * SECONDS_PER_DAY)


def is_expired(expires_at: datetime, now: Optional[datetime] = None) -> bool:
    return expires_at < (now or utcnow())


def days_until_expiration(expires_at: datetime, now: Optional[datetime] = None) -> int:
    """Days left, rounded up. Negative once the share has expired."""
    remaining = (expires_at - (now or utcnow())).total_seconds()
    return math.ceil(remaining / SECONDS_PER_DAY)
