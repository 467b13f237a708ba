"""Helpers for single-use parent link codes."""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

from .constants import LINK_CODE_LENGTH, LINK_CODE_TTL_MINUTES

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_link_code(length: int = LINK_CODE_LENGTH) -> str:
    """Generates a random numeric code without a leading zero."""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def expiry_for(now: datetime, minutes: int = LINK_CODE_TTL_MINUTES) -> datetime:
    return now + timedelta(minutes=minutes)


def _as_aware(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_expired(expires_at: Any, now: datetime) -> bool:
    """Return True if a stored expiry is in the past.

    Accepts Firestore timestamps (aware datetimes) and ISO-8601 strings.
    Naive values are read as UTC. A missing or unreadable expiry counts as
    expired so a malformed row can never be redeemed.
    """
    parsed = _as_aware(expires_at)
    if parsed is None:
        logger.warning(f"Link code has unreadable expiry: {expires_at!r}")
        return True
    return parsed < now
