"""Expiration strings for stored snapshots.

A value is ``<integer><unit>`` with unit ``m`` (minutes), ``h`` (hours) or
``d`` (days). An absent value, ``"never"``, or anything that does not match
the grammar means the snapshot never expires.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional


EXPIRATION_PATTERN = re.compile(r'([0-9]+)([dhm])')

UNIT_SECONDS = {
    'm': 60,
    'h': 60 * 60,
    'd': 24 * 60 * 60,
}

NEVER = "never"


def parse_expiration(expires_in: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """Convert an expiration string into an absolute timestamp.

    Args:
        expires_in: Expiration string such as ``"1h"``, ``"7d"`` or ``"never"``
        now: Reference time (defaults to the current UTC time)

    Returns:
        Timezone-aware expiry time, or None for no expiration

    Examples:
        >>> parse_expiration("never") is None
        True
        >>> parse_expiration("2h", datetime(2024, 1, 1, tzinfo=timezone.utc))
        datetime.datetime(2024, 1, 1, 2, 0, tzinfo=datetime.timezone.utc)
    """
    if not isinstance(expires_in, str) or not expires_in or expires_in == NEVER:
        return None

    match = EXPIRATION_PATTERN.fullmatch(expires_in)
    if not match:
        return None

    value, unit = int(match.group(1)), match.group(2)
    now = now or datetime.now(timezone.utc)

    try:
        return now + timedelta(seconds=value * UNIT_SECONDS[unit])
    except OverflowError:
        # Beyond the representable range; treat as never expiring.
        return None


def format_expiration(expires_at: Optional[datetime]) -> Optional[str]:
    """ISO-8601 representation in UTC with millisecond precision."""
    if expires_at is None:
        return None
    utc = expires_at.astimezone(timezone.utc)
    return utc.strftime('%Y-%m-%dT%H:%M:%S.') + f"{utc.microsecond // 1000:03d}Z"
