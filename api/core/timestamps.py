"""
Canonical timestamp form used on the wire: `YYYY-MM-DDTHH:MM:SS.sssZ` (UTC,
millisecond precision).
"""

from __future__ import annotations

from datetime import datetime, timezone


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def parse_canonical_timestamp(raw: str) -> datetime | None:
    """
    Parse `raw` and return the instant only if formatting it again yields
    exactly `raw`. Offsets other than `Z`, missing or extra fractional digits
    and naive times are all rejected.
    """
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    if format_timestamp(parsed) != raw:
        return None
    return parsed.astimezone(timezone.utc)
