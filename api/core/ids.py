"""
Identifier helpers shared by the feature packages.
"""

from __future__ import annotations

import re
import uuid
from typing import Any

# Canonical hyphenated form only; braces, URNs and bare hex are rejected.
# Version nibble 1-8 and RFC 4122 variant (8, 9, a, b), plus the nil and max UUIDs.
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[1-8][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}"
    r"|00000000-0000-0000-0000-000000000000"
    r"|ffffffff-ffff-ffff-ffff-ffffffffffff",
    re.IGNORECASE,
)


def new_id() -> uuid.UUID:
    return uuid.uuid4()


def parse_uuid(value: Any) -> uuid.UUID | None:
    """
    Return the UUID for a canonical UUID string, or None for anything else.
    """
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not _UUID_RE.fullmatch(raw):
        return None
    return uuid.UUID(raw)
