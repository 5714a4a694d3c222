"""
API token helpers.

Tokens are 256 bits from `secrets`, hex-encoded after a static prefix so they
are easy to spot in config files and secret scanners. Only the SHA-256 digest
is stored; tokens are high-entropy, so a fast digest is enough.
"""

from __future__ import annotations

import hashlib
import secrets

from core.settings import DEFAULT_TOKEN_PREFIX

TOKEN_BYTES = 32


class TokenSecurityError(RuntimeError):
    pass


def generate_token(prefix: str = DEFAULT_TOKEN_PREFIX) -> str:
    return prefix + secrets.token_hex(TOKEN_BYTES)


def hash_token(raw_token: str) -> str:
    try:
        token = (raw_token or "").encode("utf-8")
    except UnicodeEncodeError as exc:
        # Lone surrogates can arrive through JSON escapes.
        raise TokenSecurityError("Token is not valid UTF-8.") from exc
    if not token:
        raise TokenSecurityError("Token is empty.")
    return hashlib.sha256(token).hexdigest()
