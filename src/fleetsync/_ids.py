"""Client-side document id generation.

Ids are time-based tokens (epoch milliseconds), bumped by one when two
ids are requested within the same millisecond so a single process never
hands out the same token twice.
"""

from __future__ import annotations

import time

_last_token = 0


def _now_ms() -> int:
    return int(time.time() * 1000)


def new_token() -> str:
    """Return a fresh, strictly increasing time-based token."""
    global _last_token
    token = max(_now_ms(), _last_token + 1)
    _last_token = token
    return str(token)


def new_document_id(prefix: str | None = None) -> str:
    """Return a new document id, optionally namespaced as ``{prefix}-{token}``."""
    token = new_token()
    if prefix:
        return f"{prefix}-{token}"
    return token
