"""Redaction for debug logs.

Documents and request headers may carry the service API key, bearer
tokens or drivers' phone numbers. Everything logged at DEBUG by the
transport and the mutation gateway goes through :func:`redact_for_log`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_MAX_DEPTH = 20
_REDACTED = "<redacted>"

# Compared after lower-casing and dropping "_" / "-".
_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "apikey",
        "password",
        "token",
        "accesstoken",
        "refreshtoken",
        "authorization",
        "cookie",
        "setcookie",
        "phone",
        "telefone",
    }
)


def _normalize_key(key: Any) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def is_sensitive_key(key: Any) -> bool:
    return _normalize_key(key) in _SENSITIVE_KEYS


def _redact_scalar(value: Any, max_string: int) -> Any:
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return repr(value)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* with credentials masked and long strings cut."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if isinstance(value, Mapping):
        return {
            str(key): _REDACTED if is_sensitive_key(key) else redact_for_log(item, max_string=max_string, _depth=_depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    return _redact_scalar(value, max_string)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Mask credential headers, keeping the auth scheme visible."""
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if not is_sensitive_key(key):
            redacted[key] = value
            continue
        scheme, _, secret = value.partition(" ")
        redacted[key] = f"{scheme} {_REDACTED}" if secret else _REDACTED
    return redacted
