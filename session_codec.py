"""Conversion between a host's session mapping and the persisted record shape.

A persisted record carries the session under ``"session"`` and an absolute
ISO-8601 UTC ``"expires"`` timestamp. Expiry is store metadata and is never
handed back to callers.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, date, datetime, timedelta
from typing import Any

COOKIE_KEY = "cookie"


def parse_timestamp(value: Any) -> datetime:
    """Normalize a datetime, ISO-8601 string or epoch seconds to an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=UTC)
    else:
        raise ValueError(f"unsupported timestamp: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _now(now: datetime | None) -> datetime:
    return parse_timestamp(now) if now is not None else datetime.now(tz=UTC)


def format_timestamp(value: datetime | date) -> str:
    return parse_timestamp(value).isoformat()


def serialize_cookie(cookie: Any) -> Any:
    """Cookie as stored: ``to_dict()`` output if available, with a date ``expires`` as ISO text."""
    to_dict = getattr(cookie, "to_dict", None)
    if callable(to_dict):
        cookie = to_dict()
    if isinstance(cookie, Mapping) and isinstance(cookie.get("expires"), date):
        cookie = {**cookie, "expires": format_timestamp(cookie["expires"])}
    return cookie


def cookie_expiry(cookie: Any) -> datetime | None:
    if isinstance(cookie, Mapping):
        expires = cookie.get("expires")
    else:
        expires = getattr(cookie, "expires", None)
    return parse_timestamp(expires) if expires else None


def encode_session(
    session: Mapping[str, Any],
    *,
    default_ttl: timedelta,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build the ``session``/``expires`` part of a record from a host session mapping."""
    encoded: dict[str, Any] = {}
    for key, value in session.items():
        encoded[key] = serialize_cookie(value) if key == COOKIE_KEY else value

    expires = cookie_expiry(session.get(COOKIE_KEY)) if session else None
    if expires is None:
        expires = _now(now) + default_ttl

    return {"session": encoded, "expires": format_timestamp(expires)}


def is_expired(document: Mapping[str, Any], now: datetime | None = None) -> bool:
    expires = document.get("expires")
    if not expires:
        return False
    return _now(now) >= parse_timestamp(expires)


def decode_session(document: Mapping[str, Any]) -> dict[str, Any]:
    return document["session"]
