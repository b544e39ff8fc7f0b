"""Tests for converting host sessions to persisted records and back."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from session_codec import (
    cookie_expiry,
    decode_session,
    encode_session,
    is_expired,
    parse_timestamp,
    serialize_cookie,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
TTL = timedelta(days=14)


class FakeCookie:
    def __init__(self, expires=None):
        self.expires = expires

    def to_dict(self):
        return {"expires": self.expires, "httpOnly": True}


def test_parse_timestamp_naive_datetime_is_utc():
    assert parse_timestamp(datetime(2030, 5, 1)) == datetime(2030, 5, 1, tzinfo=UTC)


def test_parse_timestamp_converts_offsets_to_utc():
    plus_two = timezone(timedelta(hours=2))
    assert parse_timestamp(datetime(2030, 5, 1, 2, 0, tzinfo=plus_two)) == datetime(2030, 5, 1, tzinfo=UTC)


def test_parse_timestamp_accepts_iso_strings():
    assert parse_timestamp("2099-01-01") == datetime(2099, 1, 1, tzinfo=UTC)
    assert parse_timestamp("2099-01-01T10:30:00Z") == datetime(2099, 1, 1, 10, 30, tzinfo=UTC)


def test_parse_timestamp_accepts_epoch_seconds():
    assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=UTC)


@pytest.mark.parametrize("value", [True, object(), ["2099-01-01"], "not a date"])
def test_parse_timestamp_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_serialize_cookie_prefers_to_dict():
    cookie = FakeCookie("2099-01-01")
    assert serialize_cookie(cookie) == {"expires": "2099-01-01", "httpOnly": True}


def test_serialize_cookie_keeps_plain_values():
    raw = {"expires": "2099-01-01"}
    assert serialize_cookie(raw) is raw


def test_serialize_cookie_writes_datetime_expiry_as_text():
    cookie = {"expires": datetime(2099, 1, 1, tzinfo=UTC), "path": "/"}

    assert serialize_cookie(cookie) == {"expires": "2099-01-01T00:00:00+00:00", "path": "/"}
    assert isinstance(cookie["expires"], datetime)
    assert serialize_cookie(FakeCookie(datetime(2099, 1, 1)))["expires"] == "2099-01-01T00:00:00+00:00"


def test_cookie_expiry_from_mapping_and_attribute():
    assert cookie_expiry({"expires": "2099-01-01"}) == datetime(2099, 1, 1, tzinfo=UTC)
    assert cookie_expiry(FakeCookie("2099-01-01")) == datetime(2099, 1, 1, tzinfo=UTC)
    assert cookie_expiry({"maxAge": 10}) is None
    assert cookie_expiry(None) is None


def test_encode_copies_entries_and_uses_cookie_expiry():
    session = {"cookie": {"expires": "2099-01-01"}, "userId": 42}

    record = encode_session(session, default_ttl=TTL, now=NOW)

    assert record["session"] == session
    assert record["expires"] == "2099-01-01T00:00:00+00:00"


def test_encode_serializes_cookie_objects():
    record = encode_session({"cookie": FakeCookie("2099-01-01"), "cart": [1, 2]}, default_ttl=TTL, now=NOW)

    assert record["session"] == {"cookie": {"expires": "2099-01-01", "httpOnly": True}, "cart": [1, 2]}


def test_encode_without_cookie_expiry_uses_default_ttl():
    record = encode_session({"userId": 7}, default_ttl=TTL, now=NOW)

    assert parse_timestamp(record["expires"]) == NOW + TTL


def test_encode_empty_session():
    record = encode_session({}, default_ttl=TTL, now=NOW)

    assert record["session"] == {}
    assert parse_timestamp(record["expires"]) == NOW + TTL


def test_is_expired():
    assert not is_expired({"session": {}}, now=NOW)
    assert not is_expired({"expires": "2099-01-01T00:00:00+00:00"}, now=NOW)
    assert is_expired({"expires": "2000-01-01T00:00:00+00:00"}, now=NOW)
    assert is_expired({"expires": NOW.isoformat()}, now=NOW)


def test_decode_returns_stored_session_only():
    document = {"_key": "abc", "session": {"userId": 42}, "expires": "2099-01-01T00:00:00+00:00"}

    assert decode_session(document) == {"userId": 42}
