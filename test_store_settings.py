"""Tests for store configuration layering and construction preconditions."""

from datetime import timedelta

import pytest

from session_store import StoreConfigError
from store_settings import DEFAULT_EXPIRES, StoreSettings
from stores.arango_store import ArangoSessionStore
from stores.memory_client import InMemoryDocumentClient


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("URL", "DB_NAME", "COLLECTION", "EXPIRES", "ID_FIELD", "USER", "PASSWORD"):
        monkeypatch.delenv(f"ARANGO_SESSION_{name}", raising=False)


def test_defaults():
    settings = StoreSettings.from_options({"url": "http://localhost:8529", "db_name": "app"})

    assert settings.collection == "sessions"
    assert settings.connection_options == {}
    assert settings.expires == DEFAULT_EXPIRES == timedelta(days=14)
    assert settings.id_field == "_key"
    assert settings.credentials is None


def test_camel_case_aliases():
    settings = StoreSettings.from_options(
        {"url": "http://db:8529/", "dbName": "app", "idField": "sid", "connectionOptions": {"timeout": 5}}
    )

    assert settings.url == "http://db:8529"
    assert settings.db_name == "app"
    assert settings.id_field == "sid"
    assert settings.connection_options == {"timeout": 5}


def test_expires_accepts_seconds():
    settings = StoreSettings.from_options({"url": "http://db", "db_name": "app", "expires": 60})
    assert settings.expires == timedelta(seconds=60)


def test_credentials_need_user_and_password():
    settings = StoreSettings.from_options({"url": "http://db", "db_name": "app", "user": "root", "password": "pw"})
    assert settings.credentials == ("root", "pw")
    assert "pw" not in repr(settings)

    only_user = StoreSettings.from_options({"url": "http://db", "db_name": "app", "user": "root"})
    assert only_user.credentials is None


def test_env_layer_under_options(monkeypatch):
    monkeypatch.setenv("ARANGO_SESSION_COLLECTION", "env_sessions")
    monkeypatch.setenv("ARANGO_SESSION_ID_FIELD", "sid")

    settings = StoreSettings.from_options({"url": "http://db", "db_name": "app", "id_field": "sessionId"})

    assert settings.collection == "env_sessions"
    assert settings.id_field == "sessionId"


def test_settings_are_frozen():
    settings = StoreSettings.from_options({"url": "http://db", "db_name": "app"})
    with pytest.raises(Exception):
        settings.collection = "other"


def test_instances_do_not_share_options():
    first = StoreSettings.from_options({"url": "http://db", "db_name": "one", "collection": "a"})
    second = StoreSettings.from_options({"url": "http://db", "db_name": "two"})

    assert first.collection == "a"
    assert second.collection == "sessions"


@pytest.mark.parametrize(
    "options, message",
    [
        (None, "options not provided"),
        ("http://db", "options must be a mapping"),
        ({"db_name": "app"}, "url not provided"),
        ({"url": "http://db"}, "db_name not provided"),
        ({"url": "", "db_name": "app"}, "url not provided"),
        ({"url": "ftp://db", "db_name": "app"}, "invalid store options"),
        ({"url": "http://db", "db_name": "   "}, "invalid store options"),
        ({"url": "http://db", "db_name": "app", "expires": 0}, "invalid store options"),
    ],
)
def test_bad_options_fail_construction(options, message):
    with pytest.raises(StoreConfigError, match=message):
        ArangoSessionStore(options, client=InMemoryDocumentClient())


def test_config_error_is_a_value_error():
    with pytest.raises(ValueError):
        StoreSettings.from_options({})
