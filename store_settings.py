"""Session store configuration via defaults, environment variables and caller options."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from pydantic import SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from session_store import StoreConfigError

DEFAULT_URL = "http://localhost:8529"
DEFAULT_EXPIRES = timedelta(days=14)

# camelCase option names accepted from callers used to connect-style stores
_OPTION_ALIASES = {
    "dbName": "db_name",
    "connectionOptions": "connection_options",
    "idField": "id_field",
}


class StoreSettings(BaseSettings):
    """Immutable store configuration. Later layers win: defaults, ``ARANGO_SESSION_*`` env, options."""

    model_config = SettingsConfigDict(
        env_prefix="ARANGO_SESSION_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    url: str = DEFAULT_URL
    db_name: str
    collection: str = "sessions"
    connection_options: dict[str, Any] = {}
    expires: timedelta = DEFAULT_EXPIRES
    id_field: str = "_key"
    user: str | None = None
    password: SecretStr | None = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("url must be an http:// or https:// endpoint")
        return value.rstrip("/")

    @field_validator("db_name", "collection", "id_field")
    @classmethod
    def _check_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("expires")
    @classmethod
    def _check_expires(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("expires must be positive")
        return value

    @property
    def credentials(self) -> tuple[str, str] | None:
        if self.user and self.password:
            return self.user, self.password.get_secret_value()
        return None

    @classmethod
    def from_options(cls, options: Any) -> StoreSettings:
        """Build settings from caller options, raising StoreConfigError on bad input."""
        if options is None:
            raise StoreConfigError("options not provided")
        if not isinstance(options, Mapping):
            raise StoreConfigError("options must be a mapping")

        normalized = {_OPTION_ALIASES.get(key, key): value for key, value in options.items()}
        for required in ("url", "db_name"):
            if not normalized.get(required):
                raise StoreConfigError(f"{required} not provided")

        try:
            return cls(**normalized)
        except ValidationError as e:
            raise StoreConfigError(f"invalid store options: {e}") from e
