"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the dependency factories
and the operational scripts share a consistent configuration surface.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from linkedin_studio.core.errors import ConfigurationError

LINKEDIN_AUTHORIZATION_URL = "https://www.linkedin.com/oauth/v2/authorization"
LINKEDIN_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
LINKEDIN_USERINFO_URL = "https://api.linkedin.com/v2/userinfo"

DEFAULT_ENV_FILE = ".env"


class _Settings(BaseSettings):
    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
        env_file=DEFAULT_ENV_FILE,
        env_file_encoding="utf-8",
    )


class LinkedInSettings(_Settings):
    """Configuration required for the LinkedIn OAuth handshake."""

    client_id: str = Field(..., validation_alias="LINKEDIN_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="LINKEDIN_CLIENT_SECRET")
    # Kept as a plain string: the provider compares it byte-for-byte with the
    # registered value, so no URL normalization may happen here.
    redirect_uri: str = Field(..., validation_alias="LINKEDIN_REDIRECT_URI")
    authorization_url: str = Field(
        LINKEDIN_AUTHORIZATION_URL, validation_alias="LINKEDIN_AUTHORIZATION_URL"
    )
    token_url: str = Field(LINKEDIN_TOKEN_URL, validation_alias="LINKEDIN_TOKEN_URL")
    userinfo_url: str = Field(
        LINKEDIN_USERINFO_URL, validation_alias="LINKEDIN_USERINFO_URL"
    )
    http_timeout_seconds: float = Field(
        10.0,
        validation_alias="LINKEDIN_HTTP_TIMEOUT",
        description="Upper bound for every outbound call to LinkedIn.",
    )

    @field_validator("client_id", "client_secret", "redirect_uri")
    @classmethod
    def _require_non_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()


class AccountStoreSettings(_Settings):
    """Connection details for the hosted account/session store."""

    url: str = Field(
        ...,
        validation_alias="ACCOUNT_STORE_URL",
        description=(
            "Base URL of the hosted store, or sqlite:///path/to/file.db for a "
            "local SQLite store."
        ),
    )
    service_key: str = Field(..., validation_alias="ACCOUNT_STORE_SERVICE_KEY")
    profile_table: str = Field("users", validation_alias="ACCOUNT_STORE_PROFILE_TABLE")

    @field_validator("url", "service_key")
    @classmethod
    def _require_non_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite:///")

    @property
    def sqlite_path(self) -> str:
        return self.url[len("sqlite:///"):]


class SecuritySettings(_Settings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    session_secret: Optional[str] = Field(
        None,
        validation_alias="SESSION_SECRET",
        description="HMAC key for session tokens. Derived from the client secret when unset.",
    )
    session_ttl_seconds: int = Field(3600, validation_alias="SESSION_TTL")


class OAuthSettings(_Settings):
    """OAuth flow configuration."""

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    scope_list: str = Field(
        "openid,profile,email",
        validation_alias="OAUTH_SCOPES",
        description="Comma or space separated scopes requested from LinkedIn.",
    )

    @property
    def scopes(self) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        raw = self.scope_list.replace(",", " ")
        return tuple(scope for scope in raw.split() if scope)


class AppSettings(_Settings):
    """Root settings object for the FastAPI application."""

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[str] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the front-end.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    linkedin: LinkedInSettings = Field(default_factory=LinkedInSettings)
    account_store: AccountStoreSettings = Field(default_factory=AccountStoreSettings)

    @property
    def secure_cookies(self) -> bool:
        return self.environment.lower() not in {"development", "test"}


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "settings"
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(problems)


def load_settings(env_file: Optional[str] = DEFAULT_ENV_FILE) -> AppSettings:
    """Build settings, turning validation failures into ``ConfigurationError``.

    Process environment variables win over values read from ``env_file``.
    """
    try:
        return AppSettings(
            security=SecuritySettings(_env_file=env_file),
            oauth=OAuthSettings(_env_file=env_file),
            linkedin=LinkedInSettings(_env_file=env_file),  # type: ignore[call-arg]
            account_store=AccountStoreSettings(_env_file=env_file),  # type: ignore[call-arg]
            _env_file=env_file,
        )
    except ValidationError as exc:
        raise ConfigurationError(
            f"Missing or invalid configuration: {_describe_validation_error(exc)}"
        ) from exc


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return load_settings()


__all__ = [
    "AccountStoreSettings",
    "AppSettings",
    "LinkedInSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
    "load_settings",
]
