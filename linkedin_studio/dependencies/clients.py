"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from hashlib import sha256

from linkedin_studio.clients import (
    LinkedInOAuthClient,
    SQLiteAccountStore,
    SQLiteAuthDirectory,
    SQLiteDatabase,
    SupabaseAccountStore,
    SupabaseAuthDirectory,
)
from linkedin_studio.core.config import get_settings
from linkedin_studio.services import (
    LinkedInLoginService,
    OAuthStateCookie,
    SessionBinder,
    TokenCipherService,
)
from linkedin_studio.utils.signing import SignedPayloadEncoder


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


def _derived_secret(purpose: str, secret: str) -> str:
    """Derive a purpose-bound signing key from a shared secret."""
    return sha256(f"{purpose}:{secret}".encode("utf-8")).hexdigest()


@lru_cache()
def get_oauth_state_cookie() -> OAuthStateCookie:
    """Provide the signed cookie codec for OAuth state values."""
    settings = _settings()
    encoder = SignedPayloadEncoder(
        secret_key=_derived_secret("oauth-state", settings.linkedin.client_secret)
    )
    return OAuthStateCookie(encoder, ttl_seconds=settings.oauth.state_ttl_seconds)


@lru_cache()
def get_linkedin_oauth_client() -> LinkedInOAuthClient:
    """Create a LinkedIn OAuth client bound to the configured app."""
    settings = _settings()
    return LinkedInOAuthClient(settings.linkedin)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.linkedin.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def _sqlite_database() -> SQLiteDatabase:
    settings = _settings()
    return SQLiteDatabase(settings.account_store.sqlite_path)


@lru_cache()
def get_account_store():
    """Provide the profile store selected by ``ACCOUNT_STORE_URL``."""
    settings = _settings()
    if settings.account_store.is_sqlite:
        return SQLiteAccountStore(_sqlite_database())
    return SupabaseAccountStore(settings.account_store)


@lru_cache()
def get_auth_directory():
    """Provide the auth directory selected by ``ACCOUNT_STORE_URL``."""
    settings = _settings()
    if settings.account_store.is_sqlite:
        return SQLiteAuthDirectory(_sqlite_database())
    return SupabaseAuthDirectory(settings.account_store)


@lru_cache()
def get_session_binder() -> SessionBinder:
    """Provide the session binder with its signing key."""
    settings = _settings()
    secret = settings.security.session_secret or _derived_secret(
        "session", settings.linkedin.client_secret
    )
    return SessionBinder(
        auth_directory=get_auth_directory(),
        secret_key=secret,
        ttl_seconds=settings.security.session_ttl_seconds,
    )


@lru_cache()
def get_login_service() -> LinkedInLoginService:
    """Wire the LinkedIn sign-in flow from the shared clients."""
    settings = _settings()
    return LinkedInLoginService(
        oauth_client=get_linkedin_oauth_client(),
        account_store=get_account_store(),
        session_binder=get_session_binder(),
        token_cipher=get_token_cipher_service(),
        scopes=settings.oauth.scopes,
        state_ttl_seconds=settings.oauth.state_ttl_seconds,
    )


__all__ = [
    "get_account_store",
    "get_auth_directory",
    "get_linkedin_oauth_client",
    "get_login_service",
    "get_oauth_state_cookie",
    "get_session_binder",
    "get_token_cipher_service",
]
