"""Service layer exports."""

from .linkedin_login import (
    CallbackResult,
    LinkedInLoginService,
    LoginRequest,
    begin_login,
)
from .oauth_state import STATE_COOKIE_NAME, OAuthStateCookie
from .session_binder import SESSION_COOKIE_NAME, SessionBinder
from .token_cipher import TokenCipherService

__all__ = [
    "CallbackResult",
    "LinkedInLoginService",
    "LoginRequest",
    "OAuthStateCookie",
    "SESSION_COOKIE_NAME",
    "STATE_COOKIE_NAME",
    "SessionBinder",
    "TokenCipherService",
    "begin_login",
]
