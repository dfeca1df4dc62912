"""Public schema exports."""

from .auth import (
    AccountView,
    AuthErrorResponse,
    AuthorizeResponse,
    CallbackResponse,
    OAuthCallbackPayload,
    SessionResponse,
)

__all__ = [
    "AccountView",
    "AuthErrorResponse",
    "AuthorizeResponse",
    "CallbackResponse",
    "OAuthCallbackPayload",
    "SessionResponse",
]
