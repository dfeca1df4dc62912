"""Schemas related to the LinkedIn OAuth flow."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class OAuthCallbackPayload(BaseModel):
    """Payload sent by SPA clients to complete the OAuth callback exchange."""

    code: Optional[str] = Field(None, description="Authorization code returned by LinkedIn.")
    state: Optional[str] = Field(None, description="State value echoed back by LinkedIn.")
    error: Optional[str] = Field(None, description="Error code when consent was refused.")
    error_description: Optional[str] = None

    def as_query_params(self) -> dict[str, Optional[str]]:
        return self.model_dump()


class AuthorizeResponse(BaseModel):
    authorization_url: str
    state: str


class AccountView(BaseModel):
    id: str
    email: str
    linkedin_id: str
    first_name: str = ""
    last_name: str = ""
    created_at: str
    updated_at: str


class CallbackResponse(BaseModel):
    status: str = "connected"
    account: AccountView
    session_token: str
    expires_in: int
    new_user: bool = False
    redirect_to: Optional[str] = None


class SessionResponse(BaseModel):
    account: AccountView
    expires_at: str


class AuthErrorResponse(BaseModel):
    """Single user-facing message plus a machine-readable error kind."""

    error: str
    message: str
    retry_url: str = "/login"
    retry_after_seconds: int = 3


__all__ = [
    "AccountView",
    "AuthErrorResponse",
    "AuthorizeResponse",
    "CallbackResponse",
    "OAuthCallbackPayload",
    "SessionResponse",
]
