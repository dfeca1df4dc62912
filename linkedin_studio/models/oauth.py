"""
Domain models for the LinkedIn sign-in flow and account persistence.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field, SecretStr

_ACCOUNT_NAMESPACE = uuid.UUID("5b0c6a0e-8f63-4f6f-9d8e-2f0f3c9a7b41")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def account_id_for(provider: str, subject: str) -> str:
    """Deterministic internal id for an external identity."""
    return str(uuid.uuid5(_ACCOUNT_NAMESPACE, f"{provider}:{subject}"))


def placeholder_email(subject: str, provider: str) -> str:
    return f"{subject}@{provider}.temp"


class AuthorizationState(BaseModel):
    """CSRF state issued for a single in-flight login attempt."""

    state: str
    issued_at: datetime = Field(default_factory=_utcnow)
    redirect_to: Optional[str] = None

    def is_expired(self, ttl_seconds: int, *, now: datetime | None = None) -> bool:
        issued_at = self.issued_at
        if issued_at.tzinfo is None:
            issued_at = issued_at.replace(tzinfo=timezone.utc)
        current = now or _utcnow()
        return current - issued_at > timedelta(seconds=ttl_seconds)


class TokenSet(BaseModel):
    """Tokens returned by the provider's token endpoint."""

    access_token: SecretStr
    refresh_token: Optional[SecretStr] = None
    expires_in: Optional[int] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None

    @classmethod
    def from_token_response(cls, payload: Mapping[str, Any]) -> "TokenSet":
        expires_in = payload.get("expires_in")
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or None,
            expires_in=int(expires_in) if expires_in is not None else None,
            token_type=payload.get("token_type") or "Bearer",
            scope=payload.get("scope"),
        )

    def expires_at(self, issued_at: datetime) -> Optional[datetime]:
        if self.expires_in is None:
            return None
        return issued_at + timedelta(seconds=self.expires_in)


class ExternalIdentity(BaseModel):
    """Snapshot of the provider's identity claims for one subject."""

    subject: str
    provider: str = "linkedin"
    given_name: str = ""
    family_name: str = ""
    email: str
    email_verified: bool = False
    email_is_placeholder: bool = False
    picture: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_userinfo(
        cls, claims: Mapping[str, Any], *, provider: str = "linkedin"
    ) -> "ExternalIdentity":
        """Build an identity from OpenID Connect userinfo claims.

        ``claims["sub"]`` must be present. When the provider withholds the
        email a stable placeholder derived from the subject is used instead.
        """
        subject = str(claims["sub"])
        email = claims.get("email") or ""
        return cls(
            subject=subject,
            provider=provider,
            given_name=claims.get("given_name") or "",
            family_name=claims.get("family_name") or "",
            email=email or placeholder_email(subject, provider),
            email_verified=bool(claims.get("email_verified")) if email else False,
            email_is_placeholder=not email,
            picture=claims.get("picture"),
            raw=dict(claims),
        )

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.given_name, self.family_name) if part)

    @property
    def account_id(self) -> str:
        return account_id_for(self.provider, self.subject)


class Account(BaseModel):
    """Profile row for a LinkedIn member, keyed by ``linkedin_id``."""

    id: str
    email: str
    linkedin_id: str
    first_name: str = ""
    last_name: str = ""
    profile_data: Dict[str, Any] = Field(default_factory=dict)
    access_token_encrypted: Optional[str] = None
    refresh_token_encrypted: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def public_view(self) -> Dict[str, Any]:
        """Fields safe to return to the browser."""
        return {
            "id": self.id,
            "email": self.email,
            "linkedin_id": self.linkedin_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class AuthUser(BaseModel):
    """Entry in the authentication directory."""

    id: str
    email: str
    linkedin_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class SessionGrant(BaseModel):
    """Signed session token issued after a successful sign-in."""

    token: SecretStr
    account_id: str
    expires_at: datetime
    expires_in: int
    new_user: bool = False


class SessionClaims(BaseModel):
    account_id: str
    linkedin_id: str
    issued_at: datetime
    expires_at: datetime


__all__ = [
    "Account",
    "AuthUser",
    "AuthorizationState",
    "ExternalIdentity",
    "SessionClaims",
    "SessionGrant",
    "TokenSet",
    "account_id_for",
    "placeholder_email",
]
