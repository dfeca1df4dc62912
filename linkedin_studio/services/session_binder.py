"""
Bind a verified LinkedIn identity to a local session.

The member never holds a password here. After the auth directory knows the
account, a short-lived HS256 JWT is issued for it and verified server side on
every request.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol, cast

import jwt
from jwt import PyJWTError

from linkedin_studio.core.errors import (
    AccountConflictError,
    AccountStoreError,
    AuthProvisioningError,
    InvalidSessionError,
)
from linkedin_studio.models.oauth import (
    Account,
    AuthUser,
    ExternalIdentity,
    SessionClaims,
    SessionGrant,
)

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "li_session"
SESSION_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "linkedin_id", "iat", "exp"]


class AuthDirectory(Protocol):
    async def get_user(self, user_id: str) -> Optional[AuthUser]: ...

    async def get_user_by_email(self, email: str) -> Optional[AuthUser]: ...

    async def create_user(
        self, *, user_id: str, email: str, linkedin_id: str, full_name: str = ""
    ) -> AuthUser: ...


class SessionBinder:
    """Resolve the auth-directory user for an identity and issue a session."""

    def __init__(
        self,
        *,
        auth_directory: AuthDirectory,
        secret_key: str,
        ttl_seconds: int = 3600,
        algorithm: str = SESSION_ALGORITHM,
    ) -> None:
        if not secret_key:
            raise ValueError("Session signing secret must be provided.")
        self._directory = auth_directory
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._ttl = timedelta(seconds=ttl_seconds)

    def create_session_token(
        self, *, account_id: str, linkedin_id: str, issued_at: datetime
    ) -> str:
        to_encode = {
            "sub": account_id,
            "linkedin_id": linkedin_id,
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        return cast(str, jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm))

    async def bind(self, identity: ExternalIdentity, account: Account) -> SessionGrant:
        """Sign the member in, provisioning the auth user on first login."""
        user, created = await self._ensure_auth_user(identity, account)
        issued_at = datetime.now(timezone.utc).replace(microsecond=0)
        token = self.create_session_token(
            account_id=user.id, linkedin_id=identity.subject, issued_at=issued_at
        )
        return SessionGrant(
            token=token,
            account_id=user.id,
            expires_at=issued_at + self._ttl,
            expires_in=int(self._ttl.total_seconds()),
            new_user=created,
        )

    async def _ensure_auth_user(
        self, identity: ExternalIdentity, account: Account
    ) -> tuple[AuthUser, bool]:
        existing = await self._directory.get_user(account.id)
        if existing is not None:
            return existing, False

        try:
            user = await self._directory.create_user(
                user_id=account.id,
                email=account.email,
                linkedin_id=identity.subject,
                full_name=identity.full_name,
            )
        except AccountStoreError as exc:
            # A concurrent first login may have created the user in between.
            raced = await self._directory.get_user(account.id)
            if raced is not None:
                return raced, False
            await self._raise_on_email_conflict(identity, account, exc)
            raise AuthProvisioningError(
                f"New user provisioning failed for LinkedIn member {identity.subject}",
                response_body=exc.response_body,
            ) from exc

        logger.info(
            "Provisioned auth user %s for LinkedIn member %s", user.id, identity.subject
        )
        return user, True

    async def _raise_on_email_conflict(
        self, identity: ExternalIdentity, account: Account, cause: AccountStoreError
    ) -> None:
        """Report an email already owned by a user this member does not map to.

        Such users are never linked automatically; an operator has to merge them.
        """
        try:
            holder = await self._directory.get_user_by_email(account.email)
        except AccountStoreError:
            logger.warning("Email lookup failed while diagnosing provisioning error")
            return
        if holder is None or holder.id == account.id:
            return
        logger.warning(
            "LinkedIn member %s shares email with auth user %s; not linking",
            identity.subject,
            holder.id,
        )
        raise AccountConflictError(
            f"Email for LinkedIn member {identity.subject} already belongs to another user",
            response_body=cause.response_body,
        ) from cause

    def verify(self, token: str) -> SessionClaims:
        """Validate a session token and return its claims."""
        try:
            payload = cast(
                Dict[str, Any],
                jwt.decode(
                    token,
                    self._secret_key,
                    algorithms=[self._algorithm],
                    options={"require": _REQUIRED_CLAIMS},
                ),
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidSessionError("Session token has expired.") from exc
        except PyJWTError as exc:
            raise InvalidSessionError("Session token is invalid.") from exc

        return SessionClaims(
            account_id=payload["sub"],
            linkedin_id=payload["linkedin_id"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


__all__ = ["AuthDirectory", "SESSION_ALGORITHM", "SESSION_COOKIE_NAME", "SessionBinder"]
