"""
LinkedIn sign-in flow: consent redirect, callback handling and account upsert.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Protocol

from linkedin_studio.clients.linkedin_auth import (
    LinkedInOAuthClient,
    build_authorization_url,
)
from linkedin_studio.core.config import LINKEDIN_AUTHORIZATION_URL
from linkedin_studio.core.errors import (
    AccountStoreError,
    AuthFlowError,
    ConfigurationError,
    CsrfValidationError,
    InvalidSessionError,
    MissingCodeError,
    ProfileUpsertError,
    ProviderDeniedError,
)
from linkedin_studio.models.oauth import (
    Account,
    AuthorizationState,
    ExternalIdentity,
    SessionClaims,
    SessionGrant,
    TokenSet,
)
from linkedin_studio.services.session_binder import SessionBinder
from linkedin_studio.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

_STATE_BYTES = 32


@dataclass(frozen=True)
class LoginRequest:
    authorization_url: str
    state: AuthorizationState


@dataclass(frozen=True)
class CallbackResult:
    token_set: TokenSet
    identity: ExternalIdentity
    account: Account
    session: SessionGrant
    redirect_to: Optional[str] = None


class AccountStore(Protocol):
    async def upsert_account(self, account: Account) -> Account: ...

    async def get_account(self, account_id: str) -> Optional[Account]: ...


def begin_login(
    client_id: str,
    redirect_uri: str,
    scopes: str | Iterable[str],
    *,
    authorization_url: str = LINKEDIN_AUTHORIZATION_URL,
    redirect_to: str | None = None,
) -> LoginRequest:
    """Create a fresh CSRF state and the consent URL that carries it.

    The caller must store ``LoginRequest.state`` where the same browser can
    present it again on the callback.
    """
    if not client_id or not client_id.strip():
        raise ConfigurationError("LinkedIn client id is not configured.")
    if not redirect_uri or not redirect_uri.strip():
        raise ConfigurationError("LinkedIn redirect URI is not configured.")

    state = AuthorizationState(
        state=secrets.token_urlsafe(_STATE_BYTES),
        redirect_to=redirect_to,
    )
    url = build_authorization_url(
        authorization_url=authorization_url,
        client_id=client_id,
        redirect_uri=redirect_uri,
        scopes=scopes,
        state=state.state,
    )
    return LoginRequest(authorization_url=url, state=state)


class LinkedInLoginService:
    """Run the callback half of the handshake, one linear attempt at a time."""

    def __init__(
        self,
        *,
        oauth_client: LinkedInOAuthClient,
        account_store: AccountStore,
        session_binder: SessionBinder,
        token_cipher: TokenCipherService,
        scopes: Iterable[str],
        state_ttl_seconds: int,
    ) -> None:
        self._oauth = oauth_client
        self._accounts = account_store
        self._sessions = session_binder
        self._cipher = token_cipher
        self._scopes = tuple(scopes)
        self._state_ttl_seconds = state_ttl_seconds

    def begin_login(self, *, redirect_to: str | None = None) -> LoginRequest:
        return begin_login(
            self._oauth.client_id,
            self._oauth.redirect_uri,
            self._scopes,
            authorization_url=self._oauth.authorization_endpoint,
            redirect_to=redirect_to,
        )

    async def handle_callback(
        self,
        query_params: Mapping[str, Optional[str]],
        stored_state: AuthorizationState | str | None,
    ) -> CallbackResult:
        try:
            return await self._run_callback(query_params, stored_state)
        except CsrfValidationError as exc:
            logger.warning("LinkedIn callback rejected [%s]: %s", exc.kind, exc.message)
            raise
        except AuthFlowError as exc:
            logger.error(
                "LinkedIn callback failed [%s]: %s%s",
                exc.kind,
                exc.message,
                f" | provider response: {exc.response_body}" if exc.response_body else "",
            )
            raise

    async def _run_callback(
        self,
        query_params: Mapping[str, Optional[str]],
        stored_state: AuthorizationState | str | None,
    ) -> CallbackResult:
        error = query_params.get("error")
        if error:
            raise ProviderDeniedError(error, query_params.get("error_description"))

        code = query_params.get("code")
        if not code:
            raise MissingCodeError("No authorization code received from LinkedIn")

        self._validate_state(query_params.get("state"), stored_state)

        logger.info("Exchanging LinkedIn authorization code")
        token_set = await self._oauth.exchange_authorization_code(code)

        identity = await self._oauth.fetch_identity(
            token_set.access_token.get_secret_value()
        )
        logger.info("LinkedIn identity resolved for member %s", identity.subject)

        account = await self._upsert_account(identity, token_set)
        session = await self._sessions.bind(identity, account)
        logger.info(
            "LinkedIn sign-in complete for member %s (account %s, new_user=%s)",
            identity.subject,
            account.id,
            session.new_user,
        )

        redirect_to = (
            stored_state.redirect_to
            if isinstance(stored_state, AuthorizationState)
            else None
        )
        return CallbackResult(
            token_set=token_set,
            identity=identity,
            account=account,
            session=session,
            redirect_to=redirect_to,
        )

    def _validate_state(
        self,
        returned: Optional[str],
        stored: AuthorizationState | str | None,
    ) -> None:
        if stored is None:
            raise CsrfValidationError(
                "No OAuth state was stored for this browser (possible CSRF attack)"
            )
        if isinstance(stored, AuthorizationState):
            if stored.is_expired(self._state_ttl_seconds):
                raise CsrfValidationError("OAuth state has expired; restart the login")
            expected = stored.state
        else:
            expected = stored
        if not returned or not hmac.compare_digest(
            returned.encode("utf-8"), expected.encode("utf-8")
        ):
            raise CsrfValidationError(
                "Invalid or missing OAuth state (possible CSRF attack)"
            )

    async def _upsert_account(
        self, identity: ExternalIdentity, token_set: TokenSet
    ) -> Account:
        now = datetime.now(timezone.utc)
        account = Account(
            id=identity.account_id,
            email=identity.email,
            linkedin_id=identity.subject,
            first_name=identity.given_name,
            last_name=identity.family_name,
            profile_data=identity.raw,
            created_at=now,
            updated_at=now,
            **self._cipher.seal_token_set(token_set, issued_at=now),
        )
        try:
            return await self._accounts.upsert_account(account)
        except AccountStoreError as exc:
            raise ProfileUpsertError(
                f"Profile database write failed for LinkedIn member {identity.subject}",
                response_body=exc.response_body,
            ) from exc

    def verify_session(self, session_token: str) -> SessionClaims:
        return self._sessions.verify(session_token)

    async def current_account(self, claims: SessionClaims) -> Account:
        """Resolve the profile row behind verified session claims."""
        account = await self._accounts.get_account(claims.account_id)
        if account is None:
            raise InvalidSessionError("Session refers to an unknown account.")
        return account


__all__ = [
    "CallbackResult",
    "LinkedInLoginService",
    "LoginRequest",
    "begin_login",
]
