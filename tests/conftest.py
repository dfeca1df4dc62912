"""Pytest configuration and fakes shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from typing import Optional

import httpx
import pytest

from linkedin_studio.clients.linkedin_auth import LinkedInOAuthClient
from linkedin_studio.core.config import LinkedInSettings
from linkedin_studio.core.errors import AccountStoreError
from linkedin_studio.models.oauth import Account, AuthUser
from linkedin_studio.services import (
    LinkedInLoginService,
    SessionBinder,
    TokenCipherService,
)
from linkedin_studio.utils.http import RetryConfig

TOKEN_PATH = "/oauth/v2/accessToken"
USERINFO_PATH = "/v2/userinfo"


class FakeLinkedIn:
    """Stand-in for LinkedIn's token and userinfo endpoints."""

    def __init__(self) -> None:
        self.token_status = 200
        self.token_body: object = {
            "access_token": "access-token-1",
            "expires_in": 5184000,
            "scope": "email,openid,profile",
            "token_type": "Bearer",
        }
        self.userinfo_status = 200
        self.claims: dict = {
            "sub": "member-42",
            "given_name": "Ada",
            "family_name": "Lovelace",
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "email_verified": True,
        }
        self.token_errors: list[Exception] = []
        self.userinfo_errors: list[Exception] = []
        self.token_requests: list[httpx.Request] = []
        self.userinfo_requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == TOKEN_PATH:
            self.token_requests.append(request)
            if self.token_errors:
                raise self.token_errors.pop(0)
            if isinstance(self.token_body, str):
                return httpx.Response(self.token_status, text=self.token_body)
            return httpx.Response(self.token_status, json=self.token_body)
        if request.url.path == USERINFO_PATH:
            self.userinfo_requests.append(request)
            if self.userinfo_errors:
                raise self.userinfo_errors.pop(0)
            return httpx.Response(self.userinfo_status, json=self.claims)
        return httpx.Response(404, json={"message": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class InMemoryAccountStore:
    def __init__(self) -> None:
        self.rows: dict[str, Account] = {}
        self.fail_writes = False

    async def upsert_account(self, account: Account) -> Account:
        if self.fail_writes:
            raise AccountStoreError("profile table unavailable", response_body="503")
        existing = self.rows.get(account.linkedin_id)
        if existing is not None:
            account = account.model_copy(
                update={"id": existing.id, "created_at": existing.created_at}
            )
        self.rows[account.linkedin_id] = account
        return account

    async def get_account(self, account_id: str) -> Optional[Account]:
        for row in self.rows.values():
            if row.id == account_id:
                return row
        return None


class InMemoryAuthDirectory:
    def __init__(self) -> None:
        self.users: dict[str, AuthUser] = {}
        self.create_calls = 0
        self.fail_creates = False
        self.fail_lookups = False

    async def get_user(self, user_id: str) -> Optional[AuthUser]:
        if self.fail_lookups:
            raise AccountStoreError("auth directory unavailable")
        return self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[AuthUser]:
        if self.fail_lookups:
            raise AccountStoreError("auth directory unavailable")
        for user in self.users.values():
            if user.email.casefold() == email.casefold():
                return user
        return None

    async def create_user(
        self, *, user_id: str, email: str, linkedin_id: str, full_name: str = ""
    ) -> AuthUser:
        self.create_calls += 1
        if self.fail_creates:
            raise AccountStoreError("signups disabled", response_body="422")
        if any(user.email == email for user in self.users.values()):
            raise AccountStoreError("email_exists", response_body="422")
        user = AuthUser(id=user_id, email=email, linkedin_id=linkedin_id)
        self.users[user_id] = user
        return user


def make_linkedin_settings(**overrides: str) -> LinkedInSettings:
    values = {
        "LINKEDIN_CLIENT_ID": "client123",
        "LINKEDIN_CLIENT_SECRET": "client-secret",
        "LINKEDIN_REDIRECT_URI": "https://app/cb",
    }
    values.update(overrides)
    return LinkedInSettings(**values)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def fake_linkedin() -> FakeLinkedIn:
    return FakeLinkedIn()


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def auth_directory() -> InMemoryAuthDirectory:
    return InMemoryAuthDirectory()


@pytest.fixture
def session_binder(auth_directory: InMemoryAuthDirectory) -> SessionBinder:
    return SessionBinder(
        auth_directory=auth_directory,
        secret_key="session-secret",
        ttl_seconds=3600,
    )


@pytest.fixture
def token_cipher() -> TokenCipherService:
    return TokenCipherService(secret="cipher-secret")


@pytest.fixture
def login_service(
    fake_linkedin: FakeLinkedIn,
    account_store: InMemoryAccountStore,
    session_binder: SessionBinder,
    token_cipher: TokenCipherService,
) -> LinkedInLoginService:
    oauth_client = LinkedInOAuthClient(
        make_linkedin_settings(),
        transport=fake_linkedin.transport,
        identity_retry=RetryConfig(attempts=2, backoff_seconds=0),
    )
    return LinkedInLoginService(
        oauth_client=oauth_client,
        account_store=account_store,
        session_binder=session_binder,
        token_cipher=token_cipher,
        scopes=("openid", "profile", "email"),
        state_ttl_seconds=900,
    )
