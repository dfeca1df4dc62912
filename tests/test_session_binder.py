from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from conftest import InMemoryAuthDirectory
from linkedin_studio.core.errors import (
    AccountConflictError,
    AccountStoreError,
    AuthProvisioningError,
    InvalidSessionError,
)
from linkedin_studio.models.oauth import Account, AuthUser, ExternalIdentity
from linkedin_studio.services import SessionBinder


def _identity(subject: str = "member-1") -> ExternalIdentity:
    return ExternalIdentity.from_userinfo(
        {"sub": subject, "given_name": "Grace", "family_name": "Hopper"}
    )


def _account(identity: ExternalIdentity) -> Account:
    return Account(id=identity.account_id, email=identity.email, linkedin_id=identity.subject)


class RacingAuthDirectory(InMemoryAuthDirectory):
    """Another request creates the user between our lookup and our insert."""

    async def create_user(self, *, user_id, email, linkedin_id, full_name=""):
        self.create_calls += 1
        self.users[user_id] = AuthUser(id=user_id, email=email, linkedin_id=linkedin_id)
        raise AccountStoreError("duplicate key value violates unique constraint")


def _binder(directory, *, secret: str = "session-secret", ttl: int = 3600) -> SessionBinder:
    return SessionBinder(
        auth_directory=directory,
        secret_key=secret,
        ttl_seconds=ttl,
    )


@pytest.mark.asyncio
async def test_first_bind_provisions_then_reuses_the_user() -> None:
    directory = InMemoryAuthDirectory()
    binder = _binder(directory)
    identity = _identity()
    account = _account(identity)

    first = await binder.bind(identity, account)
    second = await binder.bind(identity, account)

    assert first.new_user is True
    assert second.new_user is False
    assert first.account_id == second.account_id == account.id
    assert directory.create_calls == 1


@pytest.mark.asyncio
async def test_bind_recovers_when_a_concurrent_login_created_the_user() -> None:
    directory = RacingAuthDirectory()
    identity = _identity()

    grant = await _binder(directory).bind(identity, _account(identity))

    assert grant.account_id == identity.account_id
    assert grant.new_user is False


@pytest.mark.asyncio
async def test_bind_reports_provisioning_failure() -> None:
    directory = InMemoryAuthDirectory()
    directory.fail_creates = True
    identity = _identity()

    with pytest.raises(AuthProvisioningError):
        await _binder(directory).bind(identity, _account(identity))


@pytest.mark.asyncio
async def test_lookup_failure_is_not_reported_as_provisioning() -> None:
    directory = InMemoryAuthDirectory()
    directory.fail_lookups = True
    identity = _identity()

    with pytest.raises(AccountStoreError) as exc_info:
        await _binder(directory).bind(identity, _account(identity))

    assert not isinstance(exc_info.value, AuthProvisioningError)
    assert directory.create_calls == 0


@pytest.mark.asyncio
async def test_session_token_round_trips_to_claims() -> None:
    binder = _binder(InMemoryAuthDirectory())
    identity = _identity("member-9")
    grant = await binder.bind(identity, _account(identity))

    claims = binder.verify(grant.token.get_secret_value())

    assert claims.account_id == identity.account_id
    assert claims.linkedin_id == "member-9"
    assert claims.expires_at > datetime.now(timezone.utc)


@pytest.mark.asyncio
async def test_tampered_or_foreign_tokens_are_rejected() -> None:
    binder = _binder(InMemoryAuthDirectory())
    identity = _identity()
    grant = await binder.bind(identity, _account(identity))
    token = grant.token.get_secret_value()

    other = _binder(InMemoryAuthDirectory(), secret="someone-else")
    with pytest.raises(InvalidSessionError):
        other.verify(token)

    flipped = token[:-2] + ("A" if token[-2] != "A" else "B") + token[-1]
    with pytest.raises(InvalidSessionError):
        binder.verify(flipped)

    with pytest.raises(InvalidSessionError):
        binder.verify("not-a-token")


def test_expired_tokens_are_rejected() -> None:
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = jwt.encode(
        {
            "sub": "account-1",
            "linkedin_id": "member-1",
            "iat": issued,
            "exp": issued + timedelta(hours=1),
        },
        "session-secret",
        algorithm="HS256",
    )

    with pytest.raises(InvalidSessionError, match="expired"):
        _binder(InMemoryAuthDirectory()).verify(token)


def test_tokens_missing_session_claims_are_rejected() -> None:
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "account-1", "iat": now, "exp": now + timedelta(hours=1)},
        "session-secret",
        algorithm="HS256",
    )

    with pytest.raises(InvalidSessionError):
        _binder(InMemoryAuthDirectory()).verify(token)


def test_unsigned_tokens_are_rejected() -> None:
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {
            "sub": "account-1",
            "linkedin_id": "member-1",
            "iat": now,
            "exp": now + timedelta(hours=1),
        },
        None,
        algorithm="none",
    )

    with pytest.raises(InvalidSessionError):
        _binder(InMemoryAuthDirectory()).verify(token)


@pytest.mark.asyncio
async def test_session_token_is_an_hs256_jwt() -> None:
    binder = _binder(InMemoryAuthDirectory(), ttl=600)
    identity = _identity("member-3")
    grant = await binder.bind(identity, _account(identity))

    token = grant.token.get_secret_value()
    header = jwt.get_unverified_header(token)
    payload = jwt.decode(token, "session-secret", algorithms=["HS256"])

    assert header["alg"] == "HS256"
    assert payload["sub"] == identity.account_id
    assert payload["linkedin_id"] == "member-3"
    assert payload["exp"] - payload["iat"] == 600
    assert grant.expires_in == 600


@pytest.mark.asyncio
async def test_email_held_by_another_user_is_reported_as_conflict() -> None:
    directory = InMemoryAuthDirectory()
    identity = ExternalIdentity.from_userinfo(
        {"sub": "member-5", "given_name": "Ada", "email": "ada@example.com"}
    )
    directory.users["signup-7"] = AuthUser(id="signup-7", email="ada@example.com")

    with pytest.raises(AccountConflictError) as exc_info:
        await _binder(directory).bind(identity, _account(identity))

    assert isinstance(exc_info.value, AuthProvisioningError)
    assert exc_info.value.kind == "account_conflict"
    assert exc_info.value.status_code == 409
    assert identity.account_id not in directory.users


def test_binder_requires_a_secret() -> None:
    with pytest.raises(ValueError):
        _binder(InMemoryAuthDirectory(), secret="")


def test_account_ids_are_deterministic_per_subject() -> None:
    assert _identity("member-1").account_id == _identity("member-1").account_id
    assert _identity("member-1").account_id != _identity("member-2").account_id
