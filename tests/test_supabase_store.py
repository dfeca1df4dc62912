from __future__ import annotations

import json

import httpx
import pytest

from linkedin_studio.clients import SupabaseAccountStore, SupabaseAuthDirectory
from linkedin_studio.core.config import AccountStoreSettings
from linkedin_studio.core.errors import AccountStoreError
from linkedin_studio.models.oauth import Account

SETTINGS = AccountStoreSettings(
    ACCOUNT_STORE_URL="https://project.supabase.co/",
    ACCOUNT_STORE_SERVICE_KEY="service-role-key",
)


class RecordingTransport:
    def __init__(self, responses: list[httpx.Response]) -> None:
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def _account() -> Account:
    return Account(
        id="account-1",
        email="ada@example.com",
        linkedin_id="member-42",
        first_name="Ada",
        access_token_encrypted="cipher",
    )


@pytest.mark.asyncio
async def test_upsert_merges_on_linkedin_id() -> None:
    stored = {**_account().model_dump(mode="json"), "created_at": "2024-01-01T00:00:00+00:00"}
    recorder = RecordingTransport([httpx.Response(201, json=[stored])])
    store = SupabaseAccountStore(SETTINGS, transport=httpx.MockTransport(recorder))

    account = await store.upsert_account(_account())

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/users"
    assert request.url.params["on_conflict"] == "linkedin_id"
    assert "resolution=merge-duplicates" in request.headers["prefer"]
    assert request.headers["apikey"] == "service-role-key"
    assert request.headers["authorization"] == "Bearer service-role-key"

    body = json.loads(request.content)
    assert body[0]["linkedin_id"] == "member-42"
    assert "created_at" not in body[0]
    assert account.created_at.year == 2024


@pytest.mark.asyncio
async def test_upsert_rejection_raises_store_error() -> None:
    recorder = RecordingTransport([httpx.Response(409, json={"message": "conflict"})])
    store = SupabaseAccountStore(SETTINGS, transport=httpx.MockTransport(recorder))

    with pytest.raises(AccountStoreError) as exc_info:
        await store.upsert_account(_account())
    assert "conflict" in exc_info.value.response_body


@pytest.mark.asyncio
async def test_get_account_filters_by_id() -> None:
    recorder = RecordingTransport([httpx.Response(200, json=[])])
    store = SupabaseAccountStore(SETTINGS, transport=httpx.MockTransport(recorder))

    assert await store.get_account("account-1") is None
    assert recorder.requests[0].url.params["id"] == "eq.account-1"


@pytest.mark.asyncio
async def test_auth_directory_maps_not_found_to_none() -> None:
    recorder = RecordingTransport([httpx.Response(404, json={"msg": "User not found"})])
    directory = SupabaseAuthDirectory(SETTINGS, transport=httpx.MockTransport(recorder))

    assert await directory.get_user("account-1") is None
    assert recorder.requests[0].url.path == "/auth/v1/admin/users/account-1"


@pytest.mark.asyncio
async def test_auth_directory_creates_confirmed_user() -> None:
    recorder = RecordingTransport(
        [
            httpx.Response(
                200,
                json={
                    "id": "account-1",
                    "email": "ada@example.com",
                    "user_metadata": {"linkedin_id": "member-42"},
                    "created_at": "2024-01-01T00:00:00Z",
                },
            )
        ]
    )
    directory = SupabaseAuthDirectory(SETTINGS, transport=httpx.MockTransport(recorder))

    user = await directory.create_user(
        user_id="account-1",
        email="ada@example.com",
        linkedin_id="member-42",
        full_name="Ada Lovelace",
    )

    body = json.loads(recorder.requests[0].content)
    assert body["email_confirm"] is True
    assert body["user_metadata"] == {"linkedin_id": "member-42", "full_name": "Ada Lovelace"}
    assert "password" not in body
    assert user.linkedin_id == "member-42"


@pytest.mark.asyncio
async def test_auth_directory_surfaces_creation_failure() -> None:
    recorder = RecordingTransport([httpx.Response(422, json={"msg": "email_exists"})])
    directory = SupabaseAuthDirectory(SETTINGS, transport=httpx.MockTransport(recorder))

    with pytest.raises(AccountStoreError):
        await directory.create_user(
            user_id="account-1", email="ada@example.com", linkedin_id="member-42"
        )


@pytest.mark.asyncio
async def test_transport_failures_become_store_errors() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused")

    directory = SupabaseAuthDirectory(SETTINGS, transport=httpx.MockTransport(refuse))

    with pytest.raises(AccountStoreError):
        await directory.get_user("account-1")


@pytest.mark.asyncio
async def test_auth_directory_matches_email_exactly_among_filter_results() -> None:
    recorder = RecordingTransport(
        [
            httpx.Response(
                200,
                json={
                    "users": [
                        {"id": "other", "email": "ada@example.com.au"},
                        {"id": "signup-7", "email": "Ada@Example.com"},
                    ]
                },
            )
        ]
    )
    directory = SupabaseAuthDirectory(SETTINGS, transport=httpx.MockTransport(recorder))

    user = await directory.get_user_by_email("ada@example.com")

    request = recorder.requests[0]
    assert request.url.path == "/auth/v1/admin/users"
    assert request.url.params["filter"] == "ada@example.com"
    assert user is not None and user.id == "signup-7"


@pytest.mark.asyncio
async def test_auth_directory_email_search_without_match_returns_none() -> None:
    recorder = RecordingTransport([httpx.Response(200, json={"users": []})])
    directory = SupabaseAuthDirectory(SETTINGS, transport=httpx.MockTransport(recorder))

    assert await directory.get_user_by_email("ada@example.com") is None
