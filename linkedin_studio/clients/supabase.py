"""
Thin wrappers over the hosted (Supabase) REST and admin-auth endpoints.

Both stores authenticate with the service credential, so they must only ever
run server side.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from linkedin_studio.core.config import AccountStoreSettings
from linkedin_studio.core.errors import AccountStoreError
from linkedin_studio.models.oauth import Account, AuthUser

logger = logging.getLogger(__name__)


class _SupabaseClient:
    def __init__(
        self,
        settings: AccountStoreSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._settings = settings
        self._base_url = settings.url.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self._settings.service_key,
            "Authorization": f"Bearer {self._settings.service_key}",
            "Accept": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                return await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise AccountStoreError(
                f"Account store request {method} {path} failed: {type(exc).__name__}"
            ) from exc


class SupabaseAccountStore(_SupabaseClient):
    """Profile rows in a PostgREST table keyed by ``linkedin_id``."""

    @property
    def _table_path(self) -> str:
        return f"/rest/v1/{self._settings.profile_table}"

    async def upsert_account(self, account: Account) -> Account:
        row = account.model_dump(mode="json", exclude={"created_at"})
        response = await self._request(
            "POST",
            self._table_path,
            params={"on_conflict": "linkedin_id"},
            json=[row],
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        if not response.is_success:
            raise AccountStoreError(
                f"Profile upsert rejected ({response.status_code})",
                response_body=response.text,
            )
        rows = response.json()
        if not rows:
            raise AccountStoreError(
                "Profile upsert returned no rows", response_body=response.text
            )
        return Account.model_validate(rows[0])

    async def _select_one(self, column: str, value: str) -> Optional[Account]:
        response = await self._request(
            "GET",
            self._table_path,
            params={column: f"eq.{value}", "select": "*", "limit": "1"},
        )
        if not response.is_success:
            raise AccountStoreError(
                f"Profile lookup failed ({response.status_code})",
                response_body=response.text,
            )
        rows = response.json()
        if not rows:
            return None
        return Account.model_validate(rows[0])

    async def get_account(self, account_id: str) -> Optional[Account]:
        return await self._select_one("id", account_id)


class SupabaseAuthDirectory(_SupabaseClient):
    """Auth users managed through the admin API."""

    @staticmethod
    def _to_auth_user(payload: Dict[str, Any]) -> AuthUser:
        metadata = payload.get("user_metadata") or {}
        data = {
            "id": payload["id"],
            "email": payload.get("email") or "",
            "linkedin_id": metadata.get("linkedin_id"),
        }
        if payload.get("created_at"):
            data["created_at"] = payload["created_at"]
        return AuthUser.model_validate(data)

    async def get_user(self, user_id: str) -> Optional[AuthUser]:
        response = await self._request("GET", f"/auth/v1/admin/users/{user_id}")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if not response.is_success:
            raise AccountStoreError(
                f"Auth user lookup failed ({response.status_code})",
                response_body=response.text,
            )
        return self._to_auth_user(response.json())

    async def get_user_by_email(self, email: str) -> Optional[AuthUser]:
        """Find an auth user by email; the admin filter is a substring match."""
        response = await self._request(
            "GET",
            "/auth/v1/admin/users",
            params={"filter": email, "per_page": "50"},
        )
        if not response.is_success:
            raise AccountStoreError(
                f"Auth user search failed ({response.status_code})",
                response_body=response.text,
            )
        wanted = email.casefold()
        for payload in response.json().get("users") or []:
            if (payload.get("email") or "").casefold() == wanted:
                return self._to_auth_user(payload)
        return None

    async def create_user(
        self,
        *,
        user_id: str,
        email: str,
        linkedin_id: str,
        full_name: str = "",
    ) -> AuthUser:
        response = await self._request(
            "POST",
            "/auth/v1/admin/users",
            json={
                "id": user_id,
                "email": email,
                "email_confirm": True,
                "user_metadata": {"linkedin_id": linkedin_id, "full_name": full_name},
            },
        )
        if not response.is_success:
            raise AccountStoreError(
                f"Auth user creation failed ({response.status_code})",
                response_body=response.text,
            )
        logger.info("Created auth user %s for LinkedIn member %s", user_id, linkedin_id)
        return self._to_auth_user(response.json())


__all__ = ["SupabaseAccountStore", "SupabaseAuthDirectory"]
