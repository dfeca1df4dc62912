"""SQLite-backed substitute for the hosted profile and auth stores."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import anyio

from linkedin_studio.core.errors import AccountStoreError
from linkedin_studio.models.oauth import Account, AuthUser

_ACCOUNT_UPDATE_COLUMNS = (
    "email",
    "first_name",
    "last_name",
    "profile_data",
    "access_token_encrypted",
    "refresh_token_encrypted",
    "token_expires_at",
    "updated_at",
)


class SQLiteDatabase:
    """Owns the database file and schema shared by both SQLite stores."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    linkedin_id TEXT NOT NULL UNIQUE,
                    email TEXT NOT NULL,
                    first_name TEXT NOT NULL DEFAULT '',
                    last_name TEXT NOT NULL DEFAULT '',
                    profile_data TEXT NOT NULL DEFAULT '{}',
                    access_token_encrypted TEXT,
                    refresh_token_encrypted TEXT,
                    token_expires_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS auth_users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    linkedin_id TEXT UNIQUE,
                    created_at TEXT NOT NULL
                )
                """
            )


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _row_to_account(row: sqlite3.Row) -> Account:
    data: Dict[str, Any] = dict(row)
    data["profile_data"] = json.loads(data.get("profile_data") or "{}")
    return Account.model_validate(data)


class SQLiteAccountStore:
    """Profile rows keyed by ``linkedin_id`` with update-on-conflict upserts."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def _upsert(self, account: Account) -> Account:
        row = {
            "id": account.id,
            "linkedin_id": account.linkedin_id,
            "email": account.email,
            "first_name": account.first_name,
            "last_name": account.last_name,
            "profile_data": json.dumps(account.profile_data),
            "access_token_encrypted": account.access_token_encrypted,
            "refresh_token_encrypted": account.refresh_token_encrypted,
            "token_expires_at": _isoformat(account.token_expires_at),
            "created_at": _isoformat(account.created_at),
            "updated_at": _isoformat(account.updated_at),
        }
        columns = ", ".join(row)
        placeholders = ", ".join(f":{name}" for name in row)
        updates = ", ".join(f"{name} = excluded.{name}" for name in _ACCOUNT_UPDATE_COLUMNS)
        with self._db.connect() as conn:
            conn.execute(
                f"""
                INSERT INTO accounts ({columns})
                VALUES ({placeholders})
                ON CONFLICT(linkedin_id) DO UPDATE SET {updates}
                """,
                row,
            )
            stored = conn.execute(
                "SELECT * FROM accounts WHERE linkedin_id = ?",
                (account.linkedin_id,),
            ).fetchone()
        return _row_to_account(stored)

    def _get(self, account_id: str) -> Optional[Account]:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE id = ?", (account_id,)
            ).fetchone()
        if not row:
            return None
        return _row_to_account(row)

    async def upsert_account(self, account: Account) -> Account:
        try:
            return await anyio.to_thread.run_sync(self._upsert, account)
        except sqlite3.Error as exc:
            raise AccountStoreError(f"SQLite account upsert failed: {exc}") from exc

    async def get_account(self, account_id: str) -> Optional[Account]:
        try:
            return await anyio.to_thread.run_sync(self._get, account_id)
        except sqlite3.Error as exc:
            raise AccountStoreError(f"SQLite account lookup failed: {exc}") from exc


class SQLiteAuthDirectory:
    """Authentication identities, stored apart from profile rows."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def _get(self, column: str, value: str) -> Optional[AuthUser]:
        with self._db.connect() as conn:
            row = conn.execute(
                f"SELECT * FROM auth_users WHERE {column} = ?", (value,)
            ).fetchone()
        if not row:
            return None
        return AuthUser.model_validate(dict(row))

    def _create(self, user: AuthUser) -> AuthUser:
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO auth_users (id, email, linkedin_id, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (user.id, user.email, user.linkedin_id, _isoformat(user.created_at)),
            )
        return user

    async def get_user(self, user_id: str) -> Optional[AuthUser]:
        try:
            return await anyio.to_thread.run_sync(self._get, "id", user_id)
        except sqlite3.Error as exc:
            raise AccountStoreError(f"SQLite auth lookup failed: {exc}") from exc

    async def get_user_by_email(self, email: str) -> Optional[AuthUser]:
        try:
            return await anyio.to_thread.run_sync(self._get, "email", email)
        except sqlite3.Error as exc:
            raise AccountStoreError(f"SQLite auth lookup failed: {exc}") from exc

    async def create_user(
        self,
        *,
        user_id: str,
        email: str,
        linkedin_id: str,
        full_name: str = "",
    ) -> AuthUser:
        user = AuthUser(id=user_id, email=email, linkedin_id=linkedin_id)
        try:
            return await anyio.to_thread.run_sync(self._create, user)
        except sqlite3.Error as exc:
            raise AccountStoreError(f"SQLite auth user creation failed: {exc}") from exc


__all__ = ["SQLiteAccountStore", "SQLiteAuthDirectory", "SQLiteDatabase"]
