"""Expose constructed client wrappers."""

from .linkedin_auth import LinkedInOAuthClient, build_authorization_url
from .sqlite_store import SQLiteAccountStore, SQLiteAuthDirectory, SQLiteDatabase
from .supabase import SupabaseAccountStore, SupabaseAuthDirectory

__all__ = [
    "LinkedInOAuthClient",
    "SQLiteAccountStore",
    "SQLiteAuthDirectory",
    "SQLiteDatabase",
    "SupabaseAccountStore",
    "SupabaseAuthDirectory",
    "build_authorization_url",
]
