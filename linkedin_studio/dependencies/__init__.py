"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_account_store,
    get_auth_directory,
    get_linkedin_oauth_client,
    get_login_service,
    get_oauth_state_cookie,
    get_session_binder,
    get_token_cipher_service,
)
from .config import SettingsDependency, get_app_settings, get_frontend_origin

__all__ = [
    "SettingsDependency",
    "get_account_store",
    "get_app_settings",
    "get_auth_directory",
    "get_frontend_origin",
    "get_linkedin_oauth_client",
    "get_login_service",
    "get_oauth_state_cookie",
    "get_session_binder",
    "get_token_cipher_service",
]
