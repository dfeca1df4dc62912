"""
FastAPI dependency utilities for injecting configuration.
"""

from functools import lru_cache
from typing import Optional
from urllib.parse import urlsplit

from fastapi import Depends

from linkedin_studio.core.config import AppSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_frontend_origin(
    settings: AppSettings = Depends(get_app_settings),
) -> Optional[str]:
    """Scheme and host of the configured front-end, used to vet redirect targets."""
    if not settings.frontend_base_url:
        return None
    parts = urlsplit(settings.frontend_base_url)
    return f"{parts.scheme}://{parts.netloc}"


SettingsDependency = Depends(get_app_settings)

__all__ = ["SettingsDependency", "get_app_settings", "get_frontend_origin"]
