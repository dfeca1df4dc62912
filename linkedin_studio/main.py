"""
FastAPI application entrypoint for the LinkedIn Studio sign-in service.
"""

from __future__ import annotations

from fastapi import FastAPI, Request

from linkedin_studio.api.routes import auth_error_response, router as api_router
from linkedin_studio.core.config import get_settings
from linkedin_studio.core.errors import AuthFlowError
from linkedin_studio.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application.

    Settings are loaded eagerly; missing configuration fails at startup.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="LinkedIn Studio",
        version="0.1.0",
        description="LinkedIn OAuth sign-in and session service for the content dashboard.",
    )
    app.include_router(api_router, prefix="/api")

    @app.exception_handler(AuthFlowError)
    async def _handle_auth_flow_error(request: Request, exc: AuthFlowError):
        return auth_error_response(request, exc, get_settings())

    return app


app = create_app()

__all__ = ["app", "create_app"]
