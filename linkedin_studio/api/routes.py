"""
FastAPI routes for LinkedIn sign-in and session lookup.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Mapping, Optional
from urllib.parse import urlencode, urljoin, urlsplit

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from linkedin_studio.core.config import AppSettings
from linkedin_studio.core.errors import AuthFlowError, InvalidSessionError
from linkedin_studio.dependencies import (
    get_app_settings,
    get_frontend_origin,
    get_login_service,
    get_oauth_state_cookie,
)
from linkedin_studio.schemas import (
    AccountView,
    AuthErrorResponse,
    AuthorizeResponse,
    CallbackResponse,
    OAuthCallbackPayload,
    SessionResponse,
)
from linkedin_studio.services import SESSION_COOKIE_NAME, STATE_COOKIE_NAME

router = APIRouter()
logger = logging.getLogger(__name__)


def _wants_html(request: Request) -> bool:
    accept_header = request.headers.get("accept", "")
    return "text/html" in accept_header.lower()


def _is_safe_redirect(target: str, frontend_origin: Optional[str]) -> bool:
    """Allow same-site paths, or absolute URLs on the configured front-end."""
    if target.startswith("/") and not target.startswith("//"):
        return True
    parts = urlsplit(target)
    if parts.scheme not in {"http", "https"} or not frontend_origin:
        return False
    return f"{parts.scheme}://{parts.netloc}" == frontend_origin


def _login_page(settings: AppSettings) -> str:
    if settings.frontend_base_url:
        return urljoin(settings.frontend_base_url, "/login")
    return "/login"


def auth_error_response(
    request: Request, exc: AuthFlowError, settings: AppSettings
) -> Response:
    """Render a flow failure as JSON, or send browsers back to the login page."""
    if _wants_html(request) and settings.frontend_base_url:
        query = urlencode({"error": exc.kind})
        return RedirectResponse(
            url=f"{_login_page(settings)}?{query}",
            status_code=HTTPStatus.TEMPORARY_REDIRECT,
        )

    body = AuthErrorResponse(
        error=exc.kind,
        message=f"Authentication failed: {exc.message}",
        retry_url=_login_page(settings),
    )
    return JSONResponse(status_code=int(exc.status_code), content=body.model_dump())


def _set_cookie(
    response: Response,
    key: str,
    value: str,
    *,
    max_age: int,
    settings: AppSettings,
) -> None:
    response.set_cookie(
        key,
        value,
        max_age=max_age,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )


def _session_token_from(request: Request) -> str:
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        raise InvalidSessionError("No session token supplied.")
    return token


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/linkedin/authorize", status_code=HTTPStatus.OK)
async def start_linkedin_oauth_flow(
    request: Request,
    login_service: Annotated[Any, Depends(get_login_service)],
    state_cookie: Annotated[Any, Depends(get_oauth_state_cookie)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    frontend_origin: Annotated[Optional[str], Depends(get_frontend_origin)],
    redirect_to: str | None = Query(
        default=None,
        description="Optional URL to redirect back to on successful authentication.",
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the LinkedIn consent screen.",
    ),
) -> Response:
    """
    Kick off the OAuth flow by generating a state token and authorization URL.
    """
    if redirect_to and not _is_safe_redirect(redirect_to, frontend_origin):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="redirect_to must be a relative path or a front-end URL.",
        )

    login = login_service.begin_login(redirect_to=redirect_to)

    response: Response
    if redirect or _wants_html(request):
        response = RedirectResponse(
            url=login.authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )
    else:
        body = AuthorizeResponse(
            authorization_url=login.authorization_url, state=login.state.state
        )
        response = JSONResponse(content=body.model_dump())

    _set_cookie(
        response,
        STATE_COOKIE_NAME,
        state_cookie.dump(login.state),
        max_age=state_cookie.ttl_seconds,
        settings=settings,
    )
    return response


async def _complete_linkedin_login(
    request: Request,
    query_params: Mapping[str, Optional[str]],
    login_service: Any,
    state_cookie: Any,
    settings: AppSettings,
    redirect: bool = False,
) -> Response:
    """Run the callback and translate the outcome into an HTTP response.

    The state cookie is cleared on every outcome so a state is never reused.
    """
    stored_state = state_cookie.load(request.cookies.get(STATE_COOKIE_NAME))

    try:
        result = await login_service.handle_callback(query_params, stored_state)
    except AuthFlowError as exc:
        response = auth_error_response(request, exc, settings)
        response.delete_cookie(STATE_COOKIE_NAME)
        return response

    session_token = result.session.token.get_secret_value()
    payload = CallbackResponse(
        account=AccountView(**result.account.public_view()),
        session_token=session_token,
        expires_in=result.session.expires_in,
        new_user=result.session.new_user,
        redirect_to=result.redirect_to,
    )

    redirect_target = result.redirect_to or settings.frontend_base_url
    if redirect_target and settings.frontend_base_url:
        redirect_target = urljoin(settings.frontend_base_url, redirect_target)

    response: Response
    if redirect_target and (redirect or _wants_html(request)):
        response = RedirectResponse(
            url=redirect_target, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )
    else:
        response = JSONResponse(content=payload.model_dump())

    response.delete_cookie(STATE_COOKIE_NAME)
    _set_cookie(
        response,
        SESSION_COOKIE_NAME,
        session_token,
        max_age=result.session.expires_in,
        settings=settings,
    )
    return response


@router.get("/auth/linkedin/callback", status_code=HTTPStatus.OK)
async def handle_linkedin_oauth_callback_get(
    request: Request,
    login_service: Annotated[Any, Depends(get_login_service)],
    state_cookie: Annotated[Any, Depends(get_oauth_state_cookie)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    redirect: bool = Query(
        default=False,
        description="When true, redirect browser clients instead of returning JSON.",
    ),
) -> Response:
    """LinkedIn redirects the browser here with ``code``/``state`` or ``error``."""
    params = request.query_params
    query_params = {
        name: params.get(name)
        for name in ("code", "state", "error", "error_description")
    }
    return await _complete_linkedin_login(
        request,
        query_params,
        login_service,
        state_cookie,
        settings,
        redirect=redirect,
    )


@router.post("/auth/linkedin/callback", status_code=HTTPStatus.OK)
async def handle_linkedin_oauth_callback(
    payload: OAuthCallbackPayload,
    request: Request,
    login_service: Annotated[Any, Depends(get_login_service)],
    state_cookie: Annotated[Any, Depends(get_oauth_state_cookie)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
) -> Response:
    """Complete the exchange for clients that read the callback query themselves."""
    return await _complete_linkedin_login(
        request,
        payload.as_query_params(),
        login_service,
        state_cookie,
        settings,
    )


@router.get("/auth/session", response_model=SessionResponse)
async def read_session(
    request: Request,
    login_service: Annotated[Any, Depends(get_login_service)],
) -> SessionResponse:
    """Return the account bound to the caller's session token."""
    token = _session_token_from(request)
    claims = login_service.verify_session(token)
    account = await login_service.current_account(claims)
    return SessionResponse(
        account=AccountView(**account.public_view()),
        expires_at=claims.expires_at.isoformat(),
    )


@router.post("/auth/logout", status_code=HTTPStatus.OK)
async def logout() -> Response:
    response = JSONResponse(content={"status": "signed_out"})
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response
