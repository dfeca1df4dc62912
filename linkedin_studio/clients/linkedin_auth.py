"""
LinkedIn OAuth utilities.

These helpers build the consent URL, exchange authorization codes and fetch
the member's OpenID Connect identity.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable
from urllib.parse import urlencode

import httpx

from linkedin_studio.core.config import LinkedInSettings
from linkedin_studio.core.errors import (
    IdentityFetchError,
    ProviderTimeoutError,
    TokenExchangeError,
)
from linkedin_studio.models.oauth import ExternalIdentity, TokenSet
from linkedin_studio.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)

PROVIDER_NAME = "linkedin"


def normalize_scopes(scopes: str | Iterable[str]) -> str:
    """Return scopes as the space separated string OAuth expects."""
    if isinstance(scopes, str):
        items = scopes.replace(",", " ").split()
    else:
        items = [scope.strip() for scope in scopes]
    return " ".join(scope for scope in items if scope)


def build_authorization_url(
    *,
    authorization_url: str,
    client_id: str,
    redirect_uri: str,
    scopes: str | Iterable[str],
    state: str,
) -> str:
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": normalize_scopes(scopes),
        "state": state,
    }
    return f"{authorization_url}?{urlencode(params)}"


class LinkedInOAuthClient:
    """Exchange authorization codes and read identities from LinkedIn."""

    def __init__(
        self,
        settings: LinkedInSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        identity_retry: RetryConfig | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._identity_retry = identity_retry or RetryConfig(attempts=2)

    @property
    def client_id(self) -> str:
        return self._settings.client_id

    @property
    def redirect_uri(self) -> str:
        return self._settings.redirect_uri

    @property
    def authorization_endpoint(self) -> str:
        return self._settings.authorization_url

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds,
            transport=self._transport,
        )

    async def exchange_authorization_code(self, code: str) -> TokenSet:
        """Exchange an authorization code for tokens.

        Codes are single use, so the request is never replayed.
        """
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self._settings.redirect_uri,
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
        }

        try:
            async with self._http_client() as client:
                response = await client.post(
                    self._settings.token_url,
                    data=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(
                "Timed out exchanging the authorization code with LinkedIn."
            ) from exc
        except httpx.HTTPError as exc:
            raise TokenExchangeError(
                f"Could not reach the LinkedIn token endpoint: {type(exc).__name__}"
            ) from exc

        if not response.is_success:
            raise TokenExchangeError(
                f"LinkedIn token exchange failed ({response.status_code})",
                upstream_status=response.status_code,
                response_body=response.text,
            )

        token_payload = self._json_object(response)
        if token_payload is None or not token_payload.get("access_token"):
            raise TokenExchangeError(
                "No access token received from LinkedIn",
                upstream_status=response.status_code,
                response_body=response.text,
            )

        return TokenSet.from_token_response(token_payload)

    async def fetch_identity(self, access_token: str) -> ExternalIdentity:
        """Read the member's identity using the access token as bearer credential."""
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

        try:
            async with self._http_client() as client:
                response = await request_with_retry(
                    client.get,
                    self._settings.userinfo_url,
                    headers=headers,
                    retry_config=self._identity_retry,
                )
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(
                "Timed out fetching the LinkedIn profile."
            ) from exc
        except httpx.HTTPError as exc:
            raise IdentityFetchError(
                f"Could not reach the LinkedIn userinfo endpoint: {type(exc).__name__}"
            ) from exc

        if not response.is_success:
            raise IdentityFetchError(
                f"Profile fetch failed ({response.status_code})",
                upstream_status=response.status_code,
                response_body=response.text,
            )

        claims = self._json_object(response)
        if claims is None or not claims.get("sub"):
            raise IdentityFetchError(
                "LinkedIn profile response did not include a subject identifier",
                upstream_status=response.status_code,
                response_body=response.text,
            )

        identity = ExternalIdentity.from_userinfo(claims, provider=PROVIDER_NAME)
        if identity.email_is_placeholder:
            logger.info(
                "LinkedIn did not return an email for %s; using placeholder",
                identity.subject,
            )
        return identity

    @staticmethod
    def _json_object(response: httpx.Response) -> Dict[str, Any] | None:
        try:
            payload = response.json()
        except ValueError:
            return None
        return payload if isinstance(payload, dict) else None


__all__ = [
    "LinkedInOAuthClient",
    "PROVIDER_NAME",
    "build_authorization_url",
    "normalize_scopes",
]
