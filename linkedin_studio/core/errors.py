"""
Error taxonomy for the LinkedIn sign-in flow.

Every failure carries a machine-readable ``kind`` and the HTTP status the API
layer renders it with. Provider response bodies are kept on the exception for
diagnostics and never echoed back to the browser.
"""

from __future__ import annotations

from http import HTTPStatus


class AuthFlowError(Exception):
    """Base class for failures that abort a sign-in attempt."""

    kind = "auth_flow_error"
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, *, response_body: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.response_body = response_body


class ConfigurationError(AuthFlowError):
    """Required secrets or URIs are missing; not retryable by the user."""

    kind = "configuration_error"
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class ProviderDeniedError(AuthFlowError):
    """The provider redirected back with an ``error`` parameter."""

    kind = "provider_denied"

    def __init__(self, error: str, description: str | None = None) -> None:
        message = f"LinkedIn OAuth error: {error}"
        if description:
            message = f"{message} ({description})"
        super().__init__(message)
        self.error = error
        self.description = description


class MissingCodeError(AuthFlowError):
    kind = "missing_code"


class CsrfValidationError(AuthFlowError):
    """The returned ``state`` does not match the one issued for this browser."""

    kind = "csrf_validation_failed"


class TokenExchangeError(AuthFlowError):
    kind = "token_exchange_failed"
    status_code = HTTPStatus.BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message, response_body=response_body)
        self.upstream_status = upstream_status


class IdentityFetchError(AuthFlowError):
    kind = "identity_fetch_failed"
    status_code = HTTPStatus.BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message, response_body=response_body)
        self.upstream_status = upstream_status


class AccountStoreError(AuthFlowError):
    """A read or write against the account stores failed."""

    kind = "account_store_error"
    status_code = HTTPStatus.BAD_GATEWAY


class ProfileUpsertError(AccountStoreError):
    """Writing the profile row for a returning or new user failed."""

    kind = "profile_upsert_failed"


class AuthProvisioningError(AccountStoreError):
    """Creating the auth-directory entry for a new user failed."""

    kind = "auth_provisioning_failed"


class AccountConflictError(AuthProvisioningError):
    """The member's email is already held by a different auth user."""

    kind = "account_conflict"
    status_code = HTTPStatus.CONFLICT


class ProviderTimeoutError(AuthFlowError, TimeoutError):
    """An outbound call to the provider timed out."""

    kind = "timeout"
    status_code = HTTPStatus.GATEWAY_TIMEOUT


class InvalidSessionError(AuthFlowError):
    kind = "invalid_session"
    status_code = HTTPStatus.UNAUTHORIZED


__all__ = [
    "AccountConflictError",
    "AccountStoreError",
    "AuthFlowError",
    "AuthProvisioningError",
    "ConfigurationError",
    "CsrfValidationError",
    "IdentityFetchError",
    "InvalidSessionError",
    "MissingCodeError",
    "ProfileUpsertError",
    "ProviderDeniedError",
    "ProviderTimeoutError",
    "TokenExchangeError",
]
