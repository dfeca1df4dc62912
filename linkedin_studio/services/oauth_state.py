"""
Client-held storage for the OAuth ``state`` value.

The state issued for a login attempt travels in a signed, HTTP-only cookie so
the callback can compare it with what LinkedIn echoes back. Nothing is kept
server side.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from linkedin_studio.models.oauth import AuthorizationState
from linkedin_studio.utils.signing import SignedPayloadEncoder

logger = logging.getLogger(__name__)

STATE_COOKIE_NAME = "li_oauth_state"


class OAuthStateCookie:
    """Serialize ``AuthorizationState`` into a tamper-evident cookie value."""

    def __init__(self, encoder: SignedPayloadEncoder, *, ttl_seconds: int) -> None:
        self._encoder = encoder
        self.ttl_seconds = ttl_seconds

    def dump(self, state: AuthorizationState) -> str:
        return self._encoder.encode(state.model_dump(mode="json"))

    def load(self, value: Optional[str]) -> Optional[AuthorizationState]:
        """Return the stored state, or ``None`` when absent or tampered with.

        Expiry is left to the callback so it is reported in flow order.
        """
        if not value:
            return None
        try:
            payload = self._encoder.decode(value)
            return AuthorizationState.model_validate(payload)
        except (ValueError, ValidationError):
            logger.warning("Discarding OAuth state cookie with an invalid signature")
            return None


__all__ = ["OAuthStateCookie", "STATE_COOKIE_NAME"]
