"""HMAC-signed payloads carried by the OAuth state cookie."""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from hashlib import sha256
from typing import Any, Dict

_SIGNATURE_BYTES = 32


class SignedPayloadEncoder:
    """Encode and decode JSON payloads to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        if not secret_key:
            raise ValueError("Signing secret must be provided.")
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        signature = hmac.new(self._secret_key, serialized.encode("utf-8"), sha256).digest()
        token = base64.urlsafe_b64encode(signature + serialized.encode("utf-8"))
        # Padding is stripped so the value survives cookie quoting untouched.
        return token.decode("ascii").rstrip("=")

    def decode(self, token: str) -> Dict[str, Any]:
        """Return the payload, raising ``ValueError`` if it was tampered with."""
        try:
            padded = token + "=" * (-len(token) % 4)
            decoded = base64.urlsafe_b64decode(padded.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise ValueError("Signed payload is not valid base64.") from exc

        signature, serialized = decoded[:_SIGNATURE_BYTES], decoded[_SIGNATURE_BYTES:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if len(signature) != _SIGNATURE_BYTES or not hmac.compare_digest(
            signature, expected_signature
        ):
            raise ValueError("Invalid payload signature.")

        payload = json.loads(serialized)
        if not isinstance(payload, dict):
            raise ValueError("Signed payload must be a JSON object.")
        return payload


__all__ = ["SignedPayloadEncoder"]
