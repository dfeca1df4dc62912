"""Symmetric encryption utilities for protecting stored provider tokens."""

from __future__ import annotations

import base64
import hashlib
from datetime import datetime
from typing import Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from linkedin_studio.models.oauth import TokenSet


class TokenCipherService:
    """Encrypt and decrypt sensitive strings using a derived Fernet key."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        key = base64.urlsafe_b64encode(digest)
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string and return the ciphertext."""
        token = self._fernet.encrypt(plaintext.encode("utf-8"))
        return token.decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a ciphertext string and return the plaintext."""
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt token; invalid ciphertext provided."
            ) from exc
        return plaintext.decode("utf-8")

    def seal_token_set(
        self, token_set: TokenSet, *, issued_at: datetime
    ) -> Dict[str, Optional[object]]:
        """Return the account columns that hold the token set at rest."""
        refresh_token = token_set.refresh_token
        return {
            "access_token_encrypted": self.encrypt(
                token_set.access_token.get_secret_value()
            ),
            "refresh_token_encrypted": (
                self.encrypt(refresh_token.get_secret_value()) if refresh_token else None
            ),
            "token_expires_at": token_set.expires_at(issued_at),
        }


__all__ = ["TokenCipherService"]
