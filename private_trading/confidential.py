"""
Private Trading - Confidential Vault.

Seals order amounts, prices and balance handles with Fernet
symmetric encryption from the cryptography library. Values are
sealed before they are stored and opened only inside the ledger's
execution path or for an authorized read.

The key is derived from the configured secret with SHA-256, so any
string works. If the secret changes, previously sealed values become
unreadable.
"""

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .types import SealedValueError


logger = logging.getLogger(__name__)


def derive_key(secret: str) -> bytes:
    """Derive a Fernet key (URL-safe base64 of 32 bytes) from a secret."""
    key_bytes = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(key_bytes)


class ConfidentialVault:
    """Encrypts integers for storage and decrypts them on demand."""

    def __init__(self, secret: Optional[str] = None):
        if secret:
            key = derive_key(secret)
        else:
            key = Fernet.generate_key()
            logger.warning(
                "No vault key configured, using an ephemeral key. "
                "Sealed values will not survive a restart."
            )
        self._fernet = Fernet(key)

    def seal(self, value: int) -> str:
        """Encrypt an integer. Each call yields a different token."""
        return self._fernet.encrypt(str(value).encode()).decode()

    def seal_optional(self, value: Optional[int]) -> Optional[str]:
        if value is None:
            return None
        return self.seal(value)

    def open(self, token: str) -> int:
        """
        Decrypt a sealed integer.

        Raises:
            SealedValueError: If the token was sealed with another key or is corrupt
        """
        try:
            return int(self._fernet.decrypt(token.encode()).decode())
        except InvalidToken as e:
            logger.error("Failed to open sealed value, vault key mismatch or corrupt token")
            raise SealedValueError("Sealed value cannot be opened") from e

    def open_optional(self, token: Optional[str]) -> Optional[int]:
        if token is None:
            return None
        return self.open(token)
