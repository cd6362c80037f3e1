"""
Private Trading - Access Control.

Capability checks run before any restricted read or privileged
write. The privileged account is a single configured identifier;
a check is an equality test, nothing more.
"""

import logging

from .types import AuthorizationError


logger = logging.getLogger(__name__)


class AccessController:
    """Owner and privileged-account checks."""

    def __init__(self, privileged_account: str):
        if not privileged_account:
            raise ValueError("Privileged account must be set")
        self._privileged_account = privileged_account

    @property
    def privileged_account(self) -> str:
        return self._privileged_account

    def is_privileged(self, account: str) -> bool:
        return account == self._privileged_account

    def require_privileged(self, account: str, action: str) -> None:
        if not self.is_privileged(account):
            logger.warning(f"Denied {action} for {account}: not privileged")
            raise AuthorizationError(
                f"Only the privileged account may {action}",
                "AUTH_NOT_PRIVILEGED",
            )

    def require_owner(self, account: str, owner: str, action: str) -> None:
        """Owner only. The privileged account gets no bypass here."""
        if account != owner:
            logger.warning(f"Denied {action} for {account}: not owner")
            raise AuthorizationError(f"Only the owner may {action}", "AUTH_NOT_OWNER")

    def require_owner_or_privileged(self, account: str, owner: str, action: str) -> None:
        if account == owner or self.is_privileged(account):
            return
        logger.warning(f"Denied {action} for {account}: not owner or privileged")
        raise AuthorizationError(
            f"Only the owner or the privileged account may {action}",
            "AUTH_NOT_OWNER",
        )

    def require_party_or_privileged(self, account: str, parties: tuple, action: str) -> None:
        if account in parties or self.is_privileged(account):
            return
        logger.warning(f"Denied {action} for {account}: not a counterparty")
        raise AuthorizationError(
            f"Only a counterparty or the privileged account may {action}",
            "AUTH_NOT_OWNER",
        )
