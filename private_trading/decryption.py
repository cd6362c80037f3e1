"""
Private Trading - Decryption Gateway.

============================================================
PURPOSE
============================================================
Bridges the ledger and an external decryption oracle.

FLOW:
    1. Ledger authorizes the requester and seals the value into
       a handle
    2. Gateway allocates a request id and hands the request to
       the oracle (a plain callable)
    3. Oracle later calls fulfill(request_id, cleartext)
    4. Requester reads the result

The callback may arrive at any time, including from inside the
oracle call itself. Each request is fulfilled exactly once.

============================================================
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Deque, Dict, Optional

from .confidential import ConfidentialVault
from .types import AuthorizationError, DecryptionRequestError


logger = logging.getLogger(__name__)


# ============================================================
# REQUEST
# ============================================================

@dataclass
class DecryptionRequest:
    """One outstanding or fulfilled decryption."""

    request_id: int
    requester: str
    handle: str
    subject: str
    requested_at: datetime
    cleartext: Optional[int] = None
    fulfilled_at: Optional[datetime] = None

    @property
    def is_fulfilled(self) -> bool:
        return self.fulfilled_at is not None


Oracle = Callable[[DecryptionRequest], None]


# ============================================================
# GATEWAY
# ============================================================

class DecryptionGateway:
    """Tracks decryption requests and accepts oracle callbacks."""

    def __init__(self, oracle: Optional[Oracle] = None):
        self._oracle = oracle
        self._requests: Dict[int, DecryptionRequest] = {}
        self._last_id = 0
        self._lock = threading.RLock()

    def set_oracle(self, oracle: Oracle) -> None:
        self._oracle = oracle

    @property
    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for r in self._requests.values() if not r.is_fulfilled)

    def submit(self, requester: str, handle: str, subject: str, at: datetime) -> DecryptionRequest:
        """
        Register a request and dispatch it to the oracle.

        Raises:
            DecryptionRequestError: If no oracle is attached
        """
        if self._oracle is None:
            raise DecryptionRequestError("No decryption oracle attached", "DEC_UNKNOWN_REQUEST")

        with self._lock:
            self._last_id += 1
            request = DecryptionRequest(
                request_id=self._last_id,
                requester=requester,
                handle=handle,
                subject=subject,
                requested_at=at,
            )
            self._requests[request.request_id] = request

        logger.info(f"Decryption request {request.request_id} submitted for {subject}")
        self._oracle(request)
        return request

    def check_fulfillable(self, request_id: int) -> DecryptionRequest:
        """
        Get a request that can still accept its callback.

        Raises:
            DecryptionRequestError: If the request is unknown or already fulfilled
        """
        with self._lock:
            request = self._requests.get(request_id)
            if request is None:
                raise DecryptionRequestError(
                    f"Unknown decryption request {request_id}",
                    "DEC_UNKNOWN_REQUEST",
                )
            if request.is_fulfilled:
                raise DecryptionRequestError(
                    f"Decryption request {request_id} already fulfilled",
                    "DEC_ALREADY_FULFILLED",
                )
            return request

    def fulfill(self, request_id: int, cleartext: int, at: datetime) -> DecryptionRequest:
        """
        Accept an oracle callback.

        Raises:
            DecryptionRequestError: If the request is unknown or already fulfilled
        """
        with self._lock:
            request = self.check_fulfillable(request_id)
            request.cleartext = cleartext
            request.fulfilled_at = at

        logger.info(f"Decryption request {request_id} fulfilled")
        return request

    def result(self, request_id: int, requester: str) -> int:
        """
        Read a fulfilled result.

        Raises:
            DecryptionRequestError: If unknown or still pending
            AuthorizationError: If the caller did not make the request
        """
        with self._lock:
            request = self._requests.get(request_id)
        if request is None:
            raise DecryptionRequestError(
                f"Unknown decryption request {request_id}",
                "DEC_UNKNOWN_REQUEST",
            )
        if request.requester != requester:
            raise AuthorizationError(
                f"Only the requester may read decryption result {request_id}",
                "AUTH_NOT_REQUESTER",
            )
        if not request.is_fulfilled:
            raise DecryptionRequestError(
                f"Decryption request {request_id} is pending",
                "DEC_PENDING",
            )
        return request.cleartext


# ============================================================
# LOCAL ORACLE
# ============================================================

class LocalVaultOracle:
    """
    In-process oracle that opens handles with the ledger's vault.

    Immediate mode calls back from inside dispatch. Deferred mode
    queues requests until drain() is called, which is how an
    external service behaves.
    """

    def __init__(
        self,
        vault: ConfidentialVault,
        callback: Callable[[int, int], None],
        deferred: bool = False,
    ):
        self._vault = vault
        self._callback = callback
        self._deferred = deferred
        self._queue: Deque[DecryptionRequest] = deque()

    def __call__(self, request: DecryptionRequest) -> None:
        if self._deferred:
            self._queue.append(request)
            return
        self._callback(request.request_id, self._vault.open(request.handle))

    @property
    def queued(self) -> int:
        return len(self._queue)

    def drain(self) -> int:
        """Deliver every queued request. Returns the number delivered."""
        delivered = 0
        while self._queue:
            request = self._queue.popleft()
            self._callback(request.request_id, self._vault.open(request.handle))
            delivered += 1
        return delivered
