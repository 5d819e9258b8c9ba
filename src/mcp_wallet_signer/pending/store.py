"""In-memory registry of wallet requests awaiting a browser decision.

Each request owns an ``asyncio.Future`` that resolves once the browser posts a
result, the request is cancelled, or its timeout fires. Whichever of those
pops the entry from the map first wins; everyone else sees ``False``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

from mcp_wallet_signer.pending.models import (
    PENDING_REQUEST_ADAPTER,
    PendingRequest,
    RequestResult,
    RequestType,
)

logger = logging.getLogger("mcp_wallet_signer.pending")

REQUEST_TIMEOUT_SECONDS = 5 * 60
DEFAULT_CANCEL_REASON = "Request cancelled"

# Assigned by the store, never taken from callers.
_RESERVED_FIELDS = frozenset({"type", "id", "created_at", "createdAt"})


class RequestCancelledError(RuntimeError):
    """Set on a request's future when it is cancelled before completion."""


class RequestTimeoutError(RequestCancelledError):
    """Set on a request's future when nobody completed it in time."""


def _generate_id() -> str:
    return str(uuid.uuid4())


def _now_ms() -> int:
    return int(time.time() * 1000)


def _describe_duration(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds:g} second{'s' if seconds != 1 else ''}"


@dataclass
class PendingEntry:
    request: PendingRequest
    future: asyncio.Future[RequestResult]
    timer: asyncio.TimerHandle


class PendingHandle(NamedTuple):
    id: str
    future: asyncio.Future[RequestResult]


class PendingStore:
    """Store for pending signing requests.

    Safe to use from the event loop that created a request and from worker
    threads: map mutations happen under one lock, and future resolution is
    always scheduled on the future's own loop.
    """

    def __init__(self, timeout_seconds: float = REQUEST_TIMEOUT_SECONDS) -> None:
        self.timeout_seconds = timeout_seconds
        self._pending: dict[str, PendingEntry] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(self, request_type: RequestType | str, **fields: Any) -> PendingHandle:
        """Register a new request and return its id and result future.

        *fields* may use snake_case or camelCase names. Must be called while
        an event loop is running; the future and timer belong to that loop.
        """
        loop = asyncio.get_running_loop()
        request = PENDING_REQUEST_ADAPTER.validate_python(
            {
                **{k: v for k, v in fields.items() if k not in _RESERVED_FIELDS},
                "type": RequestType(request_type).value,
                "id": _generate_id(),
                "created_at": _now_ms(),
            }
        )
        future: asyncio.Future[RequestResult] = loop.create_future()
        timer = loop.call_later(self.timeout_seconds, self._expire, request.id)
        with self._lock:
            self._pending[request.id] = PendingEntry(request=request, future=future, timer=timer)
        future.add_done_callback(lambda fut, rid=request.id: self._on_future_done(rid, fut))
        logger.info(f"Pending {request.type} request created (id={request.id})")
        return PendingHandle(request.id, future)

    def create_connect_request(self, chain_id: int | None = None) -> PendingHandle:
        return self.create(RequestType.CONNECT, chain_id=chain_id)

    def create_send_transaction_request(
        self,
        to: str,
        value: str | None = None,
        data: str | None = None,
        chain_id: int | None = None,
        gas_limit: str | None = None,
        max_fee_per_gas: str | None = None,
        max_priority_fee_per_gas: str | None = None,
    ) -> PendingHandle:
        return self.create(
            RequestType.SEND_TRANSACTION,
            to=to,
            value=value,
            data=data,
            chain_id=chain_id,
            gas_limit=gas_limit,
            max_fee_per_gas=max_fee_per_gas,
            max_priority_fee_per_gas=max_priority_fee_per_gas,
        )

    def create_sign_message_request(
        self,
        message: str,
        address: str | None = None,
        chain_id: int | None = None,
    ) -> PendingHandle:
        return self.create(
            RequestType.SIGN_MESSAGE,
            message=message,
            address=address,
            chain_id=chain_id,
        )

    def create_sign_typed_data_request(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, Any]]],
        primary_type: str,
        message: dict[str, Any],
        address: str | None = None,
        chain_id: int | None = None,
    ) -> PendingHandle:
        return self.create(
            RequestType.SIGN_TYPED_DATA,
            domain=domain,
            types=types,
            primary_type=primary_type,
            message=message,
            address=address,
            chain_id=chain_id,
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, request_id: str) -> Optional[PendingRequest]:
        """Return the pending request, or ``None`` if unknown or resolved."""
        with self._lock:
            entry = self._pending.get(request_id)
        return entry.request if entry else None

    def has(self, request_id: str) -> bool:
        with self._lock:
            return request_id in self._pending

    def pending_ids(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._pending)

    def __len__(self) -> int:
        return self.size

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def complete(self, request_id: str, result: RequestResult) -> bool:
        """Resolve a pending request with *result*.

        Returns ``False`` if the request was already completed, cancelled or
        timed out.
        """
        entry = self._take(request_id)
        if entry is None:
            return False
        self._settle(entry, result=result)
        logger.info(
            f"Request {request_id} completed "
            f"({'success' if result.success else 'failure'})"
        )
        return True

    def cancel(self, request_id: str, reason: str | None = None) -> bool:
        """Reject a pending request's future with ``RequestCancelledError``."""
        return self._reject(request_id, RequestCancelledError(reason or DEFAULT_CANCEL_REASON))

    def cancel_all(self, reason: str = DEFAULT_CANCEL_REASON) -> int:
        """Cancel every outstanding request. Returns how many were cancelled."""
        return sum(1 for request_id in self.pending_ids() if self.cancel(request_id, reason))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _take(self, request_id: str) -> Optional[PendingEntry]:
        with self._lock:
            return self._pending.pop(request_id, None)

    def _reject(self, request_id: str, error: RequestCancelledError) -> bool:
        entry = self._take(request_id)
        if entry is None:
            return False
        self._settle(entry, error=error)
        logger.info(f"Request {request_id} cancelled: {error}")
        return True

    def _expire(self, request_id: str) -> None:
        message = f"Request timed out after {_describe_duration(self.timeout_seconds)}"
        if self._reject(request_id, RequestTimeoutError(message)):
            logger.warning(f"Request {request_id} timed out")

    def _settle(
        self,
        entry: PendingEntry,
        result: RequestResult | None = None,
        error: BaseException | None = None,
    ) -> None:
        loop = entry.future.get_loop()
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            _resolve(entry, result, error)
        else:
            loop.call_soon_threadsafe(_resolve, entry, result, error)

    def _on_future_done(self, request_id: str, future: asyncio.Future) -> None:
        # The awaiting caller went away; free the slot and disarm the timer.
        if not future.cancelled():
            return
        entry = self._take(request_id)
        if entry is not None:
            entry.timer.cancel()
            logger.info(f"Request {request_id} abandoned by its caller")


def _resolve(
    entry: PendingEntry,
    result: RequestResult | None,
    error: BaseException | None,
) -> None:
    entry.timer.cancel()
    if entry.future.done():
        return
    if error is not None:
        entry.future.set_exception(error)
    else:
        entry.future.set_result(result)
