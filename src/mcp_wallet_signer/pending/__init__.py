"""Pending-request registry -- correlates browser decisions with awaiting tool calls."""

from mcp_wallet_signer.pending.models import (
    CompleteApiRequest,
    ConnectRequest,
    ErrorResult,
    PendingRequest,
    RequestResult,
    RequestType,
    SendTransactionRequest,
    SignMessageRequest,
    SignTypedDataRequest,
    SuccessResult,
    TypedDataDomain,
    TypedDataField,
)
from mcp_wallet_signer.pending.store import (
    REQUEST_TIMEOUT_SECONDS,
    PendingHandle,
    PendingStore,
    RequestCancelledError,
    RequestTimeoutError,
)

__all__ = [
    "REQUEST_TIMEOUT_SECONDS",
    "CompleteApiRequest",
    "ConnectRequest",
    "ErrorResult",
    "PendingHandle",
    "PendingRequest",
    "PendingStore",
    "RequestCancelledError",
    "RequestResult",
    "RequestTimeoutError",
    "RequestType",
    "SendTransactionRequest",
    "SignMessageRequest",
    "SignTypedDataRequest",
    "SuccessResult",
    "TypedDataDomain",
    "TypedDataField",
]
