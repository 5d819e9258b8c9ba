"""Pydantic models for pending wallet requests and their results.

Field names are snake_case in Python and camelCase on the wire, matching what
the browser client sends and expects.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, TypeAdapter
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RequestType(str, Enum):
    CONNECT = "connect"
    SEND_TRANSACTION = "send_transaction"
    SIGN_MESSAGE = "sign_message"
    SIGN_TYPED_DATA = "sign_typed_data"


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class WireModel(BaseModel):
    """Base for models exchanged with the browser as camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to camelCase JSON-ready data, omitting unset optional fields."""
        data = self.model_dump(mode="json", by_alias=True)
        return {k: v for k, v in data.items() if v is not None}


# ---------------------------------------------------------------------------
# Request variants
# ---------------------------------------------------------------------------

class BaseRequest(WireModel):
    id: str
    created_at: int
    chain_id: Optional[int] = None


class ConnectRequest(BaseRequest):
    type: Literal["connect"] = "connect"


class SendTransactionRequest(BaseRequest):
    type: Literal["send_transaction"] = "send_transaction"
    to: str
    value: Optional[str] = None
    data: Optional[str] = None
    gas_limit: Optional[str] = None
    max_fee_per_gas: Optional[str] = None
    max_priority_fee_per_gas: Optional[str] = None


class SignMessageRequest(BaseRequest):
    type: Literal["sign_message"] = "sign_message"
    message: str
    address: Optional[str] = None


class SignTypedDataRequest(BaseRequest):
    """EIP-712 payload. ``domain``, ``types`` and ``message`` are opaque."""

    type: Literal["sign_typed_data"] = "sign_typed_data"
    domain: dict[str, Any]
    types: dict[str, list[dict[str, Any]]]
    primary_type: str
    message: dict[str, Any]
    address: Optional[str] = None


PendingRequest = Annotated[
    Union[ConnectRequest, SendTransactionRequest, SignMessageRequest, SignTypedDataRequest],
    Field(discriminator="type"),
]

PENDING_REQUEST_ADAPTER: TypeAdapter[PendingRequest] = TypeAdapter(PendingRequest)


# ---------------------------------------------------------------------------
# EIP-712 argument shapes (validated by the tool layer before create)
# ---------------------------------------------------------------------------

class TypedDataDomain(WireModel):
    name: Optional[str] = None
    version: Optional[str] = None
    chain_id: Optional[int] = None
    verifying_contract: Optional[str] = None
    salt: Optional[str] = None


class TypedDataField(WireModel):
    name: str
    type: str


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class SuccessResult(WireModel):
    success: Literal[True] = True
    result: str  # address, tx hash, or signature


class ErrorResult(WireModel):
    success: Literal[False] = False
    error: str


RequestResult = Union[SuccessResult, ErrorResult]


# ---------------------------------------------------------------------------
# HTTP bodies
# ---------------------------------------------------------------------------

class CompleteApiRequest(WireModel):
    """Body of ``POST /api/complete/{id}``."""

    success: StrictBool
    result: Optional[str] = None
    error: Optional[str] = None

    def to_result(self) -> RequestResult:
        if self.success:
            return SuccessResult(result=self.result or "")
        return ErrorResult(error=self.error or "Unknown error")
