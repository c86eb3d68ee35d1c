"""
Message codec - Typed WebSocket protocol between browser and gateway.

Every frame is a JSON object ``{"type": ..., "data": ...}`` where
``data`` is omitted for messages that carry nothing. Each direction
is a closed discriminated union of pydantic models; anything outside
the union is either rejected (malformed) or ignored (unknown type).
"""

import json
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .exceptions import MalformedFrameError


class MessageType(str, Enum):
    """Wire values of the ``type`` discriminator."""

    # Inbound
    VERIFY = "verify"
    STRIPE_ERROR = "stripeerror"
    STRIPE_DONE = "stripedone"
    IDENTIFY = "identify"

    # Outbound
    CONNECTED = "connected"
    STRIPE_SESSION = "stripeSession"
    VERIFICATION_FAILED = "verificationFailed"
    VERIFICATION_INCOMPLETE = "verificationIncomplete"
    VERIFICATION_COMPLETE = "verificationComplete"
    VERIFICATION_COMPLETE_STEP = "verificationCompleteStep"
    IDENTIFICATION = "identification"
    FAILED_IDENTIFICATION = "failedIdentification"


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# -- inbound -----------------------------------------------------------------


class VerifyRequest(_Message):
    """Client asks for a new verification session."""

    type: Literal["verify"] = "verify"


class ErrorCode(_Payload):
    code: str


class ProviderErrorSignal(_Message):
    """Client reports an error from the provider-hosted flow."""

    type: Literal["stripeerror"] = "stripeerror"
    data: ErrorCode


class ProviderDoneSignal(_Message):
    """Client reports that the provider-hosted flow was closed."""

    type: Literal["stripedone"] = "stripedone"


class UserRef(_Payload):
    user_id: str = Field(alias="userId")


class IdentifyRequest(_Message):
    """Client asks which ban applies to a platform user."""

    type: Literal["identify"] = "identify"
    data: UserRef


InboundMessage = Annotated[
    Union[VerifyRequest, ProviderErrorSignal, ProviderDoneSignal, IdentifyRequest],
    Field(discriminator="type"),
]


# -- outbound ----------------------------------------------------------------


class Connected(_Message):
    type: Literal["connected"] = "connected"


class SessionCreated(_Message):
    """Carries the provider client secret that drives the hosted UI."""

    type: Literal["stripeSession"] = "stripeSession"
    data: str


class FailureReason(_Payload):
    reason: str


class VerificationFailed(_Message):
    type: Literal["verificationFailed"] = "verificationFailed"
    data: FailureReason


class VerificationIncomplete(_Message):
    type: Literal["verificationIncomplete"] = "verificationIncomplete"


class VerificationId(_Payload):
    verification_id: str = Field(alias="verificationId")


class VerificationComplete(_Message):
    type: Literal["verificationComplete"] = "verificationComplete"
    data: VerificationId


class VerificationProgress(_Message):
    """Marks a finished post-verification step (``redact``, ``unban``)."""

    type: Literal["verificationCompleteStep"] = "verificationCompleteStep"
    data: Literal["redact", "unban"]


class IdentificationResult(_Payload):
    username: str
    ban_type: Literal["conditional", "permanent", "none"] = Field(alias="banType")


class Identification(_Message):
    type: Literal["identification"] = "identification"
    data: IdentificationResult


class IdentificationFailed(_Message):
    type: Literal["failedIdentification"] = "failedIdentification"


OutboundMessage = Annotated[
    Union[
        Connected,
        SessionCreated,
        VerificationFailed,
        VerificationIncomplete,
        VerificationComplete,
        VerificationProgress,
        Identification,
        IdentificationFailed,
    ],
    Field(discriminator="type"),
]

INBOUND_TYPES = frozenset(
    {
        MessageType.VERIFY.value,
        MessageType.STRIPE_ERROR.value,
        MessageType.STRIPE_DONE.value,
        MessageType.IDENTIFY.value,
    }
)

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)
_outbound_adapter: TypeAdapter[OutboundMessage] = TypeAdapter(OutboundMessage)


def failed(reason: str) -> VerificationFailed:
    return VerificationFailed(data=FailureReason(reason=reason))


def _load_object(raw: str | bytes) -> dict:
    try:
        payload = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedFrameError("Frame is not valid JSON") from e
    if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
        raise MalformedFrameError("Frame is not a typed message object")
    return payload


def decode_inbound(raw: str | bytes) -> InboundMessage | None:
    """
    Parse one client frame.

    Args:
        raw: Frame text (or bytes) as received from the socket

    Returns:
        The typed message, or None for a well-formed frame whose type is
        not part of the protocol (ignored for forward compatibility)

    Raises:
        MalformedFrameError: If the frame is not JSON, not a typed object,
            or a known type with an invalid payload
    """
    payload = _load_object(raw)
    if payload["type"] not in INBOUND_TYPES:
        return None
    try:
        return _inbound_adapter.validate_python(payload)
    except ValidationError as e:
        raise MalformedFrameError(f"Invalid {payload['type']} payload") from e


def decode_outbound(raw: str | bytes) -> OutboundMessage:
    """
    Parse one server frame, as a client would.

    Raises:
        MalformedFrameError: If the frame is not a valid outbound message
    """
    payload = _load_object(raw)
    try:
        return _outbound_adapter.validate_python(payload)
    except ValidationError as e:
        raise MalformedFrameError(f"Invalid {payload['type']} message") from e


def encode(message: BaseModel) -> str:
    """Serialize a message as ``{type, data?}``."""
    return message.model_dump_json(by_alias=True, exclude_none=True)
