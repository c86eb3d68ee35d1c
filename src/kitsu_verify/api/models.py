"""
API request and response models.

Pydantic models for the webhook and signup endpoints, used for
request validation and OpenAPI schema generation.
"""

from pydantic import BaseModel, Field


class WebhookObject(BaseModel):
    """The object a provider event refers to (a verification session)."""

    id: str = Field(..., min_length=1)


class WebhookData(BaseModel):
    object: WebhookObject


class WebhookEventPayload(BaseModel):
    """Provider webhook body. Only the event type and session id are read."""

    type: str
    data: WebhookData


class WebhookAck(BaseModel):
    """Acknowledgement returned to the provider."""

    understood: bool


class SignupGateResponse(BaseModel):
    """Body returned to signup attempts from regions requiring verification."""

    statusCode: int = 400
    error: str = "Verification Required"
    message: str


class HealthResponse(BaseModel):
    status: str
