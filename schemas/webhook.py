"""Webhook side-channel schemas."""

from pydantic import BaseModel, ConfigDict, Field


class WebhookMessage(BaseModel):
    """Message posted to the external webhook collaborator."""
    model_config = ConfigDict(populate_by_name=True)

    sender: str  # "begin", "system:tool", ...
    type: str = "string"
    message: str
    phone_number: str = Field(alias="phoneNumber")
