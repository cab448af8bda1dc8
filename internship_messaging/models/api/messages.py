from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PostMessageRequest(BaseModel):
    """Request model for posting a message to a conversation."""

    content: str = Field(..., min_length=1, description="Message content")


class MessageResponse(BaseModel):
    """Response model for message data."""

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
