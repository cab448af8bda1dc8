from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from internship_messaging.models.api.conversations import ConversationResponse
from internship_messaging.models.api.messages import MessageResponse
from internship_messaging.models.enums import Role


class BroadcastRequest(BaseModel):
    """Request model for an admin broadcast."""

    content: str = Field(..., min_length=1, description="Broadcast message content")
    target_role: Optional[Role] = Field(
        default=None, description="STUDENT, COMPANY, or omitted for everyone"
    )
    subject: Optional[str] = Field(default=None, description="Optional topic")


class BroadcastResponse(BaseModel):
    conversation_id: UUID
    sent_to: int


class AdminMessageRequest(BaseModel):
    """Request model for a direct admin message to one user."""

    recipient_id: UUID
    subject: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    is_read_only: bool = False


class AdminMessageResponse(BaseModel):
    conversation: ConversationResponse
    message: MessageResponse
