from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from internship_messaging.models.api.messages import MessageResponse
from internship_messaging.models.enums import (
    BroadcastTarget,
    ConversationContext,
    ConversationStatus,
    DenialReason,
)


class ConversationResponse(BaseModel):
    """Response model for conversation data."""

    id: UUID
    topic: str
    context: ConversationContext = ConversationContext.NONE
    context_id: Optional[UUID] = None
    status: ConversationStatus = ConversationStatus.ACTIVE
    is_read_only: bool = False
    is_broadcast: bool = False
    broadcast_target: Optional[BroadcastTarget] = None
    expires_at: Optional[datetime] = None
    created_by_id: Optional[UUID] = None
    version: int = 1
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContextDetails(BaseModel):
    """Business context shown alongside a conversation."""

    type: str  # 'adoption_request', 'offer' or 'broadcast'
    status: Optional[str] = None
    company_name: Optional[str] = None
    offer_title: Optional[str] = None
    target: Optional[BroadcastTarget] = None


class ConversationSummary(BaseModel):
    """A conversation as it appears in a listing."""

    conversation: ConversationResponse
    participants: List[UUID]
    last_message: Optional[MessageResponse]
    message_count: int
    context_details: Optional[ContextDetails]


class ConversationDetailResponse(BaseModel):
    """A conversation opened by a user, with its messages in read order."""

    conversation: ConversationResponse
    participants: List[UUID]
    messages: List[MessageResponse]
    context_details: Optional[ContextDetails]
    can_write: bool
    denial_reason: Optional[DenialReason] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ConversationListResponse(BaseModel):
    conversations: List[ConversationSummary]
    pagination: Pagination


class ExpiredCleanupResponse(BaseModel):
    expired: int
