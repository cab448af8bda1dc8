# API models for request/response contracts
from .broadcasts import (
    AdminMessageRequest,
    AdminMessageResponse,
    BroadcastRequest,
    BroadcastResponse,
)
from .business import (
    AdoptionConversationRequest,
    AdoptionRequestRecord,
    ApplicationRecord,
    BusinessStatusChangedRequest,
)
from .conversations import (
    ContextDetails,
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationResponse,
    ConversationSummary,
    ExpiredCleanupResponse,
    Pagination,
)
from .messages import MessageResponse, PostMessageRequest
from .participants import ParticipantResponse

__all__ = [
    "AdminMessageRequest",
    "AdminMessageResponse",
    "AdoptionConversationRequest",
    "AdoptionRequestRecord",
    "ApplicationRecord",
    "BroadcastRequest",
    "BroadcastResponse",
    "BusinessStatusChangedRequest",
    "ContextDetails",
    "ConversationDetailResponse",
    "ConversationListResponse",
    "ConversationResponse",
    "ConversationSummary",
    "ExpiredCleanupResponse",
    "MessageResponse",
    "Pagination",
    "ParticipantResponse",
    "PostMessageRequest",
]
