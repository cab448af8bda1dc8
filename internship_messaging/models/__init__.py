# Export all models
from .api import (
    ConversationResponse,
    MessageResponse,
    ParticipantResponse,
    PostMessageRequest,
)
from .db import (
    AdoptionRequestModel,
    ApplicationModel,
    ConversationModel,
    MessageModel,
    ParticipantModel,
    UserModel,
)

__all__ = [
    # API models
    "ConversationResponse",
    "MessageResponse",
    "ParticipantResponse",
    "PostMessageRequest",
    # DB models
    "AdoptionRequestModel",
    "ApplicationModel",
    "ConversationModel",
    "MessageModel",
    "ParticipantModel",
    "UserModel",
]
