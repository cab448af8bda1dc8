# Repository classes for database operations
from .base_repository import BaseRepository
from .business_repository import AdoptionRequestRepository, ApplicationRepository
from .conversation_repository import ConversationRepository
from .message_repository import MessageRepository
from .participant_repository import ParticipantRepository
from .user_repository import UserRepository

__all__ = [
    "AdoptionRequestRepository",
    "ApplicationRepository",
    "BaseRepository",
    "ConversationRepository",
    "MessageRepository",
    "ParticipantRepository",
    "UserRepository",
]
