# SQLAlchemy database models
from .business_models import AdoptionRequestModel, ApplicationModel
from .conversation_model import ConversationModel
from .message_model import MessageModel
from .participant_model import ParticipantModel
from .user_model import UserModel

__all__ = [
    "AdoptionRequestModel",
    "ApplicationModel",
    "ConversationModel",
    "MessageModel",
    "ParticipantModel",
    "UserModel",
]
