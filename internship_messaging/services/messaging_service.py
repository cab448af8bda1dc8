from sqlalchemy.ext.asyncio import AsyncSession

from internship_messaging.config import settings
from internship_messaging.repositories.business_repository import (
    AdoptionRequestRepository,
    ApplicationRepository,
)
from internship_messaging.repositories.conversation_repository import ConversationRepository
from internship_messaging.repositories.message_repository import MessageRepository
from internship_messaging.repositories.participant_repository import ParticipantRepository
from internship_messaging.repositories.user_repository import UserRepository
from internship_messaging.services.access_control import AccessControlEngine
from internship_messaging.services.broadcast_service import BroadcastFanout
from internship_messaging.services.context_resolver import ContextResolver
from internship_messaging.services.conversation_query_service import (
    ConversationQueryService,
)
from internship_messaging.services.events import EventBus
from internship_messaging.services.lifecycle_coordinator import LifecycleCoordinator
from internship_messaging.services.message_gateway import MessageGateway
from internship_messaging.services.participant_directory import ParticipantDirectory


class MessagingService:
    """Wires the messaging components over one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.conversation_repo = ConversationRepository(db)
        self.message_repo = MessageRepository(db)
        self.participant_repo = ParticipantRepository(db)
        self.user_repo = UserRepository(db)
        self.adoption_request_repo = AdoptionRequestRepository(db)
        self.application_repo = ApplicationRepository(db)

        self.bus = EventBus()
        self.access_control = AccessControlEngine()
        self.participants = ParticipantDirectory(self.participant_repo, self.user_repo)
        self.context_resolver = ContextResolver(
            self.conversation_repo, self.adoption_request_repo, self.application_repo
        )
        self.lifecycle = LifecycleCoordinator(
            self.conversation_repo,
            self.message_repo,
            self.adoption_request_repo,
            self.application_repo,
            self.participants,
            max_message_length=settings.max_message_length,
        )
        self.lifecycle.register(self.bus)

        self.gateway = MessageGateway(
            self.context_resolver,
            self.access_control,
            self.participants,
            self.lifecycle,
            self.message_repo,
            self.bus,
            max_message_length=settings.max_message_length,
        )
        self.broadcasts = BroadcastFanout(
            self.conversation_repo,
            self.message_repo,
            self.participants,
            self.user_repo,
            batch_size=settings.broadcast_batch_size,
            batch_timeout=settings.broadcast_batch_timeout,
            max_message_length=settings.max_message_length,
        )
        self.queries = ConversationQueryService(
            self.conversation_repo,
            self.message_repo,
            self.user_repo,
            self.context_resolver,
            self.access_control,
            self.participants,
            self.lifecycle,
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
        )
