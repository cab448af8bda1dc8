"""Conversation status transitions.

State machine::

    PENDING_APPROVAL -> ACTIVE -> ARCHIVED | EXPIRED
    PENDING_APPROVAL -> ARCHIVED | EXPIRED

ARCHIVED and EXPIRED are terminal. Every write is a compare-and-swap on the
conversation version; a lost race reloads the row and re-applies the
transition unless the conversation became terminal in the meantime.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID, uuid4

from internship_messaging.errors import (
    ConcurrentUpdateError,
    DuplicateConversationError,
    InvalidTransitionError,
    NotFoundError,
)
from internship_messaging.logging_config import get_logger
from internship_messaging.models.api.business import AdoptionConversationRequest
from internship_messaging.models.api.conversations import ConversationResponse
from internship_messaging.models.api.messages import MessageResponse
from internship_messaging.models.enums import (
    AdoptionRequestStatus,
    ApplicationStatus,
    BusinessObjectKind,
    ConversationContext,
    ConversationStatus,
)
from internship_messaging.services.access_control import utcnow
from internship_messaging.services.content import normalize_content
from internship_messaging.services.events import (
    EventBus,
    StudentRespondedToPendingAdoption,
)
from internship_messaging.services.participant_directory import ParticipantDirectory
from internship_messaging.services.ports import (
    AdoptionRequestStore,
    ApplicationStore,
    ConversationStore,
    MessageStore,
)
from internship_messaging.services.saga import Saga

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: Dict[ConversationStatus, frozenset] = {
    ConversationStatus.PENDING_APPROVAL: frozenset(
        {ConversationStatus.ACTIVE, ConversationStatus.ARCHIVED, ConversationStatus.EXPIRED}
    ),
    ConversationStatus.ACTIVE: frozenset(
        {ConversationStatus.ARCHIVED, ConversationStatus.EXPIRED}
    ),
    ConversationStatus.ARCHIVED: frozenset(),
    ConversationStatus.EXPIRED: frozenset(),
}

# Adoption request status -> (conversation status, is_read_only)
ADOPTION_STATUS_EFFECTS: Dict[AdoptionRequestStatus, Tuple[ConversationStatus, bool]] = {
    AdoptionRequestStatus.ACCEPTED: (ConversationStatus.ACTIVE, False),
    AdoptionRequestStatus.REJECTED: (ConversationStatus.ARCHIVED, True),
}
DEFAULT_ADOPTION_EFFECT = (ConversationStatus.ACTIVE, False)

CONVERSATION_OPENING_STATUSES = frozenset(
    {ApplicationStatus.INTERVIEW, ApplicationStatus.HIRED}
)

MAX_CAS_ATTEMPTS = 3


def _parse_adoption_status(value: Union[str, AdoptionRequestStatus]) -> Optional[AdoptionRequestStatus]:
    try:
        return AdoptionRequestStatus(value)
    except ValueError:
        return None


class LifecycleCoordinator:
    """Applies conversation status transitions and creates context conversations."""

    def __init__(
        self,
        conversation_store: ConversationStore,
        message_store: MessageStore,
        adoption_request_store: AdoptionRequestStore,
        application_store: ApplicationStore,
        participant_directory: ParticipantDirectory,
        clock: Callable[[], datetime] = utcnow,
        max_message_length: int = 2000,
    ):
        self.conversation_store = conversation_store
        self.message_store = message_store
        self.adoption_request_store = adoption_request_store
        self.application_store = application_store
        self.participant_directory = participant_directory
        self.clock = clock
        self.max_message_length = max_message_length

    def register(self, bus: EventBus) -> None:
        bus.subscribe(StudentRespondedToPendingAdoption, self.handle_student_responded)

    async def transition(
        self,
        conversation: ConversationResponse,
        status: ConversationStatus,
        is_read_only: Optional[bool] = None,
    ) -> ConversationResponse:
        """Move a conversation to a new status, retrying lost compare-and-swaps.

        A terminal conversation is returned unchanged.

        Raises:
            InvalidTransitionError: the state machine forbids the move.
        """
        current = conversation
        for attempt in range(1, MAX_CAS_ATTEMPTS + 1):
            if current.status.is_terminal:
                logger.info(
                    "Conversation %s is %s; ignoring transition to %s",
                    current.id,
                    current.status.value,
                    status.value,
                )
                return current

            same_status = current.status == status
            if same_status and (is_read_only is None or current.is_read_only == is_read_only):
                return current
            if not same_status and status not in ALLOWED_TRANSITIONS[current.status]:
                raise InvalidTransitionError(
                    f"Cannot move conversation {current.id} from "
                    f"{current.status.value} to {status.value}"
                )

            try:
                updated = await self.conversation_store.update_status(
                    current.id, current.version, status, is_read_only
                )
            except ConcurrentUpdateError:
                logger.info(
                    "Conversation %s changed concurrently (attempt %d); reloading",
                    current.id,
                    attempt,
                )
                reloaded = await self.conversation_store.get_by_id(current.id)
                if reloaded is None:
                    raise NotFoundError("Conversation", str(current.id))
                current = reloaded
                continue

            logger.info(
                "Conversation %s: %s -> %s (read_only=%s)",
                updated.id,
                current.status.value,
                updated.status.value,
                updated.is_read_only,
            )
            return updated

        raise ConcurrentUpdateError(
            f"Conversation {conversation.id} kept changing; gave up after "
            f"{MAX_CAS_ATTEMPTS} attempts"
        )

    async def expire(self, conversation: ConversationResponse) -> ConversationResponse:
        """Persist EXPIRED for a conversation observed past its expires_at."""
        return await self.transition(conversation, ConversationStatus.EXPIRED)

    async def cleanup_expired_conversations(self) -> int:
        """Mark every ACTIVE conversation past its expires_at as EXPIRED.

        On-demand only; nothing schedules this.
        """
        expired = 0
        for conversation in await self.conversation_store.list_expired_active(self.clock()):
            updated = await self.expire(conversation)
            if updated.status == ConversationStatus.EXPIRED:
                expired += 1
        logger.info("Expired %d conversations", expired)
        return expired

    async def on_business_status_changed(
        self, kind: BusinessObjectKind, object_id: UUID, new_status: str
    ) -> Optional[ConversationResponse]:
        """React to a status change the owning service already persisted."""
        if kind == BusinessObjectKind.ADOPTION_REQUEST:
            return await self.on_adoption_status_changed(object_id, new_status)
        return await self.on_application_status_changed(
            object_id, ApplicationStatus(new_status)
        )

    async def on_adoption_status_changed(
        self, request_id: UUID, new_status: Union[str, AdoptionRequestStatus]
    ) -> Optional[ConversationResponse]:
        conversation = await self.conversation_store.get_by_context(
            ConversationContext.ADOPTION_REQUEST, request_id
        )
        if conversation is None:
            logger.debug("No conversation for adoption request %s", request_id)
            return None

        parsed = _parse_adoption_status(new_status)
        status, is_read_only = ADOPTION_STATUS_EFFECTS.get(parsed, DEFAULT_ADOPTION_EFFECT)
        return await self.transition(conversation, status, is_read_only)

    async def on_application_status_changed(
        self, application_id: UUID, new_status: ApplicationStatus
    ) -> Optional[ConversationResponse]:
        if new_status in CONVERSATION_OPENING_STATUSES:
            return await self.ensure_offer_conversation(application_id)
        # Other statuses gate writes through the access rules; nothing to persist
        return await self.conversation_store.get_by_context(
            ConversationContext.OFFER, application_id
        )

    async def ensure_offer_conversation(self, application_id: UUID) -> ConversationResponse:
        """Create the application's conversation if it does not exist yet.

        An existing conversation gets its two participants re-added, which
        completes one left without members by an interrupted creation.

        Raises:
            NotFoundError: the application does not exist.
        """
        application = await self.application_store.get(application_id)
        if application is None:
            raise NotFoundError("Application", str(application_id))
        members = [application.student_id, application.company_user_id]

        existing = await self.conversation_store.get_by_context(
            ConversationContext.OFFER, application_id
        )
        if existing is not None:
            await self.participant_directory.add_participants(existing.id, members)
            return existing

        topic = (
            f"Candidature - {application.offer_title}"
            if application.offer_title
            else "Candidature"
        )
        conversation = self._new_conversation(
            topic=topic,
            context=ConversationContext.OFFER,
            context_id=application_id,
            status=ConversationStatus.ACTIVE,
        )
        created = await self._create_context_conversation(conversation, members)
        if created.id != conversation.id:
            return created
        logger.info(
            "Opened offer conversation %s for application %s", created.id, application_id
        )
        return created

    async def open_adoption_conversation(
        self, request: AdoptionConversationRequest
    ) -> ConversationResponse:
        """Create the PENDING_APPROVAL conversation carrying the company's first message.

        Calling it again for the same request re-adds the participants, and
        posts the first message if the conversation still has none.
        """
        content = normalize_content(request.message, self.max_message_length)
        members = [request.company_user_id, request.student_id]

        existing = await self.conversation_store.get_by_context(
            ConversationContext.ADOPTION_REQUEST, request.adoption_request_id
        )
        if existing is not None:
            await self.participant_directory.add_participants(existing.id, members)
            if await self.message_store.count(existing.id) == 0:
                logger.warning(
                    "Adoption conversation %s had no first message; posting it now",
                    existing.id,
                )
                await self.message_store.create(existing.id, request.company_user_id, content)
            return existing

        conversation = self._new_conversation(
            topic=f"Demande d'adoption - {request.company_name}",
            context=ConversationContext.ADOPTION_REQUEST,
            context_id=request.adoption_request_id,
            status=ConversationStatus.PENDING_APPROVAL,
        )
        created = await self._create_context_conversation(
            conversation, members, first_message=(request.company_user_id, content)
        )
        if created.id != conversation.id:
            return created
        logger.info(
            "Opened adoption conversation %s for request %s",
            created.id,
            request.adoption_request_id,
        )
        return created

    async def _create_context_conversation(
        self,
        conversation: ConversationResponse,
        members: List[UUID],
        first_message: Optional[Tuple[UUID, str]] = None,
    ) -> ConversationResponse:
        """Create a business-linked conversation with its members and opening message.

        A failure after the insert deletes the conversation again, so a retry
        starts from scratch. Losing the insert race returns the winner's row.
        """

        async def create_conversation() -> ConversationResponse:
            return await self.conversation_store.create(conversation)

        async def delete_conversation() -> None:
            await self.participant_directory.reset()
            await self.conversation_store.delete(conversation.id)

        async def add_participants() -> None:
            await self.participant_directory.add_participants(conversation.id, members)

        saga = (
            Saga(name=f"open_{conversation.context.value.lower()}_conversation")
            .add_step("create_conversation", create_conversation, delete_conversation)
            .add_step("add_participants", add_participants)
        )
        if first_message is not None:
            sender_id, content = first_message

            async def post_first_message() -> None:
                await self.message_store.create(conversation.id, sender_id, content)

            saga.add_step("post_first_message", post_first_message)

        try:
            results = await saga.run()
        except DuplicateConversationError:
            logger.info(
                "Conversation for %s %s already exists",
                conversation.context.value,
                conversation.context_id,
            )
            winner = await self.conversation_store.get_by_context(
                conversation.context, conversation.context_id
            )
            if winner is None:
                raise
            return winner
        except Exception:
            if saga.completed and not saga.compensated:
                logger.warning(
                    "Conversation %s left half-created; the next call for %s %s repairs it",
                    conversation.id,
                    conversation.context.value,
                    conversation.context_id,
                )
            raise
        return results["create_conversation"]

    async def handle_student_responded(self, event: StudentRespondedToPendingAdoption) -> None:
        """Auto-accept: the student's reply accepts the pending adoption request."""
        accepted = await self.adoption_request_store.set_status(
            event.adoption_request_id,
            AdoptionRequestStatus.ACCEPTED,
            expected=AdoptionRequestStatus.PENDING,
        )
        if not accepted:
            # Another transition (accept or reject) got there first
            logger.info(
                "Adoption request %s is no longer pending; skipping auto-accept",
                event.adoption_request_id,
            )
            return

        conversation = await self.conversation_store.get_by_id(event.conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", str(event.conversation_id))
        await self.transition(conversation, ConversationStatus.ACTIVE, is_read_only=False)
        logger.info(
            "Adoption request %s auto-accepted by student %s",
            event.adoption_request_id,
            event.student_id,
        )

    async def send_admin_message(
        self,
        admin_id: UUID,
        recipient_id: UUID,
        subject: str,
        content: str,
        is_read_only: bool = False,
    ) -> Tuple[ConversationResponse, MessageResponse]:
        """Start a direct conversation from an admin to one user.

        Raises:
            NotFoundError: the recipient is unknown or inactive.
        """
        text = normalize_content(content, self.max_message_length)
        if await self.participant_directory.user_directory.get_role(recipient_id) is None:
            raise NotFoundError("User", str(recipient_id))

        conversation = self._new_conversation(
            topic=subject,
            context=ConversationContext.NONE,
            context_id=None,
            status=ConversationStatus.ACTIVE,
        ).model_copy(update={"is_read_only": is_read_only, "created_by_id": admin_id})
        created = await self.conversation_store.create(conversation)
        await self.participant_directory.add_participants(created.id, [admin_id, recipient_id])
        message = await self.message_store.create(created.id, admin_id, text)
        logger.info(
            "Admin %s opened conversation %s with %s (read_only=%s)",
            admin_id,
            created.id,
            recipient_id,
            is_read_only,
        )
        return created, message

    def _new_conversation(
        self,
        topic: str,
        context: ConversationContext,
        context_id: Optional[UUID],
        status: ConversationStatus,
    ) -> ConversationResponse:
        now = self.clock()
        return ConversationResponse(
            id=uuid4(),
            topic=topic,
            context=context,
            context_id=context_id,
            status=status,
            created_at=now,
            updated_at=now,
        )
