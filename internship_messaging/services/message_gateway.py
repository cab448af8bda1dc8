from typing import Optional
from uuid import UUID

from internship_messaging.errors import AccessDeniedError
from internship_messaging.logging_config import get_logger
from internship_messaging.models.api.messages import MessageResponse
from internship_messaging.models.enums import AdoptionRequestStatus, Role
from internship_messaging.services.access_control import (
    AccessControlEngine,
    Actor,
    load_membership,
)
from internship_messaging.services.content import normalize_content
from internship_messaging.services.context_resolver import (
    AdoptionRequestContext,
    ContextResolver,
)
from internship_messaging.services.events import (
    EventBus,
    StudentRespondedToPendingAdoption,
)
from internship_messaging.services.lifecycle_coordinator import LifecycleCoordinator
from internship_messaging.services.participant_directory import ParticipantDirectory
from internship_messaging.services.ports import MessageStore

logger = get_logger(__name__)


class MessageGateway:
    """Single entry point for posting a message into a conversation."""

    def __init__(
        self,
        context_resolver: ContextResolver,
        access_control: AccessControlEngine,
        participant_directory: ParticipantDirectory,
        lifecycle: LifecycleCoordinator,
        message_store: MessageStore,
        bus: EventBus,
        max_message_length: int = 2000,
    ):
        self.context_resolver = context_resolver
        self.access_control = access_control
        self.participant_directory = participant_directory
        self.lifecycle = lifecycle
        self.message_store = message_store
        self.bus = bus
        self.max_message_length = max_message_length

    async def post_message(
        self, user_id: UUID, role: Role, conversation_id: UUID, content: str
    ) -> MessageResponse:
        """
        Post a message:

        1. Validate content and load the conversation with its context
        2. Evaluate write access; persist EXPIRED if expiry was observed
        3. Store the message
        4. A student reply to a pending adoption request auto-accepts it

        Raises:
            ContentValidationError: empty or oversized content.
            NotFoundError: the conversation does not exist.
            AccessDeniedError: the actor may not write; carries the reason.
        """
        text = normalize_content(content, self.max_message_length)
        actor = Actor(user_id=user_id, role=role)

        conversation, context = await self.context_resolver.load(conversation_id)
        membership = await load_membership(self.participant_directory, actor, conversation)
        decision = self.access_control.evaluate(actor, conversation, context, membership)

        if decision.expiration_observed:
            await self.lifecycle.expire(conversation)

        if not decision.can_write:
            logger.info(
                "User %s (%s) denied writing to conversation %s: %s",
                user_id,
                role.value,
                conversation_id,
                decision.denial_reason.value,
            )
            raise AccessDeniedError(decision.denial_reason)

        message = await self.message_store.create(conversation.id, user_id, text)
        logger.debug("Message %s posted to conversation %s by %s", message.id, conversation.id, user_id)

        event = self._adoption_reply_event(actor, conversation.is_broadcast, context, message)
        if event is not None:
            failures = await self.bus.publish(event)
            for failure in failures:
                # Message stands; the adoption request needs manual reconciliation
                logger.warning(
                    "Auto-accept for adoption request %s failed after message %s; reconcile: %s",
                    event.adoption_request_id,
                    message.id,
                    failure.error,
                )

        return message

    @staticmethod
    def _adoption_reply_event(
        actor: Actor, is_broadcast: bool, context: object, message: MessageResponse
    ) -> Optional[StudentRespondedToPendingAdoption]:
        if is_broadcast or actor.role != Role.STUDENT:
            return None
        if not isinstance(context, AdoptionRequestContext):
            return None
        if context.status != AdoptionRequestStatus.PENDING:
            return None
        return StudentRespondedToPendingAdoption(
            conversation_id=message.conversation_id,
            adoption_request_id=context.request.id,
            student_id=actor.user_id,
            message_id=message.id,
        )
