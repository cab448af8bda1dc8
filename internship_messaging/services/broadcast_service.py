import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Union
from uuid import UUID, uuid4

from internship_messaging.errors import (
    BroadcastFailedError,
    ConnectivityError,
    NoRecipientsError,
)
from internship_messaging.logging_config import get_logger
from internship_messaging.models.api.broadcasts import BroadcastResponse
from internship_messaging.models.api.conversations import ConversationResponse
from internship_messaging.models.enums import (
    BroadcastTarget,
    ConversationContext,
    ConversationStatus,
    Role,
)
from internship_messaging.services.access_control import utcnow
from internship_messaging.services.content import normalize_content
from internship_messaging.services.participant_directory import ParticipantDirectory
from internship_messaging.services.ports import (
    ConversationStore,
    MessageStore,
    UserDirectory,
)
from internship_messaging.services.saga import Saga

logger = get_logger(__name__)

DEFAULT_BROADCAST_TOPIC = "Broadcast Message"


@dataclass
class _BroadcastState:
    conversation: Optional[ConversationResponse] = None


class BroadcastFanout:
    """Creates one read-only conversation delivered to a whole cohort."""

    def __init__(
        self,
        conversation_store: ConversationStore,
        message_store: MessageStore,
        participant_directory: ParticipantDirectory,
        user_directory: UserDirectory,
        batch_size: int = 10,
        batch_timeout: float = 10.0,
        max_message_length: int = 2000,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.conversation_store = conversation_store
        self.message_store = message_store
        self.participant_directory = participant_directory
        self.user_directory = user_directory
        self.batch_size = batch_size
        self.batch_timeout = batch_timeout
        self.max_message_length = max_message_length
        self.clock = clock

    async def create_broadcast(
        self,
        admin_id: UUID,
        content: str,
        target_role: Optional[Union[Role, str]] = None,
        subject: Optional[str] = None,
    ) -> BroadcastResponse:
        """
        Broadcast a message from an admin:

        1. Resolve the target cohort (fails with NoRecipientsError if empty)
        2. Create the conversation and the admin's message
        3. Add the admin and the cohort as participants, batch by batch
        4. On any batch failure, delete the conversation and raise once
        """
        text = normalize_content(content, self.max_message_length)
        target = BroadcastTarget.for_role(target_role)

        cohort = [
            user_id
            for user_id in await self.user_directory.list_active_ids(target.cohort_role)
            if user_id != admin_id
        ]
        if not cohort:
            logger.info("Broadcast from %s has no recipients for %s", admin_id, target.value)
            raise NoRecipientsError(
                f"No users found for target role: {target_role or 'ALL'}"
            )

        state = _BroadcastState()

        async def create_conversation() -> ConversationResponse:
            now = self.clock()
            state.conversation = await self.conversation_store.create(
                ConversationResponse(
                    id=uuid4(),
                    topic=subject or DEFAULT_BROADCAST_TOPIC,
                    context=ConversationContext.BROADCAST,
                    status=ConversationStatus.ACTIVE,
                    is_read_only=True,
                    is_broadcast=True,
                    broadcast_target=target,
                    created_by_id=admin_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            return state.conversation

        async def delete_conversation() -> None:
            await self.participant_directory.reset()
            if state.conversation is not None:
                await self.conversation_store.delete(state.conversation.id)

        async def post_message() -> None:
            await self.message_store.create(state.conversation.id, admin_id, text)

        async def add_participants() -> None:
            await self._insert_participants(state.conversation.id, [admin_id, *cohort])

        saga = (
            Saga(name="broadcast")
            .add_step("create_conversation", create_conversation, delete_conversation)
            .add_step("post_initial_message", post_message)
            .add_step("add_participants", add_participants)
        )

        try:
            await saga.run()
        except BroadcastFailedError as e:
            e.compensated = saga.compensated
            logger.error(
                "Broadcast from %s to %s failed (%d/%d batches, compensated=%s)",
                admin_id,
                target.value,
                e.failed_batches,
                e.total_batches,
                saga.compensated,
            )
            raise
        except ConnectivityError:
            logger.error(
                "Broadcast from %s to %s lost the database connection (compensated=%s)",
                admin_id,
                target.value,
                saga.compensated,
            )
            raise

        logger.info(
            "Broadcast %s sent by %s to %d %s recipients",
            state.conversation.id,
            admin_id,
            len(cohort),
            target.value,
        )
        return BroadcastResponse(conversation_id=state.conversation.id, sent_to=len(cohort))

    async def _insert_participants(self, conversation_id: UUID, user_ids: Sequence[UUID]) -> None:
        batches = [
            list(user_ids[i : i + self.batch_size])
            for i in range(0, len(user_ids), self.batch_size)
        ]
        errors: List[Exception] = []

        # One batch in flight at a time
        for index, batch in enumerate(batches, start=1):
            try:
                await asyncio.wait_for(
                    self.participant_directory.add_participants(conversation_id, batch),
                    timeout=self.batch_timeout,
                )
            except asyncio.TimeoutError as e:
                logger.error(
                    "Participant batch %d/%d for %s timed out after %.1fs",
                    index,
                    len(batches),
                    conversation_id,
                    self.batch_timeout,
                )
                errors.append(e)
                # The cancelled insert leaves the session needing a rollback
                await self.participant_directory.reset()
            except Exception as e:
                logger.error(
                    "Failed to create participant batch %d/%d for %s: %s",
                    index,
                    len(batches),
                    conversation_id,
                    e,
                )
                errors.append(e)
                await self.participant_directory.reset()

        if not errors:
            return
        if all(isinstance(e, ConnectivityError) for e in errors):
            raise ConnectivityError(
                f"Database connection failed while adding participants to {conversation_id}"
            )
        raise BroadcastFailedError(failed_batches=len(errors), total_batches=len(batches))
