from typing import List, Sequence
from uuid import UUID

from internship_messaging.logging_config import get_logger
from internship_messaging.services.ports import ParticipantStore, UserDirectory

logger = get_logger(__name__)


class ParticipantDirectory:
    """Resolves who belongs to a conversation."""

    def __init__(self, participant_store: ParticipantStore, user_directory: UserDirectory):
        self.participant_store = participant_store
        self.user_directory = user_directory

    async def is_participant(self, user_id: UUID, conversation_id: UUID) -> bool:
        return await self.participant_store.is_member(conversation_id, user_id)

    async def list_participants(self, conversation_id: UUID) -> List[UUID]:
        return await self.participant_store.list_members(conversation_id)

    async def add_participants(self, conversation_id: UUID, user_ids: Sequence[UUID]) -> int:
        inserted = await self.participant_store.add_members(conversation_id, user_ids)
        logger.debug(
            "Added %d/%d participants to conversation %s",
            inserted,
            len(user_ids),
            conversation_id,
        )
        return inserted

    async def reset(self) -> None:
        await self.participant_store.reset()
