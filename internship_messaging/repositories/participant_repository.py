from typing import Any, List, Sequence
from uuid import UUID

from sqlalchemy import exists
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from internship_messaging.models.api.participants import ParticipantResponse
from internship_messaging.models.db.participant_model import ParticipantModel
from internship_messaging.repositories.base_repository import BaseRepository
from internship_messaging.services.ports import ParticipantStore


class ParticipantRepository(
    BaseRepository[ParticipantModel, ParticipantResponse], ParticipantStore
):
    """Repository for participant operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ParticipantModel)

    async def get_by_conversation(self, conversation_id: UUID) -> List[ParticipantResponse]:
        """Get all participants for a conversation, oldest first."""
        query = (
            select(self.model_class)
            .where(self.model_class.conversation_id == conversation_id)
            .order_by(self.model_class.joined_at)
        )
        result = await self._execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def is_member(self, conversation_id: UUID, user_id: UUID) -> bool:
        query = select(
            exists().where(
                self.model_class.conversation_id == conversation_id,
                self.model_class.user_id == user_id,
            )
        )
        result = await self._execute(query)
        return bool(result.scalar())

    async def list_members(self, conversation_id: UUID) -> List[UUID]:
        return [p.user_id for p in await self.get_by_conversation(conversation_id)]

    async def add_members(self, conversation_id: UUID, user_ids: Sequence[UUID]) -> int:
        """Bulk insert participants; pairs already present are skipped."""
        if not user_ids:
            return 0
        statement = (
            insert(self.model_class)
            .values([{"conversation_id": conversation_id, "user_id": u} for u in user_ids])
            .on_conflict_do_nothing(constraint="uq_participant_conversation_user")
        )
        result = await self._execute(statement)
        await self._commit()
        return result.rowcount

    def _to_pydantic(self, db_model: Any) -> ParticipantResponse:
        """Convert SQLAlchemy ParticipantModel to Pydantic ParticipantResponse."""
        return ParticipantResponse(
            id=db_model.id,
            conversation_id=db_model.conversation_id,
            user_id=db_model.user_id,
            joined_at=db_model.joined_at,
        )
