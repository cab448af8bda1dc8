import uuid
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from internship_messaging.models.api.messages import MessageResponse
from internship_messaging.models.db.message_model import MessageModel
from internship_messaging.repositories.base_repository import BaseRepository
from internship_messaging.services.ports import MessageStore


class MessageRepository(BaseRepository[MessageModel, MessageResponse], MessageStore):
    """Repository for message operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, MessageModel)

    async def create(  # type: ignore[override]
        self, conversation_id: UUID, sender_id: UUID, content: str
    ) -> MessageResponse:
        """Insert a message; created_at comes from the database clock."""
        db_model = MessageModel(
            id=uuid.uuid4(),
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
        )
        self.db.add(db_model)
        await self._commit()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    async def list_by_conversation(self, conversation_id: UUID) -> List[MessageResponse]:
        query = (
            select(self.model_class)
            .where(self.model_class.conversation_id == conversation_id)
            .order_by(self.model_class.created_at.asc(), self.model_class.id)
        )
        result = await self._execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def latest(self, conversation_id: UUID) -> Optional[MessageResponse]:
        query = (
            select(self.model_class)
            .where(self.model_class.conversation_id == conversation_id)
            .order_by(self.model_class.created_at.desc())
            .limit(1)
        )
        result = await self._execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def count(self, conversation_id: UUID) -> int:
        query = select(func.count(self.model_class.id)).where(
            self.model_class.conversation_id == conversation_id
        )
        result = await self._execute(query)
        return result.scalar_one()

    def _to_pydantic(self, db_model: Any) -> MessageResponse:
        """Convert SQLAlchemy MessageModel to Pydantic MessageResponse."""
        return MessageResponse(
            id=db_model.id,
            conversation_id=db_model.conversation_id,
            sender_id=db_model.sender_id,
            content=db_model.content,
            created_at=db_model.created_at,
        )
