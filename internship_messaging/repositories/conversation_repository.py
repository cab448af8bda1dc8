from datetime import datetime
from typing import Any, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, delete, exists, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from internship_messaging.errors import ConcurrentUpdateError, DuplicateConversationError
from internship_messaging.models.api.conversations import ConversationResponse
from internship_messaging.models.db.conversation_model import ConversationModel
from internship_messaging.models.db.message_model import MessageModel
from internship_messaging.models.db.participant_model import ParticipantModel
from internship_messaging.models.enums import (
    BroadcastTarget,
    ConversationContext,
    ConversationStatus,
    Role,
)
from internship_messaging.repositories.base_repository import BaseRepository
from internship_messaging.services.ports import ConversationStore


def _targets_for_role(role: Role) -> List[str]:
    return [target.value for target in BroadcastTarget if target.matches(role)]


class ConversationRepository(
    BaseRepository[ConversationModel, ConversationResponse], ConversationStore
):
    """Repository for conversation operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ConversationModel)

    async def create(self, pydantic_model: ConversationResponse) -> ConversationResponse:
        """Create a new conversation.

        Raises:
            DuplicateConversationError: (context, context_id) is already taken.
        """
        try:
            return await super().create(pydantic_model)
        except IntegrityError as e:
            raise DuplicateConversationError(
                f"A {pydantic_model.context.value} conversation already exists "
                f"for {pydantic_model.context_id}"
            ) from e

    async def get_by_context(
        self, context: ConversationContext, context_id: UUID
    ) -> Optional[ConversationResponse]:
        query = select(self.model_class).where(
            self.model_class.context == context.value,
            self.model_class.context_id == context_id,
        )
        result = await self._execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def update_status(
        self,
        conversation_id: UUID,
        expected_version: int,
        status: ConversationStatus,
        is_read_only: Optional[bool] = None,
    ) -> ConversationResponse:
        values = {
            "status": status.value,
            "version": self.model_class.version + 1,
            "updated_at": func.now(),
        }
        if is_read_only is not None:
            values["is_read_only"] = is_read_only

        statement = (
            update(self.model_class)
            .where(
                self.model_class.id == conversation_id,
                self.model_class.version == expected_version,
            )
            .values(**values)
            .returning(self.model_class)
            .execution_options(populate_existing=True)
        )
        result = await self._execute(statement)
        db_model = result.scalar_one_or_none()
        if db_model is None:
            await self.db.rollback()
            raise ConcurrentUpdateError(
                f"Conversation {conversation_id} is no longer at version {expected_version}"
            )
        await self._commit()
        return self._to_pydantic(db_model)

    async def delete(self, conversation_id: UUID) -> bool:
        """Delete a conversation; messages and participants cascade in the database."""
        statement = delete(self.model_class).where(self.model_class.id == conversation_id)
        result = await self._execute(statement)
        await self._commit()
        return result.rowcount > 0

    async def list_for_user(
        self,
        user_id: UUID,
        role: Role,
        context: Optional[ConversationContext] = None,
        status: Optional[ConversationStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[ConversationResponse], int]:
        member_of = select(ParticipantModel.conversation_id).where(
            ParticipantModel.user_id == user_id
        )
        conditions = [
            or_(
                self.model_class.id.in_(member_of),
                and_(
                    self.model_class.is_broadcast.is_(True),
                    self.model_class.broadcast_target.in_(_targets_for_role(role)),
                ),
            )
        ]
        if context is not None:
            conditions.append(self.model_class.context == context.value)
        if status is not None:
            conditions.append(self.model_class.status == status.value)
        return await self._page(conditions, limit, offset)

    async def list_broadcasts_for_role(
        self, role: Role, limit: int = 20, offset: int = 0
    ) -> Tuple[List[ConversationResponse], int]:
        conditions = [self.model_class.is_broadcast.is_(True)]
        # Admins see every broadcast regardless of audience
        if role != Role.ADMIN:
            conditions.append(self.model_class.broadcast_target.in_(_targets_for_role(role)))
        return await self._page(conditions, limit, offset)

    async def list_all(
        self,
        search: Optional[str] = None,
        context: Optional[ConversationContext] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[ConversationResponse], int]:
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    self.model_class.topic.ilike(pattern),
                    exists().where(
                        MessageModel.conversation_id == self.model_class.id,
                        MessageModel.content.ilike(pattern),
                    ),
                )
            )
        if context is not None:
            conditions.append(self.model_class.context == context.value)
        return await self._page(conditions, limit, offset)

    async def list_expired_active(self, now: datetime) -> List[ConversationResponse]:
        query = select(self.model_class).where(
            self.model_class.status == ConversationStatus.ACTIVE.value,
            self.model_class.expires_at.is_not(None),
            self.model_class.expires_at < now,
        )
        result = await self._execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def _page(
        self, conditions: List[Any], limit: int, offset: int
    ) -> Tuple[List[ConversationResponse], int]:
        count_query = select(func.count()).select_from(self.model_class).where(*conditions)
        total = (await self._execute(count_query)).scalar_one()

        query = (
            select(self.model_class)
            .where(*conditions)
            .order_by(self.model_class.updated_at.desc(), self.model_class.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self._execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()], total

    def _to_pydantic(self, db_model: Any) -> ConversationResponse:
        """Convert SQLAlchemy ConversationModel to Pydantic ConversationResponse."""
        return ConversationResponse(
            id=db_model.id,
            topic=db_model.topic,
            context=ConversationContext(db_model.context),
            context_id=db_model.context_id,
            status=ConversationStatus(db_model.status),
            is_read_only=db_model.is_read_only,
            is_broadcast=db_model.is_broadcast,
            broadcast_target=(
                BroadcastTarget(db_model.broadcast_target)
                if db_model.broadcast_target
                else None
            ),
            expires_at=db_model.expires_at,
            created_by_id=db_model.created_by_id,
            version=db_model.version,
            created_at=db_model.created_at,
            updated_at=db_model.updated_at,
        )

    def _from_pydantic(self, pydantic_model: ConversationResponse) -> ConversationModel:
        """Convert Pydantic ConversationResponse to SQLAlchemy ConversationModel."""
        return ConversationModel(
            id=pydantic_model.id,
            topic=pydantic_model.topic,
            context=pydantic_model.context.value,
            context_id=pydantic_model.context_id,
            status=pydantic_model.status.value,
            is_read_only=pydantic_model.is_read_only,
            is_broadcast=pydantic_model.is_broadcast,
            broadcast_target=(
                pydantic_model.broadcast_target.value
                if pydantic_model.broadcast_target
                else None
            ),
            expires_at=pydantic_model.expires_at,
            created_by_id=pydantic_model.created_by_id,
            version=pydantic_model.version,
            created_at=pydantic_model.created_at,
            updated_at=pydantic_model.updated_at,
        )
