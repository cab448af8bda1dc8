from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from internship_messaging.models.db.user_model import UserModel
from internship_messaging.models.enums import Role
from internship_messaging.repositories.base_repository import BaseRepository
from internship_messaging.services.ports import UserDirectory


class UserRepository(BaseRepository[UserModel, BaseModel], UserDirectory):
    """Read-only access to users owned by the auth service.

    Only ids and roles are ever read; no user record is materialized.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(db, UserModel)

    async def get_role(self, user_id: UUID) -> Optional[Role]:
        query = select(self.model_class.role).where(
            self.model_class.id == user_id, self.model_class.is_active.is_(True)
        )
        result = await self._execute(query)
        role = result.scalar_one_or_none()
        return Role(role) if role else None

    async def list_active_ids(self, role: Optional[Role] = None) -> List[UUID]:
        query = select(self.model_class.id).where(self.model_class.is_active.is_(True))
        if role is not None:
            query = query.where(self.model_class.role == role.value)
        result = await self._execute(query.order_by(self.model_class.id))
        return list(result.scalars().all())
