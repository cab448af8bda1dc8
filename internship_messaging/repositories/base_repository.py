from typing import Any, Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from internship_messaging.database import Base
from internship_messaging.errors import ConnectivityError
from internship_messaging.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)
PydanticType = TypeVar("PydanticType", bound=BaseModel)

CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, OSError)

logger = get_logger(__name__)


class BaseRepository(Generic[ModelType, PydanticType]):
    """Generic base repository with common CRUD operations."""

    def __init__(self, db: AsyncSession, model_class: Any):
        self.db = db
        self.model_class = model_class

    async def get_by_id(self, id: UUID) -> Optional[PydanticType]:
        """Get a single record by ID."""
        query = select(self.model_class).where(self.model_class.id == id)  # type: ignore
        result = await self._execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def create(self, pydantic_model: PydanticType) -> PydanticType:
        """Create a new record."""
        db_model = self._from_pydantic(pydantic_model)
        self.db.add(db_model)
        await self._commit()
        await self.db.refresh(db_model)
        return self._to_pydantic(db_model)

    async def _execute(self, statement: Any) -> Any:
        """Execute a statement, surfacing a lost connection as ConnectivityError."""
        try:
            return await self.db.execute(statement)
        except CONNECTIVITY_ERRORS as e:
            await self._rollback_quietly()
            logger.error("Database unreachable in %s: %s", type(self).__name__, e)
            raise ConnectivityError("Database connection failed") from e

    async def _commit(self) -> None:
        """Commit, rolling back on failure.

        Raises:
            IntegrityError: a constraint was violated; callers translate it.
            ConnectivityError: the connection was lost.
        """
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        except CONNECTIVITY_ERRORS as e:
            await self._rollback_quietly()
            logger.error("Database unreachable committing in %s: %s", type(self).__name__, e)
            raise ConnectivityError("Database connection failed") from e

    async def reset(self) -> None:
        """Roll back whatever a failed or cancelled call left on the session."""
        await self._rollback_quietly()

    async def _rollback_quietly(self) -> None:
        try:
            await self.db.rollback()
        except CONNECTIVITY_ERRORS:
            # Connection is already gone; the session is discarded with the request
            logger.debug("Rollback skipped; connection already closed")

    def _to_pydantic(self, db_model: ModelType) -> PydanticType:
        """Convert SQLAlchemy model to Pydantic model.

        This should be overridden in subclasses for specific conversion logic.
        """
        raise NotImplementedError

    def _from_pydantic(self, pydantic_model: PydanticType) -> ModelType:
        """Convert Pydantic model to SQLAlchemy model.

        This should be overridden in subclasses for specific conversion logic.
        """
        raise NotImplementedError
