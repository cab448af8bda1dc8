"""Adapters over the adoption_requests and applications tables.

Those rows belong to other services; the messaging core reads them and
applies guarded status updates.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession

from internship_messaging.models.api.business import (
    AdoptionRequestRecord,
    ApplicationRecord,
)
from internship_messaging.models.db.business_models import (
    AdoptionRequestModel,
    ApplicationModel,
)
from internship_messaging.models.enums import AdoptionRequestStatus, ApplicationStatus
from internship_messaging.repositories.base_repository import (
    BaseRepository,
    ModelType,
    PydanticType,
)
from internship_messaging.services.ports import AdoptionRequestStore, ApplicationStore


class StatusRepository(BaseRepository[ModelType, PydanticType]):
    """Base for tables whose rows carry a string status column."""

    async def _set_status(
        self, object_id: UUID, status: str, expected: Optional[str] = None
    ) -> bool:
        statement = (
            update(self.model_class)
            .where(self.model_class.id == object_id)
            .values(status=status, updated_at=func.now())
        )
        if expected is not None:
            statement = statement.where(self.model_class.status == expected)
        result = await self._execute(statement)
        await self._commit()
        return result.rowcount > 0


class AdoptionRequestRepository(
    StatusRepository[AdoptionRequestModel, AdoptionRequestRecord], AdoptionRequestStore
):
    def __init__(self, db: AsyncSession):
        super().__init__(db, AdoptionRequestModel)

    async def get(self, request_id: UUID) -> Optional[AdoptionRequestRecord]:
        return await self.get_by_id(request_id)

    async def set_status(
        self,
        request_id: UUID,
        status: AdoptionRequestStatus,
        expected: Optional[AdoptionRequestStatus] = None,
    ) -> bool:
        return await self._set_status(
            request_id, status.value, expected.value if expected else None
        )

    def _to_pydantic(self, db_model: Any) -> AdoptionRequestRecord:
        return AdoptionRequestRecord(
            id=db_model.id,
            company_user_id=db_model.company_user_id,
            student_id=db_model.student_id,
            company_name=db_model.company_name,
            status=AdoptionRequestStatus(db_model.status),
        )


class ApplicationRepository(StatusRepository[ApplicationModel, ApplicationRecord], ApplicationStore):
    def __init__(self, db: AsyncSession):
        super().__init__(db, ApplicationModel)

    async def get(self, application_id: UUID) -> Optional[ApplicationRecord]:
        return await self.get_by_id(application_id)

    async def set_status(
        self,
        application_id: UUID,
        status: ApplicationStatus,
        expected: Optional[ApplicationStatus] = None,
    ) -> bool:
        return await self._set_status(
            application_id, status.value, expected.value if expected else None
        )

    def _to_pydantic(self, db_model: Any) -> ApplicationRecord:
        return ApplicationRecord(
            id=db_model.id,
            student_id=db_model.student_id,
            company_user_id=db_model.company_user_id,
            offer_title=db_model.offer_title,
            status=ApplicationStatus(db_model.status),
        )
