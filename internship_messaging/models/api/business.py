from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from internship_messaging.models.enums import (
    AdoptionRequestStatus,
    ApplicationStatus,
    BusinessObjectKind,
)


class AdoptionRequestRecord(BaseModel):
    id: UUID
    company_user_id: UUID
    student_id: UUID
    company_name: str
    status: AdoptionRequestStatus = AdoptionRequestStatus.PENDING

    model_config = ConfigDict(from_attributes=True)


class ApplicationRecord(BaseModel):
    id: UUID
    student_id: UUID
    company_user_id: UUID
    offer_title: Optional[str] = None
    status: ApplicationStatus = ApplicationStatus.NEW

    model_config = ConfigDict(from_attributes=True)


class BusinessStatusChangedRequest(BaseModel):
    """Notification sent by the owning service after it persisted a status change."""

    kind: BusinessObjectKind
    id: UUID
    new_status: str = Field(..., description="New adoption request or application status")


class AdoptionConversationRequest(BaseModel):
    """Notification sent when a company creates an adoption request."""

    adoption_request_id: UUID
    company_user_id: UUID
    student_id: UUID
    company_name: str
    message: str = Field(..., min_length=1)
