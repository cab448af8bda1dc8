import uuid

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from internship_messaging.database import Base


class AdoptionRequestModel(Base):
    """Columns of the adoption_requests table the messaging core reads and writes."""

    __tablename__ = "adoption_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_user_id = Column(UUID(as_uuid=True), nullable=False)
    student_id = Column(UUID(as_uuid=True), nullable=False)
    company_name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING")
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )


class ApplicationModel(Base):
    """Columns of the applications table the messaging core reads."""

    __tablename__ = "applications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), nullable=False)
    company_user_id = Column(UUID(as_uuid=True), nullable=False)
    offer_title = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="NEW")
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )
