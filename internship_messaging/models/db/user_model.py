import uuid

from sqlalchemy import Boolean, Column, String
from sqlalchemy.dialects.postgresql import UUID

from internship_messaging.database import Base


class UserModel(Base):
    """Read-side view of the users table owned by the auth service."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(String(10), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
