import uuid

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from internship_messaging.database import Base


class ConversationModel(Base):
    """SQLAlchemy model for conversations table."""

    __tablename__ = "conversations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    topic = Column(String(255), nullable=False)
    context = Column(String(20), nullable=False, default="NONE")
    context_id = Column(UUID(as_uuid=True), nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")
    is_read_only = Column(Boolean, nullable=False, default=False)
    is_broadcast = Column(Boolean, nullable=False, default=False)
    broadcast_target = Column(String(20), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_by_id = Column(UUID(as_uuid=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    # Relationships
    messages = relationship(
        "MessageModel",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    participants = relationship(
        "ParticipantModel",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # One conversation per linked business object
        Index(
            "idx_unique_conversation_context",
            "context",
            "context_id",
            unique=True,
            postgresql_where=text("context_id IS NOT NULL"),
        ),
        Index("idx_conversations_status_expires", "status", "expires_at"),
    )

    # Constraints (enforced by database CHECK constraints in the migration)
    # context IN ('NONE', 'ADOPTION_REQUEST', 'OFFER', 'BROADCAST')
    # status IN ('PENDING_APPROVAL', 'ACTIVE', 'ARCHIVED', 'EXPIRED')
    # broadcast_target IN ('ALL', 'STUDENTS', 'COMPANIES')
