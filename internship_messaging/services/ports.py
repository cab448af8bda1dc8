"""Store interfaces the messaging core depends on.

The SQLAlchemy repositories implement these; tests substitute in-memory
implementations. Every method is an awaited I/O boundary.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from internship_messaging.models.api.business import (
    AdoptionRequestRecord,
    ApplicationRecord,
)
from internship_messaging.models.api.conversations import ConversationResponse
from internship_messaging.models.api.messages import MessageResponse
from internship_messaging.models.enums import (
    AdoptionRequestStatus,
    ApplicationStatus,
    ConversationContext,
    ConversationStatus,
    Role,
)


class ConversationStore(ABC):
    """Create, read and update conversations."""

    @abstractmethod
    async def create(self, conversation: ConversationResponse) -> ConversationResponse:
        """Persist a new conversation.

        Raises:
            DuplicateConversationError: a conversation already exists for the
                same (context, context_id).
        """

    @abstractmethod
    async def get_by_id(self, conversation_id: UUID) -> Optional[ConversationResponse]:
        """Get a conversation by ID."""

    @abstractmethod
    async def get_by_context(
        self, context: ConversationContext, context_id: UUID
    ) -> Optional[ConversationResponse]:
        """Get the conversation linked to a business object."""

    @abstractmethod
    async def update_status(
        self,
        conversation_id: UUID,
        expected_version: int,
        status: ConversationStatus,
        is_read_only: Optional[bool] = None,
    ) -> ConversationResponse:
        """Compare-and-swap the status (and optionally the read-only flag).

        Raises:
            ConcurrentUpdateError: the stored version no longer matches.
        """

    @abstractmethod
    async def delete(self, conversation_id: UUID) -> bool:
        """Delete a conversation with its messages and participants."""

    @abstractmethod
    async def list_for_user(
        self,
        user_id: UUID,
        role: Role,
        context: Optional[ConversationContext] = None,
        status: Optional[ConversationStatus] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[ConversationResponse], int]:
        """Conversations the user participates in plus broadcasts aimed at their role."""

    @abstractmethod
    async def list_broadcasts_for_role(
        self, role: Role, limit: int = 20, offset: int = 0
    ) -> Tuple[List[ConversationResponse], int]:
        """Broadcasts whose target matches the role."""

    @abstractmethod
    async def list_all(
        self,
        search: Optional[str] = None,
        context: Optional[ConversationContext] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[ConversationResponse], int]:
        """All conversations, filtered by topic/message text and context."""

    @abstractmethod
    async def list_expired_active(self, now: datetime) -> List[ConversationResponse]:
        """ACTIVE conversations whose expires_at is before now."""


class MessageStore(ABC):
    """Append-only message storage."""

    @abstractmethod
    async def create(
        self, conversation_id: UUID, sender_id: UUID, content: str
    ) -> MessageResponse:
        """Insert a message; the store assigns created_at."""

    @abstractmethod
    async def list_by_conversation(self, conversation_id: UUID) -> List[MessageResponse]:
        """Messages ordered by created_at ascending."""

    @abstractmethod
    async def latest(self, conversation_id: UUID) -> Optional[MessageResponse]:
        """The most recent message, if any."""

    @abstractmethod
    async def count(self, conversation_id: UUID) -> int:
        """Number of messages in the conversation."""


class ParticipantStore(ABC):
    """Conversation membership."""

    @abstractmethod
    async def is_member(self, conversation_id: UUID, user_id: UUID) -> bool:
        """Whether the user is a listed participant."""

    @abstractmethod
    async def list_members(self, conversation_id: UUID) -> List[UUID]:
        """User ids of all participants."""

    @abstractmethod
    async def add_members(self, conversation_id: UUID, user_ids: Sequence[UUID]) -> int:
        """Insert participants, ignoring existing pairs. Returns rows inserted."""

    @abstractmethod
    async def reset(self) -> None:
        """Discard a transaction left failed or interrupted, so the store can be used again."""


class AdoptionRequestStore(ABC):
    """Adoption requests, owned by the adoption-request service."""

    @abstractmethod
    async def get(self, request_id: UUID) -> Optional[AdoptionRequestRecord]:
        """Get an adoption request by ID."""

    @abstractmethod
    async def set_status(
        self,
        request_id: UUID,
        status: AdoptionRequestStatus,
        expected: Optional[AdoptionRequestStatus] = None,
    ) -> bool:
        """Set the status; when expected is given, only if it currently matches.

        Returns False when nothing was updated.
        """


class ApplicationStore(ABC):
    """Job-offer applications, owned by the application service."""

    @abstractmethod
    async def get(self, application_id: UUID) -> Optional[ApplicationRecord]:
        """Get an application by ID."""

    @abstractmethod
    async def set_status(
        self,
        application_id: UUID,
        status: ApplicationStatus,
        expected: Optional[ApplicationStatus] = None,
    ) -> bool:
        """Set the status; when expected is given, only if it currently matches.

        Returns False when nothing was updated.
        """


class UserDirectory(ABC):
    """Users, owned by the auth service."""

    @abstractmethod
    async def get_role(self, user_id: UUID) -> Optional[Role]:
        """Role of an active user, None if unknown or inactive."""

    @abstractmethod
    async def list_active_ids(self, role: Optional[Role] = None) -> List[UUID]:
        """Ids of active users, optionally restricted to one role."""
