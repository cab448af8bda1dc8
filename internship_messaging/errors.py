"""
Domain exceptions raised by the messaging core.

Services raise these; the HTTP layer maps them to status codes in main.py.
"""

from typing import Optional

from internship_messaging.models.enums import DenialReason


class MessagingError(Exception):
    """Base class for all messaging core errors."""

    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(MessagingError):
    """A conversation, user or linked business object does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class AccessDeniedError(MessagingError):
    """Raised when the caller may not read or write a conversation."""

    _MESSAGES = {
        DenialReason.NOT_PARTICIPANT: "You are not a participant in this conversation.",
        DenialReason.ARCHIVED: "This conversation has ended and is read-only.",
        DenialReason.EXPIRED: "This conversation has expired.",
        DenialReason.READ_ONLY_ADMIN_ONLY: "This conversation is read-only; only administrators can post.",
        DenialReason.ADOPTION_PENDING: "Wait for the student to respond to the adoption request.",
        DenialReason.ADOPTION_REJECTED: "The adoption request was rejected; the conversation is read-only.",
        DenialReason.APPLICATION_NEW: "Messaging opens once the application status changes from NEW.",
        DenialReason.APPLICATION_REJECTED: "The application was rejected; the conversation is read-only.",
        DenialReason.BROADCAST_AUDIENCE_MISMATCH: "This broadcast is not intended for your role.",
    }

    def __init__(self, reason: DenialReason, message: Optional[str] = None):
        super().__init__(message or self._MESSAGES[reason])
        self.reason = reason


class ContentValidationError(MessagingError):
    """Message content is empty or too long."""


class ForbiddenRoleError(MessagingError):
    """The caller lacks the role an operation requires."""


class NoRecipientsError(MessagingError):
    """The broadcast target cohort is empty."""


class BroadcastFailedError(MessagingError):
    """One or more participant batches failed; the broadcast was rolled back."""

    retryable = True

    def __init__(self, failed_batches: int, total_batches: int, compensated: bool = True):
        super().__init__(
            f"Failed to create {failed_batches} of {total_batches} participant batches"
        )
        self.failed_batches = failed_batches
        self.total_batches = total_batches
        self.compensated = compensated


class ConnectivityError(MessagingError):
    """The persistence layer was unreachable mid-operation."""

    retryable = True


class ConcurrentUpdateError(MessagingError):
    """A compare-and-swap status update lost against another writer."""

    retryable = True


class InvalidTransitionError(MessagingError):
    """A conversation status transition is not allowed by the state machine."""


class DuplicateConversationError(MessagingError):
    """A conversation already exists for the given business context."""
