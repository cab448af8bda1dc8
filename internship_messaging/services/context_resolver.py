"""Resolves the business context a conversation is attached to.

Each context is a variant carrying its own status type, so the access
rules can dispatch on the variant instead of re-reading raw columns.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union
from uuid import UUID

from internship_messaging.errors import NotFoundError
from internship_messaging.logging_config import get_logger
from internship_messaging.models.api.business import (
    AdoptionRequestRecord,
    ApplicationRecord,
)
from internship_messaging.models.api.conversations import (
    ContextDetails,
    ConversationResponse,
)
from internship_messaging.models.enums import (
    AdoptionRequestStatus,
    ApplicationStatus,
    BroadcastTarget,
    ConversationContext,
)
from internship_messaging.services.ports import (
    AdoptionRequestStore,
    ApplicationStore,
    ConversationStore,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class NoContext:
    kind = ConversationContext.NONE

    @property
    def status(self) -> None:
        return None

    def details(self) -> Optional[ContextDetails]:
        return None


@dataclass(frozen=True)
class AdoptionRequestContext:
    request: AdoptionRequestRecord
    kind = ConversationContext.ADOPTION_REQUEST

    @property
    def status(self) -> AdoptionRequestStatus:
        return self.request.status

    def details(self) -> ContextDetails:
        return ContextDetails(
            type="adoption_request",
            status=self.request.status.value,
            company_name=self.request.company_name,
        )


@dataclass(frozen=True)
class OfferContext:
    application: ApplicationRecord
    kind = ConversationContext.OFFER

    @property
    def status(self) -> ApplicationStatus:
        return self.application.status

    def details(self) -> ContextDetails:
        return ContextDetails(
            type="offer",
            status=self.application.status.value,
            offer_title=self.application.offer_title,
        )


@dataclass(frozen=True)
class BroadcastContext:
    target: BroadcastTarget
    kind = ConversationContext.BROADCAST

    @property
    def status(self) -> None:
        return None

    def details(self) -> ContextDetails:
        return ContextDetails(type="broadcast", target=self.target)


ResolvedContext = Union[NoContext, AdoptionRequestContext, OfferContext, BroadcastContext]


class ContextResolver:
    """Loads a conversation's linked business object and its current status."""

    def __init__(
        self,
        conversation_store: ConversationStore,
        adoption_request_store: AdoptionRequestStore,
        application_store: ApplicationStore,
    ):
        self.conversation_store = conversation_store
        self.adoption_request_store = adoption_request_store
        self.application_store = application_store

    async def load(
        self, conversation_id: UUID
    ) -> Tuple[ConversationResponse, ResolvedContext]:
        """Load a conversation and resolve its context.

        Raises:
            NotFoundError: the conversation does not exist.
        """
        conversation = await self.conversation_store.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", str(conversation_id))
        return conversation, await self.resolve(conversation)

    async def resolve(self, conversation: ConversationResponse) -> ResolvedContext:
        if conversation.is_broadcast or conversation.context == ConversationContext.BROADCAST:
            return BroadcastContext(
                target=conversation.broadcast_target or BroadcastTarget.ALL
            )

        if conversation.context_id is None:
            return NoContext()

        if conversation.context == ConversationContext.ADOPTION_REQUEST:
            request = await self.adoption_request_store.get(conversation.context_id)
            if request is not None:
                return AdoptionRequestContext(request=request)
        elif conversation.context == ConversationContext.OFFER:
            application = await self.application_store.get(conversation.context_id)
            if application is not None:
                return OfferContext(application=application)
        else:
            return NoContext()

        # Linked object was hard-deleted
        logger.debug(
            "Conversation %s links to missing %s %s; treating as no context",
            conversation.id,
            conversation.context.value,
            conversation.context_id,
        )
        return NoContext()
