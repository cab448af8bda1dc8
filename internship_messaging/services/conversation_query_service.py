import math
from typing import List, Optional, Tuple
from uuid import UUID

from internship_messaging.errors import AccessDeniedError, NotFoundError
from internship_messaging.logging_config import get_logger
from internship_messaging.models.api.conversations import (
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationResponse,
    ConversationSummary,
    Pagination,
)
from internship_messaging.models.enums import ConversationContext, ConversationStatus, Role
from internship_messaging.services.access_control import (
    AccessControlEngine,
    Actor,
    load_membership,
)
from internship_messaging.services.context_resolver import ContextResolver
from internship_messaging.services.lifecycle_coordinator import LifecycleCoordinator
from internship_messaging.services.participant_directory import ParticipantDirectory
from internship_messaging.services.ports import (
    ConversationStore,
    MessageStore,
    UserDirectory,
)

logger = get_logger(__name__)


def page_window(page: int, limit: Optional[int], default_limit: int, max_limit: int) -> Tuple[int, int, int]:
    """Normalize page/limit and return (page, limit, offset)."""
    page = max(page, 1)
    limit = default_limit if limit is None else min(max(limit, 1), max_limit)
    return page, limit, (page - 1) * limit


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(
        page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if total else 0
    )


class ConversationQueryService:
    """Read side: opening and listing conversations."""

    def __init__(
        self,
        conversation_store: ConversationStore,
        message_store: MessageStore,
        user_directory: UserDirectory,
        context_resolver: ContextResolver,
        access_control: AccessControlEngine,
        participant_directory: ParticipantDirectory,
        lifecycle: LifecycleCoordinator,
        default_page_size: int = 20,
        max_page_size: int = 100,
    ):
        self.conversation_store = conversation_store
        self.message_store = message_store
        self.user_directory = user_directory
        self.context_resolver = context_resolver
        self.access_control = access_control
        self.participant_directory = participant_directory
        self.lifecycle = lifecycle
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def get_conversation_for_user(
        self, user_id: UUID, conversation_id: UUID, role: Optional[Role] = None
    ) -> ConversationDetailResponse:
        """Open a conversation with its messages in ascending order.

        The user's role is looked up when not supplied.

        Raises:
            NotFoundError: unknown conversation or user.
            AccessDeniedError: the user may not read the conversation.
        """
        if role is None:
            role = await self.user_directory.get_role(user_id)
            if role is None:
                raise NotFoundError("User", str(user_id))
        actor = Actor(user_id=user_id, role=role)

        conversation, context = await self.context_resolver.load(conversation_id)
        membership = await load_membership(self.participant_directory, actor, conversation)
        decision = self.access_control.evaluate(actor, conversation, context, membership)

        if not decision.can_read:
            logger.info(
                "User %s (%s) denied reading conversation %s",
                user_id,
                role.value,
                conversation_id,
            )
            raise AccessDeniedError(decision.read_denial_reason)

        if decision.expiration_observed:
            conversation = await self.lifecycle.expire(conversation)

        participants: List[UUID] = []
        if self._shows_participants(actor, conversation, membership.is_creator):
            participants = await self.participant_directory.list_participants(conversation.id)

        return ConversationDetailResponse(
            conversation=conversation,
            participants=participants,
            messages=await self.message_store.list_by_conversation(conversation.id),
            context_details=context.details(),
            can_write=decision.can_write,
            denial_reason=decision.denial_reason,
        )

    async def list_conversations_for_user(
        self,
        user_id: UUID,
        role: Role,
        context: Optional[ConversationContext] = None,
        status: Optional[ConversationStatus] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> ConversationListResponse:
        page, limit, offset = page_window(page, limit, self.default_page_size, self.max_page_size)
        conversations, total = await self.conversation_store.list_for_user(
            user_id, role, context=context, status=status, limit=limit, offset=offset
        )
        actor = Actor(user_id=user_id, role=role)
        return ConversationListResponse(
            conversations=[await self._summarize(actor, c) for c in conversations],
            pagination=build_pagination(page, limit, total),
        )

    async def list_broadcasts_for_user(
        self, user_id: UUID, role: Role, page: int = 1, limit: Optional[int] = None
    ) -> ConversationListResponse:
        page, limit, offset = page_window(page, limit, self.default_page_size, self.max_page_size)
        conversations, total = await self.conversation_store.list_broadcasts_for_role(
            role, limit=limit, offset=offset
        )
        actor = Actor(user_id=user_id, role=role)
        return ConversationListResponse(
            conversations=[await self._summarize(actor, c) for c in conversations],
            pagination=build_pagination(page, limit, total),
        )

    async def list_admin_conversations(
        self,
        admin_id: UUID,
        search: Optional[str] = None,
        context: Optional[ConversationContext] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> ConversationListResponse:
        page, limit, offset = page_window(page, limit, self.default_page_size, self.max_page_size)
        conversations, total = await self.conversation_store.list_all(
            search=search, context=context, limit=limit, offset=offset
        )
        actor = Actor(user_id=admin_id, role=Role.ADMIN)
        return ConversationListResponse(
            conversations=[await self._summarize(actor, c) for c in conversations],
            pagination=build_pagination(page, limit, total),
        )

    async def _summarize(self, actor: Actor, conversation: ConversationResponse) -> ConversationSummary:
        context = await self.context_resolver.resolve(conversation)
        participants: List[UUID] = []
        if self._shows_participants(actor, conversation, conversation.created_by_id == actor.user_id):
            participants = await self.participant_directory.list_participants(conversation.id)
        return ConversationSummary(
            conversation=conversation,
            participants=participants,
            last_message=await self.message_store.latest(conversation.id),
            message_count=await self.message_store.count(conversation.id),
            context_details=context.details(),
        )

    @staticmethod
    def _shows_participants(actor: Actor, conversation: ConversationResponse, is_creator: bool) -> bool:
        # Broadcast audiences stay private to admins
        if not conversation.is_broadcast:
            return True
        return is_creator or actor.role == Role.ADMIN
