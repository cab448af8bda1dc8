from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from internship_messaging.database import get_db
from internship_messaging.models.api.conversations import (
    ConversationDetailResponse,
    ConversationListResponse,
)
from internship_messaging.models.api.messages import MessageResponse, PostMessageRequest
from internship_messaging.models.enums import ConversationContext, ConversationStatus
from internship_messaging.routers.dependencies import current_actor
from internship_messaging.services.access_control import Actor
from internship_messaging.services.messaging_service import MessagingService

router = APIRouter()


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    page: int = Query(1, ge=1, description="Page number, starting at 1"),
    limit: Optional[int] = Query(None, ge=1, description="Page size"),
    context: Optional[ConversationContext] = Query(None, description="Filter by context"),
    status: Optional[ConversationStatus] = Query(None, description="Filter by status"),
    actor: Actor = Depends(current_actor),
    db: AsyncSession = Depends(get_db),
) -> ConversationListResponse:
    """
    List the caller's conversations, including broadcasts aimed at their role.

    Query parameters:
    - page: Page number (default: 1)
    - limit: Page size (default and maximum from configuration)
    - context: NONE, ADOPTION_REQUEST, OFFER or BROADCAST
    - status: PENDING_APPROVAL, ACTIVE, ARCHIVED or EXPIRED
    """
    service = MessagingService(db)
    return await service.queries.list_conversations_for_user(
        actor.user_id, actor.role, context=context, status=status, page=page, limit=limit
    )


@router.get("/broadcasts", response_model=ConversationListResponse)
async def list_broadcasts(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    actor: Actor = Depends(current_actor),
    db: AsyncSession = Depends(get_db),
) -> ConversationListResponse:
    """List broadcasts visible to the caller's role."""
    service = MessagingService(db)
    return await service.queries.list_broadcasts_for_user(
        actor.user_id, actor.role, page=page, limit=limit
    )


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    conversation_id: UUID,
    actor: Actor = Depends(current_actor),
    db: AsyncSession = Depends(get_db),
) -> ConversationDetailResponse:
    """
    Open a conversation with its messages, oldest first.

    The response says whether the caller can write and, if not, why.
    """
    service = MessagingService(db)
    return await service.queries.get_conversation_for_user(
        actor.user_id, conversation_id, role=actor.role
    )


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def post_message(
    conversation_id: UUID,
    request: PostMessageRequest,
    actor: Actor = Depends(current_actor),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Post a message into a conversation."""
    service = MessagingService(db)
    return await service.gateway.post_message(
        actor.user_id, actor.role, conversation_id, request.content
    )
