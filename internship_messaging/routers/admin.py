from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from internship_messaging.database import get_db
from internship_messaging.models.api.broadcasts import (
    AdminMessageRequest,
    AdminMessageResponse,
    BroadcastRequest,
    BroadcastResponse,
)
from internship_messaging.models.api.conversations import (
    ConversationListResponse,
    ExpiredCleanupResponse,
)
from internship_messaging.models.enums import ConversationContext
from internship_messaging.routers.dependencies import require_admin
from internship_messaging.services.access_control import Actor
from internship_messaging.services.messaging_service import MessagingService

router = APIRouter()


@router.post("/broadcasts", response_model=BroadcastResponse, status_code=201)
async def create_broadcast(
    request: BroadcastRequest,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> BroadcastResponse:
    """
    Broadcast a read-only message to a cohort.

    Omit target_role to reach every active user.
    """
    service = MessagingService(db)
    return await service.broadcasts.create_broadcast(
        admin.user_id, request.content, target_role=request.target_role, subject=request.subject
    )


@router.post("/messages", response_model=AdminMessageResponse, status_code=201)
async def send_admin_message(
    request: AdminMessageRequest,
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminMessageResponse:
    """Start a direct conversation with one user."""
    service = MessagingService(db)
    conversation, message = await service.lifecycle.send_admin_message(
        admin.user_id,
        request.recipient_id,
        request.subject,
        request.content,
        is_read_only=request.is_read_only,
    )
    return AdminMessageResponse(conversation=conversation, message=message)


@router.get("/conversations", response_model=ConversationListResponse)
async def list_all_conversations(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, description="Match topic or message content"),
    context: Optional[ConversationContext] = Query(None),
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ConversationListResponse:
    """List every conversation on the platform."""
    service = MessagingService(db)
    return await service.queries.list_admin_conversations(
        admin.user_id, search=search, context=context, page=page, limit=limit
    )


@router.post("/conversations/expire", response_model=ExpiredCleanupResponse)
async def expire_conversations(
    admin: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ExpiredCleanupResponse:
    """Mark every ACTIVE conversation past its expiry as EXPIRED."""
    service = MessagingService(db)
    return ExpiredCleanupResponse(expired=await service.lifecycle.cleanup_expired_conversations())
