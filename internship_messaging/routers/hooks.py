"""Notifications from the services that own adoption requests and applications."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from internship_messaging.database import get_db
from internship_messaging.models.api.business import (
    AdoptionConversationRequest,
    BusinessStatusChangedRequest,
)
from internship_messaging.models.api.conversations import ConversationResponse
from internship_messaging.models.enums import ApplicationStatus, BusinessObjectKind
from internship_messaging.services.messaging_service import MessagingService

router = APIRouter()


@router.post("/adoption-requests", response_model=ConversationResponse, status_code=201)
async def adoption_request_created(
    request: AdoptionConversationRequest, db: AsyncSession = Depends(get_db)
) -> ConversationResponse:
    """Open the conversation for a newly created adoption request."""
    service = MessagingService(db)
    return await service.lifecycle.open_adoption_conversation(request)


@router.post("/business-status", response_model=Optional[ConversationResponse])
async def business_status_changed(
    request: BusinessStatusChangedRequest, db: AsyncSession = Depends(get_db)
) -> Optional[ConversationResponse]:
    """
    Apply a status change already persisted by the owning service.

    Returns the affected conversation, or null when there is none.
    """
    if request.kind == BusinessObjectKind.APPLICATION:
        try:
            ApplicationStatus(request.new_status)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Unknown application status: {request.new_status}",
            )

    service = MessagingService(db)
    return await service.lifecycle.on_business_status_changed(
        request.kind, request.id, request.new_status
    )
