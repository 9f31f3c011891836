"""Messaging router - FastAPI endpoints for conversations and messages"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_caller
from ...database import get_db
from ...policy import Caller
from ...shared.validators import naive_utc
from .schemas import (
    ConversationCreate,
    ConversationResponse,
    ConversationSummary,
    MarkAsReadRequest,
    MessageCreate,
    MessagePage,
    MessageResponse,
    TogglePinRequest,
)
from .service import MESSAGE_PAGE_SIZE, MessagingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    """Dependency injection for MessagingService"""
    return MessagingService(db)


@router.get("/conversations", response_model=list[ConversationSummary])
async def get_conversations(
    caller: Caller = Depends(get_current_caller),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.get_conversations(caller)


@router.post("/conversations", response_model=ConversationResponse)
async def get_or_create_conversation(
    data: ConversationCreate,
    caller: Caller = Depends(get_current_caller),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.get_or_create_conversation(caller, data.userId)


@router.get("/conversations/{conversation_id}", response_model=MessagePage)
async def get_messages(
    conversation_id: str,
    cursor: Optional[datetime] = Query(None),
    limit: int = Query(MESSAGE_PAGE_SIZE, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.get_messages(caller, conversation_id, naive_utc(cursor), limit)


@router.post("", response_model=MessageResponse)
async def send_message(
    data: MessageCreate,
    caller: Caller = Depends(get_current_caller),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.send_message(caller, data)


@router.post("/read")
async def mark_as_read(
    data: MarkAsReadRequest,
    caller: Caller = Depends(get_current_caller),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.mark_as_read(caller, data.messageIds)


@router.post("/{message_id}/pin")
async def toggle_pin(
    message_id: str,
    data: TogglePinRequest,
    caller: Caller = Depends(get_current_caller),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.toggle_pin(caller, message_id, data.pinned)


@router.delete("/{message_id}")
async def delete_message(
    message_id: str,
    caller: Caller = Depends(get_current_caller),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.delete_message(caller, message_id)
