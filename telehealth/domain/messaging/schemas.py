"""Messaging domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

MessageType = Literal["TEXT", "IMAGE", "FILE", "APPOINTMENT_LINK"]


class ConversationCreate(BaseModel):
    userId: str


class MessageCreate(BaseModel):
    conversationId: str
    content: str = Field(..., min_length=1, max_length=5000)
    type: MessageType = "TEXT"
    attachmentUrl: Optional[str] = None
    attachmentName: Optional[str] = None


class MarkAsReadRequest(BaseModel):
    messageIds: list[str] = Field(..., min_length=1)


class TogglePinRequest(BaseModel):
    pinned: bool


class UserSummary(BaseModel):
    id: str
    name: str
    image: Optional[str] = None
    role: str


class MessageResponse(BaseModel):
    id: str
    conversationId: str
    senderId: str
    sender: Optional[UserSummary] = None
    content: str
    type: str
    attachmentUrl: Optional[str] = None
    attachmentName: Optional[str] = None
    isRead: bool
    isPinned: bool
    createdAt: datetime


class ConversationResponse(BaseModel):
    id: str
    doctorId: str
    patientId: str
    lastMessageAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class ConversationSummary(ConversationResponse):
    otherUser: Optional[UserSummary] = None
    lastMessage: Optional[MessageResponse] = None


class MessagePage(BaseModel):
    items: list[MessageResponse]
    hasMore: bool
    nextCursor: Optional[datetime] = None
