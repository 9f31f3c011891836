"""Messaging service - Conversations, messages and their audit trail"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...models_messaging import Conversation, Message
from ...policy import Caller
from ...services.realtime import publish
from .repository import MessagingRepository
from .schemas import MessageCreate

logger = logging.getLogger(__name__)

MESSAGE_PAGE_SIZE = 50


def _user_summary(user: Optional[User]) -> Optional[dict]:
    if not user:
        return None
    return {"id": user.id, "name": user.name, "image": user.image, "role": user.role}


def serialize_message(message: Message) -> dict:
    return {
        "id": message.id,
        "conversationId": message.conversation_id,
        "senderId": message.sender_id,
        "sender": _user_summary(message.sender),
        "content": message.content,
        "type": message.type,
        "attachmentUrl": message.attachment_url,
        "attachmentName": message.attachment_name,
        "isRead": message.is_read,
        "isPinned": message.is_pinned,
        "createdAt": message.created_at,
    }


def serialize_conversation(conversation: Conversation) -> dict:
    return {
        "id": conversation.id,
        "doctorId": conversation.doctor_id,
        "patientId": conversation.patient_id,
        "lastMessageAt": conversation.last_message_at,
        "createdAt": conversation.created_at,
    }


class MessagingService:
    """Service layer for doctor-patient messaging"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MessagingRepository()

    def _participant_conversation(self, caller: Caller, conversation_id: str) -> Conversation:
        conversation = self.repo.get_participant_conversation(self.db, conversation_id, caller.id)
        if not conversation:
            raise HTTPException(status_code=404, detail="Conversation not found")
        return conversation

    def _participant_message(self, message_id: str) -> Message:
        message = self.repo.get_message(self.db, message_id)
        if not message:
            raise HTTPException(status_code=404, detail="Message not found")
        return message

    def get_conversations(self, caller: Caller) -> list[dict]:
        """Caller's conversations, most recently active first"""
        result = []
        for conversation in self.repo.get_user_conversations(self.db, caller.id):
            other = conversation.patient if conversation.doctor_id == caller.id else conversation.doctor
            last = self.repo.get_latest_message(self.db, conversation.id)
            item = serialize_conversation(conversation)
            item["otherUser"] = _user_summary(other)
            item["lastMessage"] = serialize_message(last) if last else None
            result.append(item)
        return result

    def get_or_create_conversation(self, caller: Caller, user_id: str) -> dict:
        """A doctor caller is always the doctor side; anyone else is the patient side"""
        doctor_id = caller.id if caller.is_doctor else user_id
        patient_id = user_id if caller.is_doctor else caller.id

        existing = self.repo.find_conversation_for_pair(self.db, doctor_id, patient_id)
        if existing:
            return serialize_conversation(existing)

        try:
            conversation = self.repo.create_conversation(self.db, doctor_id, patient_id, datetime.utcnow())
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"💬 Conversation {conversation.id} opened between {doctor_id} and {patient_id}")
        return serialize_conversation(conversation)

    def get_messages(
        self,
        caller: Caller,
        conversation_id: str,
        cursor: Optional[datetime] = None,
        limit: int = MESSAGE_PAGE_SIZE,
    ) -> dict:
        """
        One page of history older than ``cursor``, returned oldest first.
        ``nextCursor`` is the oldest timestamp in the page; pass it back to go further.
        """
        self._participant_conversation(caller, conversation_id)
        messages = self.repo.get_messages_before(self.db, conversation_id, cursor, limit + 1)
        has_more = len(messages) > limit
        page = list(reversed(messages[:limit]))
        return {
            "items": [serialize_message(m) for m in page],
            "hasMore": has_more,
            "nextCursor": page[0].created_at if page else None,
        }

    def send_message(self, caller: Caller, data: MessageCreate) -> dict:
        conversation = self._participant_conversation(caller, data.conversationId)
        now = datetime.utcnow()

        try:
            message = self.repo.create_message(
                self.db,
                conversation_id=conversation.id,
                sender_id=caller.id,
                content=data.content,
                type=data.type,
                attachment_url=data.attachmentUrl,
                attachment_name=data.attachmentName,
                is_read=False,
                is_pinned=False,
                created_at=now,
            )
            conversation.last_message_at = now
            self.db.flush()
            self.repo.add_audit(self.db, message.id, "CREATED", caller.id, now, new_content=data.content)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(message)
        payload = serialize_message(message)

        # Delivered after commit so subscribers never see an uncommitted message
        publish(f"conversation-{conversation.id}", "new-message", payload)
        publish(f"user-{conversation.doctor_id}", "conversation-update", {})
        publish(f"user-{conversation.patient_id}", "conversation-update", {})

        logger.info(f"💬 Message {message.id} sent in conversation {conversation.id}")
        return payload

    def mark_as_read(self, caller: Caller, message_ids: list[str]) -> dict:
        """Mark messages read; access is checked against the first message's conversation"""
        first = self._participant_message(message_ids[0])
        conversation = first.conversation
        if caller.id not in (conversation.doctor_id, conversation.patient_id):
            raise HTTPException(status_code=403, detail="You are not part of this conversation")

        now = datetime.utcnow()
        try:
            for message_id in message_ids:
                message = self.repo.get_message(self.db, message_id)
                if not message:
                    continue
                message.is_read = True
                self.repo.add_read_receipt(self.db, message_id, caller.id, now)
                self.repo.add_audit(self.db, message_id, "READ", caller.id, now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return {"success": True}

    def toggle_pin(self, caller: Caller, message_id: str, pinned: bool) -> dict:
        message = self._participant_message(message_id)
        if message.conversation.doctor_id != caller.id:
            raise HTTPException(status_code=403, detail="Only the doctor can pin messages")

        try:
            message.is_pinned = pinned
            self.repo.add_audit(self.db, message_id, "PINNED", caller.id, datetime.utcnow())
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"📌 Message {message_id} pinned={pinned}")
        return {"success": True}

    def delete_message(self, caller: Caller, message_id: str) -> dict:
        message = self._participant_message(message_id)
        if message.sender_id != caller.id:
            raise HTTPException(status_code=403, detail="You can only delete your own messages")

        try:
            now = datetime.utcnow()
            old_content = message.content
            message.soft_delete(now)
            self.repo.add_audit(self.db, message_id, "DELETED", caller.id, now, old_content=old_content)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Message {message_id} deleted by sender {caller.id}")
        return {"success": True}
