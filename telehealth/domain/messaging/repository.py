"""Messaging repository - Database operations for conversations and messages"""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from ...models_messaging import Conversation, Message, MessageAuditLog, MessageReadReceipt


class MessagingRepository:
    """Repository for messaging database operations"""

    @staticmethod
    def get_user_conversations(db: Session, user_id: str) -> list[Conversation]:
        return (
            db.query(Conversation)
            .options(joinedload(Conversation.doctor), joinedload(Conversation.patient))
            .filter(or_(Conversation.doctor_id == user_id, Conversation.patient_id == user_id))
            .order_by(Conversation.last_message_at.desc())
            .all()
        )

    @staticmethod
    def get_latest_message(db: Session, conversation_id: str) -> Optional[Message]:
        return (
            db.query(Message)
            .options(joinedload(Message.sender))
            .filter(Message.conversation_id == conversation_id, Message.active())
            .order_by(Message.created_at.desc())
            .first()
        )

    @staticmethod
    def find_conversation_for_pair(db: Session, user_a: str, user_b: str) -> Optional[Conversation]:
        """Conversation between two users in either doctor/patient orientation"""
        return (
            db.query(Conversation)
            .filter(
                or_(
                    and_(Conversation.doctor_id == user_a, Conversation.patient_id == user_b),
                    and_(Conversation.doctor_id == user_b, Conversation.patient_id == user_a),
                )
            )
            .first()
        )

    @staticmethod
    def create_conversation(db: Session, doctor_id: str, patient_id: str, now: datetime) -> Conversation:
        conversation = Conversation(
            doctor_id=doctor_id,
            patient_id=patient_id,
            last_message_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(conversation)
        return conversation

    @staticmethod
    def get_participant_conversation(db: Session, conversation_id: str, user_id: str) -> Optional[Conversation]:
        return (
            db.query(Conversation)
            .filter(
                Conversation.id == conversation_id,
                or_(Conversation.doctor_id == user_id, Conversation.patient_id == user_id),
            )
            .first()
        )

    @staticmethod
    def get_messages_before(
        db: Session, conversation_id: str, cursor: Optional[datetime], limit: int
    ) -> list[Message]:
        """Newest first, at most ``limit`` rows older than the cursor"""
        query = (
            db.query(Message)
            .options(joinedload(Message.sender))
            .filter(Message.conversation_id == conversation_id, Message.active())
        )
        if cursor:
            query = query.filter(Message.created_at < cursor)
        return query.order_by(Message.created_at.desc()).limit(limit).all()

    @staticmethod
    def get_message(db: Session, message_id: str) -> Optional[Message]:
        return (
            db.query(Message)
            .options(joinedload(Message.conversation))
            .filter(Message.id == message_id)
            .first()
        )

    @staticmethod
    def create_message(db: Session, **data) -> Message:
        message = Message(**data)
        db.add(message)
        return message

    @staticmethod
    def add_read_receipt(db: Session, message_id: str, user_id: str, now: datetime) -> None:
        db.add(MessageReadReceipt(message_id=message_id, user_id=user_id, read_at=now, created_at=now))

    @staticmethod
    def add_audit(
        db: Session,
        message_id: str,
        action: str,
        performed_by: str,
        now: datetime,
        old_content: Optional[str] = None,
        new_content: Optional[str] = None,
    ) -> None:
        db.add(
            MessageAuditLog(
                message_id=message_id,
                action=action,
                performed_by=performed_by,
                old_content=old_content,
                new_content=new_content,
                timestamp=now,
            )
        )
