"""
Messaging Models
One conversation per doctor-patient pair; messages are append-only with soft delete
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .lifecycle import SoftDeleteMixin
from .models import generate_id


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (Index("conversation_doctor_patient_idx", "doctor_id", "patient_id"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    last_message_at = Column(DateTime, server_default=func.now(), index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("User", foreign_keys=[doctor_id])
    patient = relationship("User", foreign_keys=[patient_id])
    messages = relationship("Message", back_populates="conversation")


class Message(SoftDeleteMixin, Base):
    __tablename__ = "messages"
    __table_args__ = (Index("message_conversation_created_idx", "conversation_id", "created_at"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    conversation_id = Column(
        String(36), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    type = Column(String(20), default="TEXT", nullable=False)  # TEXT, IMAGE, FILE, APPOINTMENT_LINK

    # For file/image attachments
    attachment_url = Column(Text, nullable=True)
    attachment_name = Column(Text, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User")


class MessageReadReceipt(Base):
    __tablename__ = "message_read_receipts"

    id = Column(String(36), primary_key=True, default=generate_id)
    message_id = Column(String(36), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    read_at = Column(DateTime, server_default=func.now(), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class MessageAuditLog(Base):
    """Compliance trail for every content-affecting message action"""

    __tablename__ = "message_audit_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    message_id = Column(String(36), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(20), nullable=False)  # CREATED, EDITED, DELETED, READ, PINNED
    performed_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    old_content = Column(Text, nullable=True)
    new_content = Column(Text, nullable=True)
    timestamp = Column(DateTime, server_default=func.now(), nullable=False)
