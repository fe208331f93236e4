"""Conversation and message models."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.base import Base


class ConversationContext(enum.StrEnum):
    ADOPTION_REQUEST = "ADOPTION_REQUEST"
    APPLICATION = "APPLICATION"


class ConversationStatus(enum.StrEnum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        CheckConstraint(
            "(adoption_request_id IS NULL) <> (application_id IS NULL)",
            name="ck_conversations_single_origin",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    topic = Column(String(255), nullable=False)
    context = Column(
        SQLEnum(
            ConversationContext,
            name="conversation_context",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    # Cached from the origin status; rewritten on every origin transition
    status = Column(
        SQLEnum(
            ConversationStatus,
            name="conversation_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ConversationStatus.ACTIVE,
        nullable=False,
    )
    is_read_only = Column(Boolean, default=False, nullable=False)
    adoption_request_id = Column(
        UUID(as_uuid=True),
        ForeignKey("adoption_requests.id", ondelete="CASCADE"),
        unique=True,
        nullable=True,
    )
    application_id = Column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        unique=True,
        nullable=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        index=True,
    )

    adoption_request = relationship("AdoptionRequest", back_populates="conversation")
    application = relationship("Application", back_populates="conversation")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(
        UUID(as_uuid=True),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        index=True,
    )

    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User")
