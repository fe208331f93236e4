"""Adoption request model: company-initiated outreach to a student."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, UniqueConstraint, text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.base import Base


class AdoptionRequestStatus(enum.StrEnum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class AdoptionRequest(Base):
    __tablename__ = "adoption_requests"
    __table_args__ = (
        UniqueConstraint("company_id", "student_id", "offer_id", name="uq_adoption_requests_offer"),
        # NULL offer_id never collides in a plain unique constraint
        Index(
            "uq_adoption_requests_general",
            "company_id",
            "student_id",
            unique=True,
            sqlite_where=text("offer_id IS NULL"),
            postgresql_where=text("offer_id IS NULL"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("company_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    offer_id = Column(
        UUID(as_uuid=True),
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=True,
    )
    message = Column(Text, nullable=False)
    status = Column(
        SQLEnum(
            AdoptionRequestStatus,
            name="adoption_request_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=AdoptionRequestStatus.PENDING,
        nullable=False,
    )
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    company = relationship("CompanyProfile", back_populates="adoption_requests")
    student = relationship("User", back_populates="received_requests")
    offer = relationship("Offer", back_populates="adoption_requests")
    conversation = relationship(
        "Conversation", back_populates="adoption_request", uselist=False, cascade="all, delete-orphan"
    )
