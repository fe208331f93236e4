"""Offer model and duration enum."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.base import Base


class OfferDuration(enum.StrEnum):
    INTERNSHIP = "INTERNSHIP"
    APPRENTICESHIP = "APPRENTICESHIP"
    FULL_TIME = "FULL_TIME"


offer_skills = Table(
    "offer_skills",
    Base.metadata,
    Column("offer_id", UUID(as_uuid=True), ForeignKey("offers.id", ondelete="CASCADE"), primary_key=True),
    Column("skill_id", UUID(as_uuid=True), ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
)


class Offer(Base):
    __tablename__ = "offers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(
        UUID(as_uuid=True),
        ForeignKey("company_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(255), nullable=False, default="")
    duration = Column(
        SQLEnum(OfferDuration, name="offer_duration", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    company = relationship("CompanyProfile", back_populates="offers")
    skills = relationship("Skill", secondary=offer_skills, order_by="Skill.name")
    applications = relationship("Application", back_populates="offer", cascade="all, delete-orphan")
    adoption_requests = relationship(
        "AdoptionRequest", back_populates="offer", cascade="all, delete-orphan"
    )
