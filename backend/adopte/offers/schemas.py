"""Offer request schemas."""

from pydantic import BaseModel, Field

from .models import OfferDuration


class OfferCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=10)
    location: str = Field("", max_length=255)
    duration: OfferDuration | None = None
    skills: list[str]


class OfferUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, min_length=10)
    location: str | None = Field(None, max_length=255)
    duration: OfferDuration | None = None
    skills: list[str] | None = None
