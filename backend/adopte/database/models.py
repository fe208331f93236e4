"""Imports every model module so ``Base.metadata`` knows all tables."""

from ..adoption_requests.models import AdoptionRequest, AdoptionRequestStatus
from ..applications.models import Application, ApplicationStatus
from ..audit.models import AuditLog
from ..auth.models import Account, Role, User
from ..blog.models import BlogCategory, BlogPost, BlogPostStatus
from ..messaging.models import Conversation, ConversationContext, ConversationStatus, Message
from ..offers.models import Offer, OfferDuration, offer_skills
from ..profiles.models import CompanyProfile, StudentProfile, student_skills
from ..skills.models import Skill
from .base import Base

__all__ = [
    "Account",
    "AdoptionRequest",
    "AdoptionRequestStatus",
    "Application",
    "ApplicationStatus",
    "AuditLog",
    "Base",
    "BlogCategory",
    "BlogPost",
    "BlogPostStatus",
    "CompanyProfile",
    "Conversation",
    "ConversationContext",
    "ConversationStatus",
    "Message",
    "Offer",
    "OfferDuration",
    "Role",
    "Skill",
    "StudentProfile",
    "User",
    "offer_skills",
    "student_skills",
]
