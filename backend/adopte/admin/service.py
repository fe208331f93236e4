"""Admin back-office: platform analytics plus user and offer moderation."""

import logging
import math
from datetime import UTC, datetime, time
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ..adoption_requests.models import AdoptionRequest
from ..applications.models import Application
from ..auth.models import Role, User
from ..auth.service import delete_user, get_user_by_id, serialize_user
from ..blog.models import BlogPost
from ..errors import NotFoundError, ValidationError
from ..messaging.models import Conversation, Message
from ..offers.models import Offer
from ..profiles.models import CompanyProfile

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _to_uuid(value: str) -> UUID | None:
    """Convert string to UUID, returning None on failure."""
    if not value:
        return None
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        return None


def _count(db: Session, column, *criteria) -> int:
    return db.query(func.count(column)).filter(*criteria).scalar() or 0


def _grouped(db: Session, column, key) -> dict[str, int]:
    return {str(value): count for value, count in db.query(column, func.count(key)).group_by(column).all()}


def _pagination(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "totalPages": math.ceil(total / limit) if total else 0}


def get_analytics(db: Session) -> dict:
    today = datetime.combine(datetime.now(UTC).date(), time.min, tzinfo=UTC)
    users_by_role = _grouped(db, User.role, User.id)
    return {
        "totalUsers": sum(users_by_role.values()),
        "usersByRole": {str(role): users_by_role.get(str(role), 0) for role in Role},
        "totalOffers": _count(db, Offer.id),
        "activeOffers": _count(db, Offer.id, Offer.is_active.is_(True)),
        "inactiveOffers": _count(db, Offer.id, Offer.is_active.is_(False)),
        "totalApplications": _count(db, Application.id),
        "applicationsByStatus": _grouped(db, Application.status, Application.id),
        "totalAdoptionRequests": _count(db, AdoptionRequest.id),
        "adoptionRequestsByStatus": _grouped(db, AdoptionRequest.status, AdoptionRequest.id),
        "totalConversations": _count(db, Conversation.id),
        "totalMessages": _count(db, Message.id),
        "totalBlogPosts": _count(db, BlogPost.id),
        "today": {
            "users": _count(db, User.id, User.created_at >= today),
            "offers": _count(db, Offer.id, Offer.created_at >= today),
            "applications": _count(db, Application.id, Application.created_at >= today),
        },
    }


# -- Users -------------------------------------------------------------------


def list_users(
    db: Session,
    role: Role | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> dict:
    page, limit = max(page, 1), min(max(limit, 1), MAX_PAGE_SIZE)
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    if search:
        query = query.filter(User.email.ilike(f"%{search}%"))
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))

    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id).offset((page - 1) * limit).limit(limit).all()
    return {"users": [serialize_user(u) for u in users], "pagination": _pagination(page, limit, total)}


def _get_target_user(db: Session, user_id: str) -> User:
    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return user


def update_user_role(db: Session, admin: User, user_id: str, role: Role) -> User:
    user = _get_target_user(db, user_id)
    if user.id == admin.id and role != Role.ADMIN:
        raise ValidationError("You cannot remove your own admin role.")
    user.role = role
    db.flush()
    logger.info("Admin %s set role of %s to %s", admin.id, user.id, role)
    return user


def toggle_user_status(db: Session, admin: User, user_id: str) -> User:
    user = _get_target_user(db, user_id)
    if user.id == admin.id:
        raise ValidationError("You cannot deactivate your own account.")
    user.is_active = not user.is_active
    db.flush()
    logger.info("Admin %s set %s active=%s", admin.id, user.id, user.is_active)
    return user


def remove_user(db: Session, admin: User, user_id: str) -> None:
    user = _get_target_user(db, user_id)
    if user.id == admin.id:
        raise ValidationError("You cannot delete your own account.")
    delete_user(db, user)
    logger.info("Admin %s deleted user %s", admin.id, user_id)


# -- Offers ------------------------------------------------------------------


def list_admin_offers(
    db: Session,
    search: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> dict:
    """All offers, including deactivated ones, with their application counts."""
    page, limit = max(page, 1), min(max(limit, 1), MAX_PAGE_SIZE)
    query = db.query(Offer).join(CompanyProfile, Offer.company_id == CompanyProfile.id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(Offer.title.ilike(pattern), Offer.description.ilike(pattern), CompanyProfile.name.ilike(pattern))
        )
    if is_active is not None:
        query = query.filter(Offer.is_active.is_(is_active))

    total = query.count()
    offers = (
        query.options(joinedload(Offer.company))
        .order_by(Offer.created_at.desc(), Offer.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    counts = dict(
        db.query(Application.offer_id, func.count(Application.id))
        .filter(Application.offer_id.in_([o.id for o in offers]))
        .group_by(Application.offer_id)
        .all()
    ) if offers else {}
    items = [
        {
            "id": str(offer.id),
            "title": offer.title,
            "location": offer.location,
            "duration": str(offer.duration) if offer.duration else None,
            "isActive": offer.is_active,
            "createdAt": offer.created_at.isoformat() if offer.created_at else None,
            "company": {"id": str(offer.company.id), "name": offer.company.name},
            "applicationCount": counts.get(offer.id, 0),
        }
        for offer in offers
    ]
    return {"offers": items, "pagination": _pagination(page, limit, total)}


def _get_offer(db: Session, offer_id: str) -> Offer:
    uid = _to_uuid(offer_id)
    offer = db.query(Offer).filter(Offer.id == uid).first() if uid else None
    if offer is None:
        raise NotFoundError("Offer not found.")
    return offer


def set_offer_status(db: Session, offer_id: str, is_active: bool) -> Offer:
    offer = _get_offer(db, offer_id)
    offer.is_active = is_active
    db.flush()
    return offer


def remove_offer(db: Session, offer_id: str) -> None:
    db.delete(_get_offer(db, offer_id))
    db.flush()
