"""Offer service: listing with match scores, CRUD for owning companies."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ..applications.models import Application
from ..auth.models import Role, User
from ..errors import AuthorizationError, NotFoundError
from ..profiles.models import CompanyProfile, StudentProfile
from ..profiles.service import get_company_profile, get_student_profile
from ..skills.models import Skill
from ..skills.service import get_or_create_skills, normalize_skill_name
from .matching import calculate_match_score, relevance_key
from .models import Offer, OfferDuration
from .schemas import OfferCreateRequest, OfferUpdateRequest

logger = logging.getLogger(__name__)

SORT_RELEVANCE = "relevance"
SORT_RECENT = "recent"

_NOT_OWNED = "Offer not found or not owned by user"


def _to_uuid(value: str) -> UUID | None:
    """Convert string to UUID, returning None on failure."""
    if not value:
        return None
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        return None


@dataclass
class OfferFilters:
    search: str | None = None
    location: str | None = None
    skills: str | None = None
    company_name: str | None = None
    type: str | None = None
    sort: str | None = None


def _split_csv(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def serialize_offer(offer: Offer, match_score: int | None = None) -> dict:
    data = {
        "id": str(offer.id),
        "title": offer.title,
        "description": offer.description,
        "location": offer.location,
        "duration": str(offer.duration) if offer.duration else None,
        "isActive": offer.is_active,
        "companyId": str(offer.company_id),
        "company": {
            "id": str(offer.company.id),
            "name": offer.company.name,
            "logoUrl": offer.company.logo_url,
            "sector": offer.company.sector,
            "size": offer.company.size,
        },
        "skills": [{"id": str(s.id), "name": s.name} for s in offer.skills],
        "createdAt": offer.created_at.isoformat() if offer.created_at else None,
        "updatedAt": offer.updated_at.isoformat() if offer.updated_at else None,
    }
    if match_score is not None:
        data["matchScore"] = match_score
    return data


def _viewer_skill_names(db: Session, viewer: User | None) -> list[str] | None:
    """Skill names used for scoring, or None when the viewer is not a student with a profile."""
    if viewer is None or viewer.role != Role.STUDENT:
        return None
    profile = get_student_profile(db, viewer.id)
    if profile is None:
        return None
    return [s.name for s in profile.skills]


def _base_query(db: Session):
    return db.query(Offer).options(joinedload(Offer.company), selectinload(Offer.skills))


def list_offers(db: Session, filters: OfferFilters, viewer: User | None = None) -> list[dict]:
    """Active offers matching *filters*; scored and relevance-sorted for students."""
    query = _base_query(db).join(Offer.company).filter(Offer.is_active.is_(True))

    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        query = query.filter(or_(Offer.title.ilike(pattern), Offer.description.ilike(pattern)))
    if filters.location:
        query = query.filter(Offer.location.ilike(f"%{filters.location.strip()}%"))
    if filters.company_name:
        query = query.filter(CompanyProfile.name.ilike(f"%{filters.company_name.strip()}%"))
    if filters.type:
        try:
            query = query.filter(Offer.duration == OfferDuration(filters.type.upper()))
        except ValueError:
            return []
    skill_names = [normalize_skill_name(s).lower() for s in _split_csv(filters.skills)]
    if skill_names:
        query = query.filter(Offer.skills.any(func.lower(Skill.name).in_(skill_names)))

    offers = query.order_by(Offer.created_at.desc(), Offer.id).all()

    student_skills = _viewer_skill_names(db, viewer)
    if student_skills is None:
        return [serialize_offer(o) for o in offers]

    scored = [(o, calculate_match_score(student_skills, [s.name for s in o.skills])) for o in offers]
    if filters.sort != SORT_RECENT:
        scored.sort(key=lambda pair: relevance_key(pair[1], pair[0].created_at, pair[0].id))
    return [serialize_offer(o, score) for o, score in scored]


def list_offer_types(db: Session) -> list[str]:
    rows = (
        db.query(Offer.duration)
        .filter(Offer.duration.isnot(None), Offer.is_active.is_(True))
        .distinct()
        .all()
    )
    return sorted(str(row[0]) for row in rows)


def get_offer(db: Session, offer_id: str) -> Offer:
    uid = _to_uuid(offer_id)
    offer = _base_query(db).filter(Offer.id == uid).first() if uid else None
    if not offer:
        raise NotFoundError("Offer not found.")
    return offer


def get_offer_payload(db: Session, offer_id: str, viewer: User | None = None) -> dict:
    offer = get_offer(db, offer_id)
    student_skills = _viewer_skill_names(db, viewer)
    if student_skills is None:
        return serialize_offer(offer)
    return serialize_offer(offer, calculate_match_score(student_skills, [s.name for s in offer.skills]))


def _require_company_profile(db: Session, user: User) -> CompanyProfile:
    profile = get_company_profile(db, user.id)
    if profile is None:
        raise AuthorizationError("You must have a company profile to manage offers.")
    return profile


def _get_owned_offer(db: Session, user: User, offer_id: str) -> Offer:
    uid = _to_uuid(offer_id)
    if uid is None:
        raise NotFoundError(_NOT_OWNED)
    offer = (
        _base_query(db)
        .join(Offer.company)
        .filter(Offer.id == uid, CompanyProfile.user_id == user.id)
        .first()
    )
    if not offer:
        raise NotFoundError(_NOT_OWNED)
    return offer


def create_offer(db: Session, user: User, data: OfferCreateRequest) -> Offer:
    company = _require_company_profile(db, user)
    offer = Offer(
        company=company,
        title=data.title.strip(),
        description=data.description.strip(),
        location=(data.location or "").strip(),
        duration=data.duration,
        skills=get_or_create_skills(db, data.skills),
    )
    db.add(offer)
    db.flush()
    logger.info("Company %s created offer %s", company.id, offer.id)
    return offer


def update_offer(db: Session, user: User, offer_id: str, data: OfferUpdateRequest) -> Offer:
    offer = _get_owned_offer(db, user, offer_id)
    fields = data.model_fields_set
    if data.title is not None:
        offer.title = data.title.strip()
    if data.description is not None:
        offer.description = data.description.strip()
    if data.location is not None:
        offer.location = data.location.strip()
    if "duration" in fields:
        offer.duration = data.duration
    if data.skills is not None:
        offer.skills = get_or_create_skills(db, data.skills)
    db.flush()
    return offer


def delete_offer(db: Session, user: User, offer_id: str) -> None:
    offer = _get_owned_offer(db, user, offer_id)
    db.delete(offer)
    db.flush()


def list_my_offers(db: Session, user: User) -> list[dict]:
    company = get_company_profile(db, user.id)
    if company is None:
        raise NotFoundError("Company profile not found.")

    offers = (
        _base_query(db)
        .filter(Offer.company_id == company.id)
        .order_by(Offer.created_at.desc())
        .all()
    )
    counts = dict(
        db.query(Application.offer_id, func.count(Application.id))
        .filter(Application.offer_id.in_([o.id for o in offers]))
        .group_by(Application.offer_id)
        .all()
    ) if offers else {}
    return [{**serialize_offer(o), "applicationCount": counts.get(o.id, 0)} for o in offers]


def list_offer_applications(db: Session, user: User, offer_id: str) -> list[dict]:
    """Applications to an offer owned by *user*, with flattened student data."""
    offer = _get_owned_offer(db, user, offer_id)
    applications = (
        db.query(Application)
        .options(joinedload(Application.student).joinedload(User.student_profile))
        .filter(Application.offer_id == offer.id)
        .order_by(Application.created_at.desc())
        .all()
    )
    result = []
    for app in applications:
        profile: StudentProfile | None = app.student.student_profile
        result.append({
            "id": str(app.id),
            "status": str(app.status),
            "createdAt": app.created_at.isoformat() if app.created_at else None,
            "updatedAt": app.updated_at.isoformat() if app.updated_at else None,
            "conversationId": str(app.conversation.id) if app.conversation else None,
            "student": {
                "id": str(app.student.id),
                "email": app.student.email,
                "firstName": profile.first_name if profile else None,
                "lastName": profile.last_name if profile else None,
                "school": profile.school if profile else None,
                "degree": profile.degree if profile else None,
                "cvUrl": profile.cv_url if profile else None,
                "skills": [s.name for s in profile.skills] if profile else [],
            },
        })
    return result
