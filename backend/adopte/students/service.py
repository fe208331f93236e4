"""Student directory, dashboard stats and visibility."""

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from ..adoption_requests.models import AdoptionRequest
from ..applications.models import Application
from ..auth.models import Role, User
from ..errors import NotFoundError
from ..profiles.models import StudentProfile
from ..profiles.service import get_student_profile
from ..skills.models import Skill


def _split_csv(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def list_available_students(
    db: Session, search: str | None = None, skills: str | None = None, viewer: User | None = None
) -> list[dict]:
    """Students open to opportunities. Every requested skill must be present."""
    query = (
        db.query(StudentProfile)
        .options(joinedload(StudentProfile.user), selectinload(StudentProfile.skills))
        .filter(StudentProfile.is_open_to_opportunities.is_(True))
    )
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                StudentProfile.first_name.ilike(pattern),
                StudentProfile.last_name.ilike(pattern),
                StudentProfile.school.ilike(pattern),
                StudentProfile.degree.ilike(pattern),
            )
        )
    for name in _split_csv(skills):
        query = query.filter(StudentProfile.skills.any(func.lower(Skill.name) == name.lower()))

    show_email = viewer is not None and viewer.role == Role.COMPANY
    profiles = query.order_by(StudentProfile.created_at.desc(), StudentProfile.id).all()
    return [serialize_directory_entry(p, show_email) for p in profiles]


def serialize_directory_entry(profile: StudentProfile, show_email: bool = False) -> dict:
    data = {
        "id": str(profile.user_id),
        "profileId": str(profile.id),
        "firstName": profile.first_name,
        "lastName": profile.last_name,
        "school": profile.school,
        "degree": profile.degree,
        "skills": [s.name for s in profile.skills],
        "isOpenToOpportunities": profile.is_open_to_opportunities,
        "isCvPublic": profile.is_cv_public,
        "cvUrl": profile.cv_url if profile.is_cv_public else None,
    }
    if show_email:
        data["email"] = profile.user.email
    return data


def _require_profile(db: Session, user: User) -> StudentProfile:
    profile = get_student_profile(db, user.id)
    if profile is None:
        raise NotFoundError("Student profile not found")
    return profile


def get_student_stats(db: Session, user: User) -> dict:
    _require_profile(db, user)
    by_status = dict(
        db.query(Application.status, func.count(Application.id))
        .filter(Application.student_id == user.id)
        .group_by(Application.status)
        .all()
    )
    return {
        "totalApplications": sum(by_status.values()),
        "applicationsByStatus": {str(status): count for status, count in by_status.items()},
        "adoptionRequestsReceived": (
            db.query(func.count(AdoptionRequest.id)).filter(AdoptionRequest.student_id == user.id).scalar()
        ),
    }


def update_visibility(db: Session, user: User, is_open: bool) -> StudentProfile:
    profile = _require_profile(db, user)
    profile.is_open_to_opportunities = is_open
    db.flush()
    return profile
