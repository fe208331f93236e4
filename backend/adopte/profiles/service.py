"""Profile service: role-specific profile creation, update and serialisation."""

from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session

from ..auth.models import Role, User
from ..errors import AuthorizationError, ValidationError, format_validation_errors
from ..skills.service import get_or_create_skills
from .models import CompanyProfile, StudentProfile
from .schemas import CompanyProfileRequest, StudentProfileRequest


def create_student_profile(db: Session, user: User, first_name: str, last_name: str) -> StudentProfile:
    profile = StudentProfile(user_id=user.id, first_name=first_name, last_name=last_name)
    db.add(profile)
    db.flush()
    return profile


def create_company_profile(db: Session, user: User, name: str, contact_email: str) -> CompanyProfile:
    profile = CompanyProfile(user_id=user.id, name=name, contact_email=contact_email)
    db.add(profile)
    db.flush()
    return profile


def get_student_profile(db: Session, user_id) -> StudentProfile | None:
    return db.query(StudentProfile).filter(StudentProfile.user_id == user_id).first()


def get_company_profile(db: Session, user_id) -> CompanyProfile | None:
    return db.query(CompanyProfile).filter(CompanyProfile.user_id == user_id).first()


def upsert_student_profile(db: Session, user: User, data: StudentProfileRequest) -> StudentProfile:
    profile = get_student_profile(db, user.id)
    if profile is None:
        profile = StudentProfile(user_id=user.id)
        db.add(profile)

    profile.first_name = data.first_name.strip()
    profile.last_name = data.last_name.strip()
    profile.school = data.school
    profile.degree = data.degree
    if data.cv_url is not None:
        profile.cv_url = data.cv_url
    if data.is_cv_public is not None:
        profile.is_cv_public = data.is_cv_public
    if data.is_open_to_opportunities is not None:
        profile.is_open_to_opportunities = data.is_open_to_opportunities
    if data.skills is not None:
        profile.skills = get_or_create_skills(db, data.skills)

    db.flush()
    return profile


def upsert_company_profile(db: Session, user: User, data: CompanyProfileRequest) -> CompanyProfile:
    profile = get_company_profile(db, user.id)
    if profile is None:
        profile = CompanyProfile(user_id=user.id)
        db.add(profile)

    profile.name = data.name.strip()
    profile.contact_email = str(data.contact_email)
    profile.size = data.size
    profile.sector = data.sector
    if data.logo_url is not None:
        profile.logo_url = data.logo_url

    db.flush()
    return profile


def upsert_profile(db: Session, user: User, body: dict) -> StudentProfile | CompanyProfile:
    """Validate *body* against the schema for the user's role and upsert it."""
    try:
        if user.role == Role.STUDENT:
            return upsert_student_profile(db, user, StudentProfileRequest.model_validate(body))
        if user.role == Role.COMPANY:
            return upsert_company_profile(db, user, CompanyProfileRequest.model_validate(body))
    except SchemaError as exc:
        errors = [{**e, "loc": ("body", *e["loc"])} for e in exc.errors()]
        raise ValidationError(format_validation_errors(errors)) from exc
    raise AuthorizationError("Only students and companies have a profile.")


def serialize_student_profile(profile: StudentProfile) -> dict:
    return {
        "id": str(profile.id),
        "userId": str(profile.user_id),
        "firstName": profile.first_name,
        "lastName": profile.last_name,
        "school": profile.school,
        "degree": profile.degree,
        "skills": [{"id": str(s.id), "name": s.name} for s in profile.skills],
        "isOpenToOpportunities": profile.is_open_to_opportunities,
        "cvUrl": profile.cv_url,
        "isCvPublic": profile.is_cv_public,
    }


def serialize_company_profile(profile: CompanyProfile) -> dict:
    return {
        "id": str(profile.id),
        "userId": str(profile.user_id),
        "name": profile.name,
        "contactEmail": profile.contact_email,
        "size": profile.size,
        "sector": profile.sector,
        "logoUrl": profile.logo_url,
    }


def get_profile_payload(db: Session, user: User) -> dict | None:
    """The caller's own profile flattened with role and email, or None."""
    if user.role == Role.STUDENT:
        profile = get_student_profile(db, user.id)
        data = serialize_student_profile(profile) if profile else None
    elif user.role == Role.COMPANY:
        profile = get_company_profile(db, user.id)
        data = serialize_company_profile(profile) if profile else None
    else:
        data = None
    if data is None:
        return None
    return {**data, "role": str(user.role), "email": user.email}
