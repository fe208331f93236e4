"""Adoption request service: company outreach and the student's answer."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..auth.models import Role, User
from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..messaging.access import sync_state
from ..messaging.service import open_adoption_conversation
from ..offers.models import Offer
from ..profiles.models import CompanyProfile
from ..profiles.service import get_company_profile
from .models import AdoptionRequest, AdoptionRequestStatus

logger = logging.getLogger(__name__)

MIN_MESSAGE_LENGTH = 10
TERMINAL_STATUSES = frozenset({AdoptionRequestStatus.ACCEPTED, AdoptionRequestStatus.REJECTED})

_DUPLICATE_GENERAL = "You have already sent a general request to this student."
_DUPLICATE_FOR_OFFER = "You have already sent a request for this student for this offer."


def _to_uuid(value: str) -> UUID | None:
    """Convert string to UUID, returning None on failure."""
    if not value:
        return None
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        return None


def _duplicate_exists(db: Session, company: CompanyProfile, student_id: UUID, offer_id: UUID | None) -> bool:
    query = db.query(AdoptionRequest.id).filter(
        AdoptionRequest.company_id == company.id,
        AdoptionRequest.student_id == student_id,
    )
    if offer_id is None:
        query = query.filter(AdoptionRequest.offer_id.is_(None))
    else:
        query = query.filter(AdoptionRequest.offer_id == offer_id)
    return query.first() is not None


def create_adoption_request(
    db: Session, user: User, student_id: str, message: str, offer_id: str | None = None
) -> AdoptionRequest:
    """Create the request, its conversation and the seed message in one flush."""
    company = get_company_profile(db, user.id)
    if company is None:
        raise AuthorizationError("You must have a company profile to send requests.")

    text = (message or "").strip()
    if len(text) < MIN_MESSAGE_LENGTH:
        raise ValidationError(f"body/message must NOT have fewer than {MIN_MESSAGE_LENGTH} characters")

    student_uid = _to_uuid(student_id)
    student = db.query(User).filter(User.id == student_uid).first() if student_uid else None
    if student is None or student.role != Role.STUDENT:
        raise NotFoundError("Student not found.")

    offer_uid = None
    if offer_id:
        offer_uid = _to_uuid(offer_id)
        offer = db.query(Offer).filter(Offer.id == offer_uid).first() if offer_uid else None
        if offer is None:
            raise NotFoundError("Offer not found.")
        if offer.company_id != company.id:
            raise AuthorizationError("You can only invite students for your own offers.")

    duplicate_message = _DUPLICATE_FOR_OFFER if offer_uid else _DUPLICATE_GENERAL
    if _duplicate_exists(db, company, student.id, offer_uid):
        raise ConflictError(duplicate_message)

    request = AdoptionRequest(
        company=company,
        student=student,
        offer_id=offer_uid,
        message=text,
        status=AdoptionRequestStatus.PENDING,
    )
    db.add(request)
    try:
        db.flush()
        open_adoption_conversation(db, request, company, text)
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(duplicate_message) from exc

    logger.info("Company %s sent adoption request %s to student %s", company.id, request.id, student.id)
    return request


def update_status(db: Session, user: User, request_id: str, status: AdoptionRequestStatus) -> AdoptionRequest:
    """Accept or reject a request addressed to *user*.

    Requests addressed to someone else are reported as not found. Re-sending
    the current terminal status is a no-op; changing a decided request is a conflict.
    """
    if status not in TERMINAL_STATUSES:
        raise ValidationError("body/status must be equal to one of the allowed values")

    uid = _to_uuid(request_id)
    request = (
        db.query(AdoptionRequest)
        .filter(AdoptionRequest.id == uid, AdoptionRequest.student_id == user.id)
        .first()
        if uid
        else None
    )
    if request is None:
        raise NotFoundError("Request not found or you do not have permission to update it.")

    if request.status == status:
        return request
    if request.status in TERMINAL_STATUSES:
        raise ConflictError(f"This request has already been {str(request.status).lower()}.")

    request.status = status
    if request.conversation is not None:
        sync_state(request.conversation)
    db.flush()
    logger.info("Adoption request %s -> %s", request.id, status)
    return request


def list_sent_requests(db: Session, user: User) -> list[AdoptionRequest]:
    company = get_company_profile(db, user.id)
    if company is None:
        return []
    return (
        db.query(AdoptionRequest)
        .options(joinedload(AdoptionRequest.student).joinedload(User.student_profile))
        .filter(AdoptionRequest.company_id == company.id)
        .order_by(AdoptionRequest.created_at.desc())
        .all()
    )


def list_received_requests(db: Session, user: User) -> list[AdoptionRequest]:
    return (
        db.query(AdoptionRequest)
        .options(joinedload(AdoptionRequest.company))
        .filter(AdoptionRequest.student_id == user.id)
        .order_by(AdoptionRequest.created_at.desc())
        .all()
    )


def serialize_request(request: AdoptionRequest) -> dict:
    return {
        "id": str(request.id),
        "companyId": str(request.company_id),
        "studentId": str(request.student_id),
        "offerId": str(request.offer_id) if request.offer_id else None,
        "message": request.message,
        "status": str(request.status),
        "conversationId": str(request.conversation.id) if request.conversation else None,
        "createdAt": request.created_at.isoformat() if request.created_at else None,
        "updatedAt": request.updated_at.isoformat() if request.updated_at else None,
    }


def serialize_sent_request(request: AdoptionRequest) -> dict:
    profile = request.student.student_profile
    return {
        **serialize_request(request),
        "offerTitle": request.offer.title if request.offer else None,
        "student": {
            "id": str(request.student_id),
            "email": request.student.email,
            "firstName": profile.first_name if profile else None,
            "lastName": profile.last_name if profile else None,
            "school": profile.school if profile else None,
            "degree": profile.degree if profile else None,
            "skills": [s.name for s in profile.skills] if profile else [],
            "cvUrl": profile.cv_url if profile and profile.is_cv_public else None,
            "isCvPublic": profile.is_cv_public if profile else False,
        },
    }


def serialize_received_request(request: AdoptionRequest) -> dict:
    company = request.company
    return {
        **serialize_request(request),
        "offerTitle": request.offer.title if request.offer else None,
        "company": {
            "id": str(company.id),
            "name": company.name,
            "logoUrl": company.logo_url,
            "contactEmail": company.contact_email,
            "sector": company.sector,
            "size": company.size,
        },
    }
