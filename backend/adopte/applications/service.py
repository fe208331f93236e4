"""Application lifecycle: apply, review, withdraw."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..auth.models import User
from ..errors import AuthorizationError, ConflictError, NotFoundError
from ..messaging.access import sync_state
from ..messaging.service import ensure_application_conversation
from ..offers.models import Offer
from ..profiles.service import get_student_profile
from .models import Application, ApplicationStatus

logger = logging.getLogger(__name__)

# Position along the forward path; REJECTED sits outside it
_FORWARD_ORDER = {
    ApplicationStatus.NEW: 0,
    ApplicationStatus.SEEN: 1,
    ApplicationStatus.INTERVIEW: 2,
    ApplicationStatus.HIRED: 3,
}
TERMINAL_STATUSES = frozenset({ApplicationStatus.HIRED, ApplicationStatus.REJECTED})
CONVERSATION_STATUSES = frozenset({ApplicationStatus.INTERVIEW, ApplicationStatus.HIRED})


def _to_uuid(value: str) -> UUID | None:
    """Convert string to UUID, returning None on failure."""
    if not value:
        return None
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        return None


def is_valid_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    """Forward moves (skips allowed) and rejection from any non-terminal status."""
    if current in TERMINAL_STATUSES:
        return False
    if target == ApplicationStatus.REJECTED:
        return True
    return _FORWARD_ORDER[target] > _FORWARD_ORDER[current]


def _already_applied(db: Session, student_id, offer_id) -> bool:
    query = db.query(Application.id).filter(Application.student_id == student_id, Application.offer_id == offer_id)
    return query.first() is not None


def create_application(db: Session, user: User, offer_id: str) -> Application:
    if get_student_profile(db, user.id) is None:
        raise AuthorizationError("You must have a profile to apply.")

    uid = _to_uuid(offer_id)
    offer = db.query(Offer).filter(Offer.id == uid, Offer.is_active.is_(True)).first() if uid else None
    if offer is None:
        raise NotFoundError("Offer not found.")

    if _already_applied(db, user.id, offer.id):
        raise ConflictError("You have already applied to this offer.")

    application = Application(student_id=user.id, offer=offer, status=ApplicationStatus.NEW)
    db.add(application)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("You have already applied to this offer.") from exc
    logger.info("Student %s applied to offer %s", user.id, offer.id)
    return application


def _get_application(db: Session, application_id: str) -> Application:
    uid = _to_uuid(application_id)
    application = (
        db.query(Application)
        .options(joinedload(Application.offer).joinedload(Offer.company))
        .filter(Application.id == uid)
        .first()
        if uid
        else None
    )
    if application is None:
        raise NotFoundError("Application not found.")
    return application


def update_status(db: Session, user: User, application_id: str, status: ApplicationStatus) -> Application:
    """Move an application along its lifecycle and keep its conversation in step.

    INTERVIEW and HIRED open the (single) conversation; any other status
    archives it if one exists.
    """
    application = _get_application(db, application_id)
    if application.offer.company.user_id != user.id:
        raise AuthorizationError("You do not have permission to update this application.")

    if application.status == status:
        return application
    if not is_valid_transition(application.status, status):
        raise ConflictError(f"Cannot change application status from {application.status} to {status}.")

    application.status = status
    if status in CONVERSATION_STATUSES:
        ensure_application_conversation(db, application)
    elif application.conversation is not None:
        sync_state(application.conversation)
    db.flush()
    logger.info("Application %s -> %s", application.id, status)
    return application


def withdraw_application(db: Session, user: User, application_id: str) -> None:
    application = _get_application(db, application_id)
    if application.student_id != user.id:
        raise AuthorizationError("You do not have permission to delete this application.")
    db.delete(application)
    db.flush()


def get_application(db: Session, user: User, application_id: str) -> Application:
    application = _get_application(db, application_id)
    if user.id not in (application.student_id, application.offer.company.user_id):
        raise AuthorizationError("You do not have permission to view this application.")
    return application


def list_my_applications(db: Session, user: User) -> list[Application]:
    return (
        db.query(Application)
        .options(joinedload(Application.offer).joinedload(Offer.company))
        .filter(Application.student_id == user.id)
        .order_by(Application.created_at.desc())
        .all()
    )


def serialize_application(application: Application) -> dict:
    offer = application.offer
    return {
        "id": str(application.id),
        "studentId": str(application.student_id),
        "offerId": str(application.offer_id),
        "status": str(application.status),
        "conversationId": str(application.conversation.id) if application.conversation else None,
        "createdAt": application.created_at.isoformat() if application.created_at else None,
        "updatedAt": application.updated_at.isoformat() if application.updated_at else None,
        "offer": {
            "id": str(offer.id),
            "title": offer.title,
            "location": offer.location,
            "duration": str(offer.duration) if offer.duration else None,
            "company": {
                "id": str(offer.company.id),
                "name": offer.company.name,
                "logoUrl": offer.company.logo_url,
            },
        },
    }
