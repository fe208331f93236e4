"""Conversation service: creation from origins, listing, reading and sending messages."""

import logging
import math
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, aliased, selectinload

from ..adoption_requests.models import AdoptionRequest
from ..applications.models import Application
from ..auth.models import Role, User
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..offers.models import Offer
from ..profiles.models import CompanyProfile
from .access import can_write, is_participant, origin_status, participant_ids, sync_state
from .models import Conversation, ConversationContext, ConversationStatus, Message

logger = logging.getLogger(__name__)

ADOPTION_TOPIC = "Demande d'adoption - {company}"
APPLICATION_TOPIC = "Candidature - {offer} ({company})"

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _to_uuid(value: str) -> UUID | None:
    """Convert string to UUID, returning None on failure."""
    if not value:
        return None
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        return None


# -- Creation from origins ---------------------------------------------------


def open_adoption_conversation(
    db: Session, request: AdoptionRequest, company: CompanyProfile, seed_message: str
) -> Conversation:
    """Create the request's conversation with the company's message as first entry."""
    conversation = Conversation(
        topic=ADOPTION_TOPIC.format(company=company.name),
        context=ConversationContext.ADOPTION_REQUEST,
        adoption_request=request,
    )
    conversation.messages.append(Message(sender_id=company.user_id, content=seed_message))
    sync_state(conversation)
    db.add(conversation)
    db.flush()
    return conversation


def ensure_application_conversation(db: Session, application: Application) -> Conversation:
    """Return the application's conversation, creating it on first use."""
    conversation = application.conversation
    if conversation is None:
        offer = application.offer
        conversation = Conversation(
            topic=APPLICATION_TOPIC.format(offer=offer.title, company=offer.company.name),
            context=ConversationContext.APPLICATION,
            application=application,
        )
        db.add(conversation)
        logger.info("Opened conversation for application %s", application.id)
    sync_state(conversation)
    db.flush()
    return conversation


# -- Queries -----------------------------------------------------------------


def _participant_query(db: Session, user_id):
    request = aliased(AdoptionRequest)
    request_company = aliased(CompanyProfile)
    application = aliased(Application)
    offer = aliased(Offer)
    offer_company = aliased(CompanyProfile)
    return (
        db.query(Conversation)
        .outerjoin(request, Conversation.adoption_request_id == request.id)
        .outerjoin(request_company, request.company_id == request_company.id)
        .outerjoin(application, Conversation.application_id == application.id)
        .outerjoin(offer, application.offer_id == offer.id)
        .outerjoin(offer_company, offer.company_id == offer_company.id)
        .filter(
            or_(
                request.student_id == user_id,
                request_company.user_id == user_id,
                application.student_id == user_id,
                offer_company.user_id == user_id,
            )
        )
    )


def _last_messages(db: Session, conversation_ids: list) -> dict:
    """Latest message per conversation, keyed by conversation id."""
    if not conversation_ids:
        return {}
    latest = (
        db.query(Message.conversation_id, func.max(Message.created_at).label("created_at"))
        .filter(Message.conversation_id.in_(conversation_ids))
        .group_by(Message.conversation_id)
        .subquery()
    )
    messages = (
        db.query(Message)
        .join(
            latest,
            (Message.conversation_id == latest.c.conversation_id) & (Message.created_at == latest.c.created_at),
        )
        .order_by(Message.id)
        .all()
    )
    result = {}
    for message in messages:
        result.setdefault(message.conversation_id, message)
    return result


def serialize_message(message: Message) -> dict:
    return {
        "id": str(message.id),
        "conversationId": str(message.conversation_id),
        "senderId": str(message.sender_id),
        "content": message.content,
        "createdAt": message.created_at.isoformat() if message.created_at else None,
    }


def _counterpart_id(conversation: Conversation, user_id):
    company_user_id, student_user_id = participant_ids(conversation)
    return student_user_id if user_id == company_user_id else company_user_id


def _load_users(db: Session, user_ids: set) -> dict:
    if not user_ids:
        return {}
    users = (
        db.query(User)
        .options(selectinload(User.student_profile), selectinload(User.company_profile))
        .filter(User.id.in_(user_ids))
        .all()
    )
    return {u.id: u for u in users}


def _counterpart(other: User | None) -> dict | None:
    if other is None:
        return None
    if other.role == Role.COMPANY and other.company_profile:
        name = other.company_profile.name
    elif other.role == Role.STUDENT and other.student_profile:
        name = f"{other.student_profile.first_name} {other.student_profile.last_name}".strip()
    else:
        name = other.email
    return {"id": str(other.id), "role": str(other.role), "name": name}


def _context_details(conversation: Conversation) -> dict:
    if conversation.adoption_request is not None:
        request = conversation.adoption_request
        return {
            "type": "adoption_request",
            "status": str(request.status),
            "companyName": request.company.name,
            "offerTitle": request.offer.title if request.offer else None,
        }
    application = conversation.application
    return {
        "type": "application",
        "status": str(application.status),
        "companyName": application.offer.company.name,
        "offerTitle": application.offer.title,
    }


def _conversation_summary(conversation: Conversation) -> dict:
    return {
        "id": str(conversation.id),
        "topic": conversation.topic,
        "context": str(conversation.context),
        "status": str(conversation.status),
        "isReadOnly": not can_write(conversation),
        "canWrite": can_write(conversation),
        "adoptionRequestStatus": (
            str(conversation.adoption_request.status) if conversation.adoption_request else None
        ),
        "applicationStatus": str(conversation.application.status) if conversation.application else None,
    }


def list_conversations(
    db: Session,
    user: User,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    context: str | None = None,
    status: str | None = None,
) -> dict:
    """Conversations the user takes part in, most recently active first."""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    query = _participant_query(db, user.id)
    if context:
        try:
            query = query.filter(Conversation.context == ConversationContext(context.upper()))
        except ValueError as exc:
            raise ValidationError("querystring/context must be equal to one of the allowed values") from exc
    if status:
        try:
            query = query.filter(Conversation.status == ConversationStatus(status.upper()))
        except ValueError as exc:
            raise ValidationError("querystring/status must be equal to one of the allowed values") from exc

    total = query.count()
    conversations = (
        query.options(
            selectinload(Conversation.adoption_request).selectinload(AdoptionRequest.company),
            selectinload(Conversation.adoption_request).selectinload(AdoptionRequest.offer),
            selectinload(Conversation.application).selectinload(Application.offer).selectinload(Offer.company),
        )
        .order_by(Conversation.updated_at.desc(), Conversation.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    last_messages = _last_messages(db, [c.id for c in conversations])
    counterpart_ids = {c.id: _counterpart_id(c, user.id) for c in conversations}
    users = _load_users(db, {uid for uid in counterpart_ids.values() if uid is not None})

    items = []
    for conversation in conversations:
        last = last_messages.get(conversation.id)
        items.append({
            **_conversation_summary(conversation),
            "originStatus": origin_status(conversation),
            "contextDetails": _context_details(conversation),
            "counterpart": _counterpart(users.get(counterpart_ids[conversation.id])),
            "lastMessage": serialize_message(last) if last else None,
            "createdAt": conversation.created_at.isoformat() if conversation.created_at else None,
            "updatedAt": conversation.updated_at.isoformat() if conversation.updated_at else None,
        })

    return {
        "conversations": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if total else 0,
        },
    }


def get_participant_conversation(db: Session, user: User, conversation_id: str) -> Conversation:
    """Load a conversation the user takes part in. Unknown -> 404, foreign -> 403."""
    uid = _to_uuid(conversation_id)
    conversation = db.query(Conversation).filter(Conversation.id == uid).first() if uid else None
    if conversation is None:
        raise NotFoundError("Conversation not found.")
    if not is_participant(conversation, user.id):
        raise AuthorizationError("You are not a participant in this conversation.")
    return conversation


def get_messages(db: Session, user: User, conversation_id: str) -> dict:
    conversation = get_participant_conversation(db, user, conversation_id)
    messages = (
        db.query(Message)
        .filter(Message.conversation_id == conversation.id)
        .order_by(Message.created_at.asc())
        .all()
    )
    return {
        "messages": [serialize_message(m) for m in messages],
        "conversation": _conversation_summary(conversation),
    }


def send_message(db: Session, user: User, conversation_id: str, content: str) -> Message:
    """Append a message if the origin's current status allows writing."""
    text = (content or "").strip()
    if not text:
        raise ValidationError("body/content must NOT have fewer than 1 characters")
    conversation = get_participant_conversation(db, user, conversation_id)
    if not can_write(conversation):
        raise AuthorizationError("This conversation is read-only.")

    message = Message(conversation_id=conversation.id, sender_id=user.id, content=text)
    db.add(message)
    conversation.updated_at = datetime.now(UTC)
    db.flush()
    return message
