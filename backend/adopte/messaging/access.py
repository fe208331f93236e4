"""Conversation write-gate: writability is a pure function of the origin's status."""

from ..adoption_requests.models import AdoptionRequestStatus
from ..applications.models import ApplicationStatus
from .models import Conversation, ConversationStatus

WRITABLE_ADOPTION_STATUSES = frozenset({AdoptionRequestStatus.PENDING, AdoptionRequestStatus.ACCEPTED})
WRITABLE_APPLICATION_STATUSES = frozenset({ApplicationStatus.INTERVIEW, ApplicationStatus.HIRED})


def adoption_request_writable(status: AdoptionRequestStatus) -> bool:
    return status in WRITABLE_ADOPTION_STATUSES


def application_writable(status: ApplicationStatus) -> bool:
    return status in WRITABLE_APPLICATION_STATUSES


def origin_status(conversation: Conversation) -> str | None:
    if conversation.adoption_request is not None:
        return str(conversation.adoption_request.status)
    if conversation.application is not None:
        return str(conversation.application.status)
    return None


def can_write(conversation: Conversation) -> bool:
    """Whether new messages are accepted, read from the origin's current status."""
    if conversation.adoption_request is not None:
        return adoption_request_writable(conversation.adoption_request.status)
    if conversation.application is not None:
        return application_writable(conversation.application.status)
    return False


def sync_state(conversation: Conversation) -> None:
    """Recompute the cached status columns. Call in the same transaction as the origin change."""
    writable = can_write(conversation)
    conversation.is_read_only = not writable
    conversation.status = ConversationStatus.ACTIVE if writable else ConversationStatus.ARCHIVED


def participant_ids(conversation: Conversation) -> tuple:
    """(company user id, student user id) for the conversation's origin."""
    if conversation.adoption_request is not None:
        request = conversation.adoption_request
        return request.company.user_id, request.student_id
    if conversation.application is not None:
        application = conversation.application
        return application.offer.company.user_id, application.student_id
    return None, None


def is_participant(conversation: Conversation, user_id) -> bool:
    return user_id in participant_ids(conversation)
