"""Tests for the adoption request lifecycle."""

import pytest

from adopte.adoption_requests.models import AdoptionRequest, AdoptionRequestStatus
from adopte.adoption_requests.service import (
    create_adoption_request,
    list_received_requests,
    list_sent_requests,
    serialize_received_request,
    serialize_sent_request,
    update_status,
)
from adopte.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from adopte.messaging.models import Conversation, ConversationContext, ConversationStatus, Message

MESSAGE = "We would love to have you on the team."


class TestCreateAdoptionRequest:
    def test_creates_request_conversation_and_seed_message(self, db_session, company, student):
        request = create_adoption_request(db_session, company, str(student.id), MESSAGE)
        db_session.commit()

        assert request.status == AdoptionRequestStatus.PENDING
        assert request.company_id == company.company_profile.id
        assert request.student_id == student.id

        conversation = request.conversation
        assert conversation.context == ConversationContext.ADOPTION_REQUEST
        assert conversation.topic == "Demande d'adoption - Acme"
        assert conversation.status == ConversationStatus.ACTIVE
        assert conversation.is_read_only is False

        messages = db_session.query(Message).filter_by(conversation_id=conversation.id).all()
        assert len(messages) == 1
        assert messages[0].content == MESSAGE
        assert messages[0].sender_id == company.id

    def test_message_too_short(self, db_session, company, student):
        with pytest.raises(ValidationError, match="fewer than 10 characters"):
            create_adoption_request(db_session, company, str(student.id), "Join us!")

    def test_whitespace_does_not_count(self, db_session, company, student):
        with pytest.raises(ValidationError):
            create_adoption_request(db_session, company, str(student.id), "   short      ")

    def test_requires_company_profile(self, db_session, company, student):
        db_session.delete(company.company_profile)
        db_session.commit()
        db_session.expire(company)
        with pytest.raises(AuthorizationError, match="company profile"):
            create_adoption_request(db_session, company, str(student.id), MESSAGE)

    def test_unknown_student(self, db_session, company):
        with pytest.raises(NotFoundError):
            create_adoption_request(db_session, company, "00000000-0000-0000-0000-000000000000", MESSAGE)

    def test_target_must_be_a_student(self, db_session, company, make_company):
        other = make_company(name="Other")
        with pytest.raises(NotFoundError):
            create_adoption_request(db_session, company, str(other.id), MESSAGE)

    def test_duplicate_general_request(self, db_session, company, student):
        create_adoption_request(db_session, company, str(student.id), MESSAGE)
        db_session.commit()
        with pytest.raises(ConflictError, match="general request"):
            create_adoption_request(db_session, company, str(student.id), MESSAGE)
        assert db_session.query(AdoptionRequest).count() == 1
        assert db_session.query(Conversation).count() == 1

    def test_per_offer_requests_are_independent(self, db_session, company, student, offer):
        create_adoption_request(db_session, company, str(student.id), MESSAGE)
        create_adoption_request(db_session, company, str(student.id), MESSAGE, offer_id=str(offer.id))
        db_session.commit()
        with pytest.raises(ConflictError, match="for this offer"):
            create_adoption_request(db_session, company, str(student.id), MESSAGE, offer_id=str(offer.id))
        assert db_session.query(AdoptionRequest).count() == 2

    @pytest.mark.parametrize("for_offer", [False, True])
    def test_concurrent_duplicate_hits_unique_index(self, db_session, company, student, offer, monkeypatch, for_offer):
        offer_id = str(offer.id) if for_offer else None
        create_adoption_request(db_session, company, str(student.id), MESSAGE, offer_id=offer_id)
        db_session.commit()
        monkeypatch.setattr("adopte.adoption_requests.service._duplicate_exists", lambda *args: False)

        with pytest.raises(ConflictError, match="already sent"):
            create_adoption_request(db_session, company, str(student.id), MESSAGE, offer_id=offer_id)
        assert db_session.query(AdoptionRequest).count() == 1
        assert db_session.query(Conversation).count() == 1
        assert db_session.query(Message).count() == 1

    def test_offer_must_belong_to_company(self, db_session, company, student, make_company, make_offer):
        other = make_company(name="Globex")
        foreign_offer = make_offer(other, title="Not yours")
        with pytest.raises(AuthorizationError, match="your own offers"):
            create_adoption_request(db_session, company, str(student.id), MESSAGE, offer_id=str(foreign_offer.id))


class TestUpdateStatus:
    def test_accept(self, db_session, adoption_request, student):
        request = update_status(db_session, student, str(adoption_request.id), AdoptionRequestStatus.ACCEPTED)
        assert request.status == AdoptionRequestStatus.ACCEPTED
        assert request.conversation.status == ConversationStatus.ACTIVE
        assert request.conversation.is_read_only is False

    def test_reject_archives_conversation(self, db_session, adoption_request, student):
        request = update_status(db_session, student, str(adoption_request.id), AdoptionRequestStatus.REJECTED)
        assert request.conversation.status == ConversationStatus.ARCHIVED
        assert request.conversation.is_read_only is True

    def test_pending_is_not_a_valid_target(self, db_session, adoption_request, student):
        with pytest.raises(ValidationError):
            update_status(db_session, student, str(adoption_request.id), AdoptionRequestStatus.PENDING)

    def test_same_terminal_status_is_a_no_op(self, db_session, adoption_request, student):
        update_status(db_session, student, str(adoption_request.id), AdoptionRequestStatus.ACCEPTED)
        request = update_status(db_session, student, str(adoption_request.id), AdoptionRequestStatus.ACCEPTED)
        assert request.status == AdoptionRequestStatus.ACCEPTED

    @pytest.mark.parametrize(
        ("first", "second"),
        [
            (AdoptionRequestStatus.ACCEPTED, AdoptionRequestStatus.REJECTED),
            (AdoptionRequestStatus.REJECTED, AdoptionRequestStatus.ACCEPTED),
        ],
    )
    def test_terminal_states_are_final(self, db_session, adoption_request, student, first, second):
        update_status(db_session, student, str(adoption_request.id), first)
        with pytest.raises(ConflictError):
            update_status(db_session, student, str(adoption_request.id), second)
        assert adoption_request.status == first

    def test_other_student_gets_not_found(self, db_session, adoption_request, make_student):
        intruder = make_student(email="intruder@example.com")
        with pytest.raises(NotFoundError):
            update_status(db_session, intruder, str(adoption_request.id), AdoptionRequestStatus.ACCEPTED)
        assert adoption_request.status == AdoptionRequestStatus.PENDING

    def test_unknown_request(self, db_session, student):
        with pytest.raises(NotFoundError):
            update_status(db_session, student, "not-a-uuid", AdoptionRequestStatus.ACCEPTED)


class TestListings:
    def test_sent_requests_include_student_summary(self, db_session, adoption_request, company):
        requests = list_sent_requests(db_session, company)
        assert len(requests) == 1
        data = serialize_sent_request(requests[0])
        assert data["student"]["firstName"] == "Alice"
        assert data["student"]["skills"] == ["React"]
        assert data["student"]["cvUrl"] is None
        assert data["conversationId"] == str(adoption_request.conversation.id)

    def test_received_requests_include_company_summary(self, db_session, adoption_request, student):
        requests = list_received_requests(db_session, student)
        data = serialize_received_request(requests[0])
        assert data["company"]["name"] == "Acme"
        assert data["message"] == adoption_request.message
        assert data["status"] == "PENDING"

    def test_lists_are_scoped_to_the_caller(self, db_session, adoption_request, make_student, make_company):
        assert list_received_requests(db_session, make_student()) == []
        assert list_sent_requests(db_session, make_company(name="Initech")) == []

    def test_received_from_several_companies(self, db_session, student, company, make_company):
        other = make_company(name="Zeta")
        first = create_adoption_request(db_session, company, str(student.id), MESSAGE)
        second = create_adoption_request(db_session, other, str(student.id), MESSAGE)
        db_session.commit()
        ids = {r.id for r in list_received_requests(db_session, student)}
        assert ids == {first.id, second.id}
