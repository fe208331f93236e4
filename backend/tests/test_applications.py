"""Tests for the application lifecycle and its conversation."""

import pytest

from adopte.applications.models import Application, ApplicationStatus
from adopte.applications.service import (
    create_application,
    get_application,
    is_valid_transition,
    list_my_applications,
    serialize_application,
    update_status,
    withdraw_application,
)
from adopte.errors import AuthorizationError, ConflictError, NotFoundError
from adopte.messaging.models import Conversation, ConversationContext, ConversationStatus

NEW = ApplicationStatus.NEW
SEEN = ApplicationStatus.SEEN
INTERVIEW = ApplicationStatus.INTERVIEW
HIRED = ApplicationStatus.HIRED
REJECTED = ApplicationStatus.REJECTED


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [(NEW, SEEN), (NEW, INTERVIEW), (NEW, HIRED), (SEEN, INTERVIEW), (INTERVIEW, HIRED),
         (NEW, REJECTED), (SEEN, REJECTED), (INTERVIEW, REJECTED)],
    )
    def test_allowed(self, current, target):
        assert is_valid_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [(SEEN, NEW), (INTERVIEW, SEEN), (HIRED, INTERVIEW), (HIRED, REJECTED), (REJECTED, INTERVIEW)],
    )
    def test_refused(self, current, target):
        assert not is_valid_transition(current, target)


class TestCreateApplication:
    def test_apply(self, db_session, student, offer):
        application = create_application(db_session, student, str(offer.id))
        db_session.commit()
        assert application.status == NEW
        assert application.conversation is None

    def test_duplicate(self, db_session, student, offer):
        create_application(db_session, student, str(offer.id))
        db_session.commit()
        with pytest.raises(ConflictError):
            create_application(db_session, student, str(offer.id))
        assert db_session.query(Application).count() == 1

    def test_concurrent_duplicate_hits_unique_index(self, db_session, student, offer, monkeypatch):
        create_application(db_session, student, str(offer.id))
        db_session.commit()
        monkeypatch.setattr("adopte.applications.service._already_applied", lambda *args: False)

        with pytest.raises(ConflictError, match="already applied"):
            create_application(db_session, student, str(offer.id))
        assert db_session.query(Application).count() == 1

    def test_inactive_offer(self, db_session, student, make_offer, company):
        closed = make_offer(company, title="Closed", is_active=False)
        with pytest.raises(NotFoundError):
            create_application(db_session, student, str(closed.id))

    def test_unknown_offer(self, db_session, student):
        with pytest.raises(NotFoundError):
            create_application(db_session, student, "nope")

    def test_requires_student_profile(self, db_session, company, offer):
        with pytest.raises(AuthorizationError, match="profile"):
            create_application(db_session, company, str(offer.id))


class TestUpdateStatus:
    def test_interview_opens_conversation(self, db_session, application, company):
        update_status(db_session, company, str(application.id), INTERVIEW)
        db_session.commit()

        conversation = application.conversation
        assert conversation.context == ConversationContext.APPLICATION
        assert conversation.topic == "Candidature - Backend intern (Acme)"
        assert conversation.status == ConversationStatus.ACTIVE
        assert conversation.is_read_only is False

    def test_hired_reuses_conversation(self, db_session, interview_application, company):
        first_id = interview_application.conversation.id
        update_status(db_session, company, str(interview_application.id), HIRED)
        db_session.commit()
        assert interview_application.conversation.id == first_id
        assert db_session.query(Conversation).count() == 1

    def test_rejection_archives_conversation(self, db_session, interview_application, company):
        update_status(db_session, company, str(interview_application.id), REJECTED)
        db_session.commit()
        conversation = interview_application.conversation
        assert conversation.status == ConversationStatus.ARCHIVED
        assert conversation.is_read_only is True

    def test_seen_does_not_open_conversation(self, db_session, application, company):
        update_status(db_session, company, str(application.id), SEEN)
        assert application.conversation is None

    def test_same_status_is_a_no_op(self, db_session, application, company):
        assert update_status(db_session, company, str(application.id), NEW).status == NEW

    def test_backwards_move_conflicts(self, db_session, interview_application, company):
        with pytest.raises(ConflictError):
            update_status(db_session, company, str(interview_application.id), SEEN)
        assert interview_application.status == INTERVIEW

    def test_other_company_forbidden(self, db_session, application, make_company):
        with pytest.raises(AuthorizationError):
            update_status(db_session, make_company(name="Globex"), str(application.id), SEEN)

    def test_student_cannot_update(self, db_session, application, student):
        with pytest.raises(AuthorizationError):
            update_status(db_session, student, str(application.id), SEEN)


class TestWithdrawAndRead:
    def test_withdraw_removes_application_and_conversation(self, db_session, interview_application, student):
        withdraw_application(db_session, student, str(interview_application.id))
        db_session.commit()
        assert db_session.query(Application).count() == 0
        assert db_session.query(Conversation).count() == 0

    def test_withdraw_someone_elses(self, db_session, application, make_student):
        with pytest.raises(AuthorizationError):
            withdraw_application(db_session, make_student(), str(application.id))

    def test_participants_can_read(self, db_session, application, student, company):
        assert get_application(db_session, student, str(application.id)) is application
        assert get_application(db_session, company, str(application.id)) is application

    def test_outsider_cannot_read(self, db_session, application, make_student):
        with pytest.raises(AuthorizationError):
            get_application(db_session, make_student(), str(application.id))

    def test_my_applications(self, db_session, interview_application, student):
        data = [serialize_application(a) for a in list_my_applications(db_session, student)]
        assert len(data) == 1
        assert data[0]["status"] == "INTERVIEW"
        assert data[0]["offer"]["company"]["name"] == "Acme"
        assert data[0]["conversationId"] == str(interview_application.conversation.id)
