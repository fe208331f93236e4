"""Tests for conversations, the write-gate and message delivery."""

import pytest
from sqlalchemy import event

from adopte.adoption_requests.models import AdoptionRequest, AdoptionRequestStatus
from adopte.adoption_requests.service import update_status as update_request_status
from adopte.applications.models import ApplicationStatus
from adopte.applications.service import update_status as update_application_status
from adopte.errors import AuthorizationError, NotFoundError, ValidationError
from adopte.messaging.access import (
    adoption_request_writable,
    application_writable,
    can_write,
    participant_ids,
)
from adopte.messaging.service import get_messages, list_conversations, open_adoption_conversation, send_message


class TestWriteGate:
    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (AdoptionRequestStatus.PENDING, True),
            (AdoptionRequestStatus.ACCEPTED, True),
            (AdoptionRequestStatus.REJECTED, False),
        ],
    )
    def test_adoption_request(self, status, expected):
        assert adoption_request_writable(status) is expected

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (ApplicationStatus.NEW, False),
            (ApplicationStatus.SEEN, False),
            (ApplicationStatus.INTERVIEW, True),
            (ApplicationStatus.HIRED, True),
            (ApplicationStatus.REJECTED, False),
        ],
    )
    def test_application(self, status, expected):
        assert application_writable(status) is expected

    def test_reads_the_origin_not_the_cached_flag(self, adoption_request):
        conversation = adoption_request.conversation
        conversation.is_read_only = True
        assert can_write(conversation) is True

    def test_participants(self, adoption_request, company, student):
        assert participant_ids(adoption_request.conversation) == (company.id, student.id)


class TestSendMessage:
    def test_both_sides_can_write_while_pending(self, db_session, adoption_request, company, student):
        conversation_id = str(adoption_request.conversation.id)
        send_message(db_session, student, conversation_id, "Hello, thanks for reaching out!")
        send_message(db_session, company, conversation_id, "When are you available?")
        db_session.commit()
        assert len(get_messages(db_session, student, conversation_id)["messages"]) == 3

    def test_rejected_request_is_read_only_for_both(self, db_session, adoption_request, company, student):
        update_request_status(db_session, student, str(adoption_request.id), AdoptionRequestStatus.REJECTED)
        db_session.commit()
        conversation_id = str(adoption_request.conversation.id)
        for user in (student, company):
            with pytest.raises(AuthorizationError, match="read-only"):
                send_message(db_session, user, conversation_id, "Still there?")

    def test_application_conversation_follows_status(self, db_session, interview_application, company, student):
        conversation_id = str(interview_application.conversation.id)
        send_message(db_session, student, conversation_id, "Looking forward to it.")
        update_application_status(db_session, company, str(interview_application.id), ApplicationStatus.REJECTED)
        db_session.commit()
        with pytest.raises(AuthorizationError, match="read-only"):
            send_message(db_session, student, conversation_id, "Can we talk again?")

    def test_messages_read_oldest_first(self, db_session, adoption_request, company, student):
        conversation_id = str(adoption_request.conversation.id)
        for sender, text in ((student, "First reply"), (company, "Second"), (student, "Third")):
            send_message(db_session, sender, conversation_id, text)
            db_session.commit()

        messages = get_messages(db_session, company, conversation_id)["messages"]
        assert [m["content"] for m in messages] == [adoption_request.message, "First reply", "Second", "Third"]
        stamps = [m["createdAt"] for m in messages]
        assert stamps == sorted(stamps)

    def test_content_is_trimmed_and_required(self, db_session, adoption_request, student):
        with pytest.raises(ValidationError):
            send_message(db_session, student, str(adoption_request.conversation.id), "   ")
        message = send_message(db_session, student, str(adoption_request.conversation.id), "  hi  ")
        assert message.content == "hi"

    def test_outsider_forbidden(self, db_session, adoption_request, make_student):
        with pytest.raises(AuthorizationError):
            send_message(db_session, make_student(), str(adoption_request.conversation.id), "Hello there")

    def test_unknown_conversation(self, db_session, student):
        with pytest.raises(NotFoundError):
            send_message(db_session, student, "00000000-0000-0000-0000-000000000000", "Hello there")


class TestListConversations:
    def test_lists_both_origins(self, db_session, adoption_request, interview_application, student):
        result = list_conversations(db_session, student)
        assert result["pagination"]["total"] == 2
        contexts = {c["context"] for c in result["conversations"]}
        assert contexts == {"ADOPTION_REQUEST", "APPLICATION"}

    def test_summary_fields(self, db_session, adoption_request, student):
        [item] = list_conversations(db_session, student)["conversations"]
        assert item["canWrite"] is True
        assert item["originStatus"] == "PENDING"
        assert item["counterpart"]["name"] == "Acme"
        assert item["lastMessage"]["content"] == adoption_request.message
        assert item["contextDetails"]["companyName"] == "Acme"

    def test_company_sees_student_name(self, db_session, adoption_request, company):
        [item] = list_conversations(db_session, company)["conversations"]
        assert item["counterpart"]["name"] == "Alice Martin"

    def test_most_recent_activity_first(self, db_session, adoption_request, interview_application, student):
        adoption_id = str(adoption_request.conversation.id)
        application_id = str(interview_application.conversation.id)

        send_message(db_session, student, adoption_id, "Replying to the company.")
        db_session.commit()
        ids = [c["id"] for c in list_conversations(db_session, student)["conversations"]]
        assert ids == [adoption_id, application_id]

        send_message(db_session, student, application_id, "About the interview.")
        db_session.commit()
        ids = [c["id"] for c in list_conversations(db_session, student)["conversations"]]
        assert ids == [application_id, adoption_id]

    def test_filters(self, db_session, adoption_request, interview_application, student):
        result = list_conversations(db_session, student, context="application")
        assert [c["context"] for c in result["conversations"]] == ["APPLICATION"]
        assert list_conversations(db_session, student, status="ARCHIVED")["pagination"]["total"] == 0

    def test_bad_filter(self, db_session, student):
        with pytest.raises(ValidationError):
            list_conversations(db_session, student, context="everything")

    def test_outsider_sees_nothing(self, db_session, adoption_request, make_student):
        result = list_conversations(db_session, make_student())
        assert result["conversations"] == []
        assert result["pagination"]["totalPages"] == 0

    def test_pagination(self, db_session, adoption_request, interview_application, student):
        result = list_conversations(db_session, student, page=2, limit=1)
        assert len(result["conversations"]) == 1
        assert result["pagination"] == {"page": 2, "limit": 1, "total": 2, "totalPages": 2}

    def _request_from(self, db_session, company_user, student, message):
        request = AdoptionRequest(
            company=company_user.company_profile,
            student=student,
            message=message,
            status=AdoptionRequestStatus.PENDING,
        )
        db_session.add(request)
        db_session.flush()
        open_adoption_conversation(db_session, request, company_user.company_profile, message)
        db_session.commit()
        return request

    def _count_statements(self, db_session, fn):
        statements = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        engine = db_session.get_bind()
        event.listen(engine, "before_cursor_execute", record)
        try:
            fn()
        finally:
            event.remove(engine, "before_cursor_execute", record)
        return len(statements)

    def test_each_row_gets_its_own_counterpart_and_last_message(
        self, db_session, adoption_request, make_company, student
    ):
        for name in ("Globex", "Initech"):
            self._request_from(db_session, make_company(name=name), student, f"Hello from {name}, let's talk.")
        db_session.expire_all()

        items = list_conversations(db_session, student)["conversations"]
        latest = {item["counterpart"]["name"]: item["lastMessage"]["content"] for item in items}
        assert latest == {
            "Acme": adoption_request.message,
            "Globex": "Hello from Globex, let's talk.",
            "Initech": "Hello from Initech, let's talk.",
        }

    def test_statement_count_independent_of_page_size(self, db_session, adoption_request, make_company, student):
        db_session.expire_all()
        single = self._count_statements(db_session, lambda: list_conversations(db_session, student))

        for name in ("Globex", "Initech", "Umbrella"):
            self._request_from(db_session, make_company(name=name), student, f"Hello from {name}, let's talk.")
        db_session.expire_all()
        several = self._count_statements(db_session, lambda: list_conversations(db_session, student))

        assert several == single
