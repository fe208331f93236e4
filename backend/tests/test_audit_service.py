"""Tests for audit service."""

from unittest.mock import MagicMock

from adopte.audit.models import AuditLog
from adopte.audit.service import audit
from adopte.rate_limit import get_client_ip


def _request(headers=None, host="127.0.0.1", request_id="req-1"):
    request = MagicMock()
    request.headers = headers or {}
    request.client.host = host
    request.state.request_id = request_id
    return request


class TestGetClientIp:
    def test_extracts_forwarded_ip(self):
        assert get_client_ip(_request({"X-Forwarded-For": "1.2.3.4, 5.6.7.8"})) == "1.2.3.4"

    def test_uses_client_host(self):
        assert get_client_ip(_request(host="10.0.0.1")) == "10.0.0.1"

    def test_unknown_when_no_client(self):
        request = _request()
        request.client = None
        assert get_client_ip(request) == "unknown"


class TestAudit:
    def test_creates_audit_log(self, db_session, student):
        audit(db_session, _request({"X-Forwarded-For": "192.168.1.1"}), "login", "email=x", user_id=student.id)
        db_session.commit()

        [log] = db_session.query(AuditLog).all()
        assert log.action == "login"
        assert log.detail == "email=x"
        assert log.ip_address == "192.168.1.1"
        assert log.request_id == "req-1"
        assert log.user_id == student.id

    def test_creates_log_without_user(self, db_session):
        audit(db_session, _request(request_id=""), "anonymous_action")
        db_session.commit()

        [log] = db_session.query(AuditLog).all()
        assert log.user_id is None
        assert log.request_id == ""

    def test_not_written_without_commit(self, db_session):
        audit(db_session, _request(), "rolled_back")
        db_session.rollback()
        assert db_session.query(AuditLog).count() == 0
