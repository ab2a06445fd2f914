"""
GAuth Web - Audit Trail Tests

Tests for:
- One audit row per handled request
- Caller attribution and success flag
- The audit log read API
- Recorder failure isolation
"""

from unittest.mock import MagicMock

from sqlmodel import select

from gauth_web.audit.models import AuditLog
from gauth_web.audit.recorder import AuditRecorder
from tests.conftest import login_user


def audit_rows(db_session):
    db_session.expire_all()
    return db_session.exec(select(AuditLog).order_by(AuditLog.created_at)).all()


class TestAuditRecording:
    """Every request leaves exactly one audit row."""

    def test_anonymous_request_recorded(self, client, db_session):
        client.get("/health")

        rows = audit_rows(db_session)
        assert len(rows) == 1
        assert rows[0].action == "GET"
        assert rows[0].resource == "/health"
        assert rows[0].user_id is None
        assert rows[0].success is True
        assert rows[0].details["status_code"] == 200
        assert rows[0].details["request_id"]

    def test_authenticated_request_attributed(self, client, db_session, test_member, member_headers):
        before = len(audit_rows(db_session))

        client.get("/api/auth/me?verbose=1", headers=member_headers)

        rows = audit_rows(db_session)
        assert len(rows) == before + 1
        entry = rows[-1]
        assert entry.resource == "/api/auth/me"
        assert entry.user_id == test_member.id
        assert entry.details["query"] == "verbose=1"

    def test_login_attributed_to_user(self, client, db_session, test_member):
        login_user(client, "member", "MemberPass123")

        entry = audit_rows(db_session)[-1]
        assert entry.action == "POST"
        assert entry.user_id == test_member.id

    def test_failed_request_marked_unsuccessful(self, client, db_session):
        client.post("/api/auth/login", json={"username": "nobody", "password": "x"})

        entry = audit_rows(db_session)[-1]
        assert entry.success is False
        assert entry.details["status_code"] == 401
        assert entry.user_id is None

    def test_forwarded_ip_recorded(self, client, db_session):
        client.get("/health", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        assert audit_rows(db_session)[-1].ip_address == "203.0.113.7"


class TestAuditRecorder:

    def test_write_failure_is_swallowed(self):
        factory = MagicMock(side_effect=RuntimeError("database unavailable"))
        recorder = AuditRecorder(factory)

        assert recorder.record(AuditLog(action="GET", resource="/x")) is False

    def test_write_failure_does_not_affect_response(self, client, monkeypatch):
        monkeypatch.setattr(
            client.app.state.audit_recorder,
            "_session_factory",
            MagicMock(side_effect=RuntimeError("database unavailable")),
        )

        response = client.get("/health")

        assert response.status_code == 200


class TestAuditLogsEndpoint:
    """GET /api/audit/logs"""

    def test_admin_reads_logs_newest_first(self, client, admin_headers):
        client.get("/health")

        response = client.get("/api/audit/logs", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total_items"] >= 2
        assert data["logs"][0]["resource"] == "/health"

    def test_filter_by_action(self, client, admin_headers):
        client.get("/health")

        data = client.get("/api/audit/logs?action=post", headers=admin_headers).json()

        assert data["logs"]
        assert all(log["action"] == "POST" for log in data["logs"])

    def test_filter_by_user(self, client, admin_headers, test_admin):
        client.get("/health")

        data = client.get(f"/api/audit/logs?user_id={test_admin.id}", headers=admin_headers).json()

        assert data["logs"]
        assert all(log["user_id"] == str(test_admin.id) for log in data["logs"])

    def test_invalid_user_filter(self, client, admin_headers):
        response = client.get("/api/audit/logs?user_id=bogus", headers=admin_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid user ID"}
