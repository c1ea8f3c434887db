"""Tests for audit logging helpers."""
import uuid

from sqlalchemy.exc import OperationalError

from voterfield.core.request_context import reset_request_id, set_request_id
from voterfield.db.enums import AuditAction
from voterfield.services import audit_service

from tests.conftest import Tenant


def test_canonical_json_sorted_and_compact():
    value = uuid.UUID("12345678-1234-5678-1234-567812345678")
    assert (
        audit_service.canonical_json({"b": 1, "a": value})
        == '{"a":"12345678-1234-5678-1234-567812345678","b":1}'
    )
    assert audit_service.canonical_json(None) == "{}"


def test_hash_email_hides_address():
    hashed = audit_service.hash_email("Someone@Example.org")
    assert hashed.startswith("Som...@[hash:")
    assert "example" not in hashed.lower()
    assert hashed == audit_service.hash_email("Someone@Example.org")
    assert audit_service.hash_email("") == ""


def test_append_audit_records_request_id(db, tenant: Tenant):
    token = set_request_id("req-42")
    try:
        entry = audit_service.append_audit(
            db, tenant.org.id, AuditAction.VOTER_CREATE, tenant.admin.id, {"voter_id": uuid.uuid4()}
        )
    finally:
        reset_request_id(token)
    db.commit()

    assert entry.request_id == "req-42"
    assert isinstance(entry.details["voter_id"], str)


class _FailingSession:
    """Session stand-in whose writes always fail."""

    def __init__(self):
        self.rolled_back = False

    def add(self, obj):
        pass

    def flush(self):
        raise OperationalError("INSERT INTO audit_logs", {}, Exception("database is locked"))

    def commit(self):
        raise AssertionError("commit must not be reached")

    def rollback(self):
        self.rolled_back = True


def test_log_audit_is_best_effort(caplog):
    session = _FailingSession()
    result = audit_service.log_audit(session, uuid.uuid4(), AuditAction.LIST_CREATE, None, {})

    assert result is None
    assert session.rolled_back is True
    assert "Audit write failed for list.create" in caplog.text
