# backend/tests/test_unit_of_work.py
from __future__ import annotations

from sqlalchemy import func, select

from leaseflow.domain.audit import record_transition
from leaseflow.domain.results import FAULT, VALIDATION, WorkflowResult
from leaseflow.logging_config import correlation
from leaseflow.models import Property, WorkflowAuditLog
from leaseflow.services.notifications import RecordingNotificationService
from leaseflow.services.unit_of_work import UnitOfWork, fault_message


def _audit_count(db, org_id: int) -> int:
    return int(db.scalar(select(func.count(WorkflowAuditLog.id)).where(WorkflowAuditLog.org_id == org_id)) or 0)


def _stage_row(db, actor, prop_id: int) -> None:
    record_transition(
        db,
        org_id=actor.org_id,
        performed_by=actor.current_user_id(),
        entity_type="Property",
        entity_id=prop_id,
        from_status="Available",
        to_status="ApplicationPending",
        action="Test",
    )


def test_commit_persists_staged_rows_and_runs_notifications(db_session, actor, make_property):
    pid = make_property()
    notifier = RecordingNotificationService()
    uow = UnitOfWork(db_session, notifier=notifier)

    def op():
        _stage_row(db_session, actor, pid)
        uow.notify("test.event", entity_id=pid)
        return WorkflowResult.success(pid, "done")

    res = uow.execute(op, name="Test")
    assert res.ok
    assert res.data == pid
    assert _audit_count(db_session, actor.org_id) == 1
    assert notifier.sent == [("test.event", {"entity_id": pid})]


def test_notifications_carry_the_bound_correlation_id(db_session):
    notifier = RecordingNotificationService()
    uow = UnitOfWork(db_session, notifier=notifier)

    def op():
        uow.notify("test.event", entity_id=7)
        return WorkflowResult.success(7, "done")

    with correlation("req-abc123"):
        assert uow.execute(op, name="Test").ok
    assert notifier.sent == [("test.event", {"entity_id": 7, "correlation_id": "req-abc123"})]


def test_failed_result_discards_staged_rows_and_notifications(db_session, actor, make_property):
    pid = make_property()
    notifier = RecordingNotificationService()
    uow = UnitOfWork(db_session, notifier=notifier)

    def op():
        _stage_row(db_session, actor, pid)
        db_session.flush()
        uow.notify("test.event", entity_id=pid)
        return WorkflowResult.fail("nope")

    res = uow.execute(op, name="Test")
    assert not res.ok
    assert res.kind == VALIDATION
    assert res.message == "nope"
    assert _audit_count(db_session, actor.org_id) == 0
    assert notifier.sent == []


def test_failed_result_drops_mutated_instances(db_session, actor, make_property):
    pid = make_property(address="1 Original Ave")
    uow = UnitOfWork(db_session)

    def op():
        prop = db_session.get(Property, pid)
        prop.address = "2 Mutated Ave"
        return WorkflowResult.fail("rejected")

    uow.execute(op, name="Test")
    assert len(db_session.identity_map) == 0
    assert db_session.get(Property, pid).address == "1 Original Ave"


def test_exception_becomes_fault_with_inner_causes(db_session, actor, make_property):
    pid = make_property()
    uow = UnitOfWork(db_session)

    def op():
        _stage_row(db_session, actor, pid)
        try:
            try:
                raise KeyError("root")
            except KeyError as e:
                raise ValueError("middle") from e
        except ValueError as e:
            raise RuntimeError("outer") from e

    res = uow.execute(op, name="Test")
    assert not res.ok
    assert res.kind == FAULT
    assert res.message.startswith("Workflow operation failed: outer")
    assert "| Inner: middle" in res.message
    assert "| Inner(2): 'root'" in res.message
    assert _audit_count(db_session, actor.org_id) == 0


def test_fault_message_without_cause():
    assert fault_message(ValueError("boom")) == "Workflow operation failed: boom"


def test_operation_returning_none_is_a_fault(db_session):
    res = UnitOfWork(db_session).execute(lambda: None, name="Broken")
    assert not res.ok
    assert res.kind == FAULT
    assert "Broken returned no result" in res.message


def test_after_commit_hook_errors_do_not_fail_the_operation(db_session, actor, make_property):
    pid = make_property()
    uow = UnitOfWork(db_session)
    ran = []

    def boom():
        raise RuntimeError("hook failed")

    def op():
        _stage_row(db_session, actor, pid)
        uow.after_commit(boom)
        uow.after_commit(lambda: ran.append("second"))
        return WorkflowResult.success(None, "ok")

    res = uow.execute(op, name="Test")
    assert res.ok
    assert ran == ["second"]
    assert _audit_count(db_session, actor.org_id) == 1
