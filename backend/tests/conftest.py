# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile
import uuid
from datetime import date

# must be set before leaseflow.config builds Settings
_DB_DIR = tempfile.mkdtemp(prefix="leaseflow-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["APP_ENV"] = "test"
os.environ["AUTH_MODE"] = "dev"

import pytest  # noqa: E402

from leaseflow.auth import Principal  # noqa: E402
from leaseflow.db import Base, SessionLocal, engine  # noqa: E402
from leaseflow.domain.states import PropertyStatus, ProspectStatus  # noqa: E402
from leaseflow.models import Property, ProspectiveTenant  # noqa: E402
from leaseflow.services.application_workflow import ApplicationWorkflowService  # noqa: E402
from leaseflow.services.lease_workflow import LeaseWorkflowService  # noqa: E402
from leaseflow.services.notifications import RecordingNotificationService  # noqa: E402

from flows import make_org_actor  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def actor(db_session) -> Principal:
    return make_org_actor(db_session)


@pytest.fixture
def notifier() -> RecordingNotificationService:
    return RecordingNotificationService()


@pytest.fixture
def apps(db_session, actor, notifier) -> ApplicationWorkflowService:
    return ApplicationWorkflowService(db_session, actor, notifier=notifier)


@pytest.fixture
def leases(db_session, actor, notifier) -> LeaseWorkflowService:
    return LeaseWorkflowService(db_session, actor, notifier=notifier)


@pytest.fixture
def make_property(db_session, actor):
    counter = {"n": 0}

    def _make(**kw) -> int:
        counter["n"] += 1
        row = Property(
            org_id=actor.org_id,
            address=kw.pop("address", f"{100 + counter['n']} Main St"),
            city="Detroit",
            state="MI",
            zip="48201",
            bedrooms=3,
            bathrooms=1.0,
            status=kw.pop("status", PropertyStatus.AVAILABLE),
            **kw,
        )
        db_session.add(row)
        db_session.commit()
        return int(row.id)

    return _make


@pytest.fixture
def make_prospect(db_session, actor):
    def _make(**kw) -> int:
        tag = uuid.uuid4().hex[:8]
        row = ProspectiveTenant(
            org_id=actor.org_id,
            first_name=kw.pop("first_name", "Pat"),
            last_name=kw.pop("last_name", f"Renter{tag}"),
            email=kw.pop("email", f"pat.{tag}@example.com"),
            phone=kw.pop("phone", "313-555-0100"),
            date_of_birth=kw.pop("date_of_birth", date(1990, 5, 1)),
            identification_number=kw.pop("identification_number", f"D{tag}"),
            identification_state=kw.pop("identification_state", "MI"),
            status=ProspectStatus.LEAD,
            **kw,
        )
        db_session.add(row)
        db_session.commit()
        return int(row.id)

    return _make

