"""
Pytest fixtures for the CivicFix test suite.

Provides:
- a fresh SQLite database file per test (schema from the ORM metadata)
- one user per role and the matching workflow actors
- report builders, including one that walks a report to a given stage
- a TestClient on the same database and a cookie login helper

Environment is configured before any ``civicfix`` import because settings,
the engine and the session serializer are created at import time.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./.civicfix-test.db")
os.environ["REDIS_URL"] = ""
os.environ.setdefault("SECRET_KEY", "test-secret")

import json

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

import civicfix.db.models  # noqa: F401
from civicfix.core.engine import submit_transition
from civicfix.core.security import hash_password
from civicfix.core.workflow import Actor
from civicfix.db.base import Base
from civicfix.db.immutability import register_immutability_listeners, unregister_immutability_listeners
from civicfix.db.models.report import Report, ReportStage, ReportStatus
from civicfix.db.models.user import Role, User
from civicfix.db.session import build_engine


TEST_PASSWORD = "correct horse battery"

# Forward path used to walk a report to a given stage: stage -> (acting role, action, next stage).
FORWARD_PATH = {
    ReportStage.PENDING_CITY_MANAGER: (Role.CITY_MANAGER, "approve", ReportStage.PENDING_INFRA_MANAGER),
    ReportStage.PENDING_INFRA_MANAGER: (Role.INFRA_MANAGER, "approve", ReportStage.PENDING_ISSUE_RESOLVER),
    ReportStage.PENDING_ISSUE_RESOLVER: (Role.ISSUE_RESOLVER, "approve", ReportStage.PENDING_CONTRACTOR),
    ReportStage.PENDING_CONTRACTOR: (Role.CONTRACTOR, "start_work", ReportStage.WORK_IN_PROGRESS),
    ReportStage.WORK_IN_PROGRESS: (Role.CONTRACTOR, "complete", ReportStage.COMPLETED),
}


@pytest.fixture(scope="session")
def password_hash():
    # bcrypt is slow on purpose; hash once for the whole run.
    return hash_password(TEST_PASSWORD)


@pytest.fixture(autouse=True, scope="session")
def _immutability_listeners():
    register_immutability_listeners()
    yield
    unregister_immutability_listeners()


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'civicfix.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def locking_session_factory(engine):
    """Sessions on the same database whose transactions open with BEGIN IMMEDIATE.

    SQLite ignores SELECT ... FOR UPDATE; taking the write lock at BEGIN gives
    the same one-writer-at-a-time behavior the engine relies on elsewhere.
    """
    eng = create_engine(engine.url, connect_args={"check_same_thread": False})

    @event.listens_for(eng, "connect")
    def _disable_driver_begin(dbapi_conn, _record):
        dbapi_conn.isolation_level = None

    @event.listens_for(eng, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    yield sessionmaker(bind=eng, autocommit=False, autoflush=False)
    eng.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db, password_hash):
    def _make(role: Role, username: str | None = None, full_name: str | None = None, is_active: bool = True) -> User:
        username = username or role.value
        u = User(
            username=username,
            full_name=full_name or username.replace("_", " ").title(),
            email=f"{username}@example.org",
            password_hash=password_hash,
            role=role,
            is_active=is_active,
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        return u

    return _make


@pytest.fixture
def users(make_user) -> dict[Role, User]:
    return {role: make_user(role) for role in Role}


@pytest.fixture
def actors(users) -> dict[Role, Actor]:
    return {role: Actor.from_user(u) for role, u in users.items()}


@pytest.fixture
def make_report(db, users):
    def _make(**overrides) -> Report:
        values = dict(
            title="Pothole near the bus stop",
            description="Deep pothole in the left lane.",
            category="Potholes",
            longitude=77.5946,
            latitude=12.9716,
            address="MG Road, Bangalore",
            area="MG Road",
            images_json=json.dumps(["https://img.example.org/p1.jpg"]),
            reported_by_id=users[Role.CITIZEN].id,
            current_stage=ReportStage.PENDING_CITY_MANAGER,
            status=ReportStatus.SUBMITTED,
        )
        values.update(overrides)
        r = Report(**values)
        db.add(r)
        db.commit()
        db.refresh(r)
        return r

    return _make


@pytest.fixture
def advance(db, actors):
    """Walk a report from its current stage along the forward path until it reaches ``stage``."""

    def _advance(report: Report, stage: ReportStage) -> Report:
        while report.current_stage != stage:
            if report.current_stage not in FORWARD_PATH:
                raise AssertionError(f"{stage.value} is not ahead of {report.current_stage.value}")
            role, action, next_stage = FORWARD_PATH[report.current_stage]
            assets = ["https://img.example.org/done.jpg"] if next_stage == ReportStage.COMPLETED else None
            report = submit_transition(
                db, report.id, actors[role], action, f"{action} by {role.value}", next_stage, assets
            )
        assert report.current_stage == stage
        return report

    return _advance


@pytest.fixture
def client(session_factory):
    """TestClient bound to the per-test database."""
    from fastapi.testclient import TestClient

    from civicfix.db.session import get_db
    from civicfix.main import app

    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def login(client, users):
    """Log ``client`` in as the user holding ``role``; the session cookie replaces any previous one."""

    def _login(role: Role):
        resp = client.post("/login", data={"username": users[role].username, "password": TEST_PASSWORD})
        assert resp.status_code == 200, resp.text
        return client

    return _login
