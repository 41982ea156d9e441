import os
from datetime import datetime, timedelta
from types import SimpleNamespace

# Keep the application's module-level engine away from the real data directory
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

import fixtrack.models  # noqa: E402,F401
from fixtrack.core.assignments import AssignmentRegistry  # noqa: E402
from fixtrack.core.db import Base, build_engine  # noqa: E402
from fixtrack.core.locks import IssueLockPool  # noqa: E402
from fixtrack.core.tenants import TenantDirectory  # noqa: E402
from fixtrack.core.workflow import IssueWorkflowEngine  # noqa: E402
from fixtrack.models import UserRole  # noqa: E402


@pytest.fixture(scope="function")
def engine(tmp_path):
    # File-backed so that sessions on different threads share one database
    engine = build_engine(f"sqlite:///{tmp_path / 'fixtrack_test.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def lock_pool():
    return IssueLockPool()


@pytest.fixture
def workflow(db_session, lock_pool):
    return IssueWorkflowEngine(db_session, locks=lock_pool)


@pytest.fixture
def registry(db_session):
    return AssignmentRegistry(db_session)


@pytest.fixture
def tenant(db_session):
    directory = TenantDirectory(db_session)
    customer = directory.create_customer("Acme Corp", "support@acme.test")
    project = directory.create_project(customer.id, "Storefront")
    support = directory.create_user(name="Sam Support", platform_user_id="100", role=UserRole.SUPPORT, is_internal=True)
    reporter = directory.create_user(name="Rita Reporter", platform_user_id="200", customer_id=customer.id)
    dev = directory.create_user(name="Dana Dev", platform_user_id="300", role=UserRole.SUPPORT, is_internal=True)
    qa = directory.create_user(name="Quinn QA", platform_user_id="400", role=UserRole.SUPPORT, is_internal=True)
    channel = directory.register_channel(project.id, "chan-1", "guild-1", support.id, channel_type="support")
    return SimpleNamespace(
        directory=directory,
        customer=customer,
        project=project,
        support=support,
        reporter=reporter,
        dev=dev,
        qa=qa,
        channel=channel,
    )


@pytest.fixture
def issue(workflow, tenant):
    return workflow.report_issue(
        title="Checkout button does nothing",
        description="Clicking pay on the cart page has no effect.",
        reporter_id=tenant.reporter.id,
        channel_id=tenant.channel.id,
    )


@pytest.fixture
def ticking_clock():
    """A clock that moves forward one second per call, for ordering assertions."""
    state = {"now": datetime(2024, 1, 1, 9, 0, 0)}

    def tick():
        state["now"] += timedelta(seconds=1)
        return state["now"]

    return tick
