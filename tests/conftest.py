"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
import tempfile
import uuid
from pathlib import Path

# Minimal environment for tests, set before any upline import reads settings
_TEMP_DIR = tempfile.mkdtemp(prefix="upline_tests_")
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{os.path.join(_TEMP_DIR, 'upline.db')}"
)
os.environ.pop("REPLICA_DATABASE_URL", None)
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from upline.models import Account, Base
from upline.services.enrollment_service import EnrollmentService
from upline.services.notification_dispatcher import NotificationDispatcher


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database file with the full schema, one per test."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        # Take over transaction control from the driver
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(test_engine.sync_engine, "begin")
    def do_begin(conn):
        # Writers queue on the database lock instead of failing on upgrade
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session maker bound to the test database."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def session(session_factory):
    """Database session for one test."""
    async with session_factory() as db_session:
        yield db_session


@pytest.fixture
def notification_sink():
    """Recording notification sink."""
    return MagicMock()


@pytest.fixture
def dispatcher(notification_sink):
    """Notification dispatcher writing into the recording sink."""
    return NotificationDispatcher(sink=notification_sink)


@pytest.fixture
def enroll(session_factory, dispatcher):
    """
    Enroll an account on its own session.

    Usage:
        root = await enroll("Root")
        child = await enroll("Child", sponsor=root)
    """
    async def _enroll(full_name: str, sponsor: Account | None = None) -> Account:
        slug = full_name.lower().replace(" ", ".")
        async with session_factory() as db_session:
            service = EnrollmentService(db_session, dispatcher=dispatcher)
            result = await service.enroll(
                full_name=full_name,
                email=f"{slug}.{uuid.uuid4().hex[:8]}@example.com",
                sponsor_code=sponsor.referral_code if sponsor else None,
            )
        return result.account

    return _enroll


@pytest.fixture
def enroll_chain(enroll):
    """
    Enroll a linear chain, root first.

    Returns:
        Accounts in enrollment order (each sponsored by the previous one)
    """
    async def _enroll_chain(*names: str) -> list[Account]:
        accounts = []
        sponsor = None
        for name in names:
            sponsor = await enroll(name, sponsor=sponsor)
            accounts.append(sponsor)
        return accounts

    return _enroll_chain


@pytest.fixture
def fetch_account(session_factory):
    """Read an account on a fresh session (never a stale identity map)."""
    async def _fetch(account_id: str) -> Account | None:
        async with session_factory() as db_session:
            return await db_session.get(Account, account_id)

    return _fetch
