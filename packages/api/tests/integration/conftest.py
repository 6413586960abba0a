# This project was developed with assistance from AI tools.
"""Integration test fixtures -- real PostgreSQL + real MinIO, no mocks.

Session-scoped containers (started once per test run) provide real PostgreSQL
and MinIO instances. Function-scoped fixtures give each test an isolated DB
session with savepoint rollback so tests don't leak state.
"""

import os

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from testcontainers.minio import MinioContainer
from testcontainers.postgres import PostgresContainer

# ---------------------------------------------------------------------------
# Mark all tests in this directory as integration
# ---------------------------------------------------------------------------
pytestmark = pytest.mark.integration

_DB_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "..", "db")


# ---------------------------------------------------------------------------
# Session-scoped: containers + engine + migrations
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container():
    with PostgresContainer(
        image="postgres:16-alpine",
        username="test",
        password="test",
        dbname="test",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def minio_container():
    with MinioContainer() as mc:
        yield mc


@pytest.fixture(scope="session")
def db_url(pg_container):
    """Async DB URL for asyncpg."""
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    return f"postgresql+asyncpg://test:test@{host}:{port}/test"


@pytest.fixture(scope="session")
def sync_db_url(pg_container):
    """Sync DB URL for Alembic (psycopg2)."""
    host = pg_container.get_container_host_ip()
    port = pg_container.get_exposed_port(5432)
    return f"postgresql://test:test@{host}:{port}/test"


@pytest.fixture(scope="session", autouse=True)
def _run_migrations(sync_db_url):
    """alembic upgrade head against the test container."""
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config(os.path.join(_DB_DIR, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(_DB_DIR, "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", sync_db_url)
    command.upgrade(alembic_cfg, "head")


@pytest.fixture(scope="session")
def async_engine(db_url, _run_migrations):
    engine = create_async_engine(db_url, echo=False, poolclass=NullPool)
    yield engine


@pytest.fixture(scope="session", autouse=True)
def _patch_db_module(async_engine):
    """Point db.database globals at the test container.

    The health route asks ``get_db_service()`` for the module-level service
    at call time, so replacing it here is enough.
    """
    import db.database as db_mod

    db_mod.engine = async_engine
    db_mod.SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    db_mod.db_service = db_mod.DatabaseService(engine=async_engine)


@pytest.fixture(scope="session", autouse=True)
def _init_storage(minio_container):
    """Initialize the StorageService singleton with test MinIO."""
    from src.services import storage as storage_mod

    host = minio_container.get_container_host_ip()
    port = minio_container.get_exposed_port(9000)
    storage_mod._service = storage_mod.StorageService(
        endpoint=f"http://{host}:{port}",
        access_key=minio_container.access_key,
        secret_key=minio_container.secret_key,
        bucket="test-documents",
    )


# ---------------------------------------------------------------------------
# Function-scoped: per-test session with savepoint rollback
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session(async_engine):
    """Per-test DB session with savepoint rollback.

    Service commits release a savepoint; the outer transaction is rolled
    back when the test ends.
    """
    conn = await async_engine.connect()
    txn = await conn.begin()
    session = AsyncSession(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield session
    await session.close()
    await txn.rollback()
    await conn.close()


@pytest.fixture
def client_factory(db_session):
    """Factory returning an async httpx client bound to ``db_session``.

    ``user=None`` makes an anonymous client (portal tokens).
    """
    from db import get_db

    from src.main import app
    from src.middleware.auth import get_current_user, get_optional_user

    async def _make(user):
        async def _get_db():
            yield db_session

        async def _get_current_user():
            return user

        app.dependency_overrides[get_db] = _get_db
        app.dependency_overrides[get_optional_user] = _get_current_user
        if user is not None:
            app.dependency_overrides[get_current_user] = _get_current_user
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        return httpx.AsyncClient(transport=transport, base_url="http://test")

    yield _make

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _no_notifications(monkeypatch):
    """No webhook is configured, so invitations only log."""
    from src.services import notification

    monkeypatch.setattr(notification.settings, "NOTIFICATION_WEBHOOK_URL", None)
