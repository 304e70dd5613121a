"""Integration test fixtures for database, engine and HTTP client.

Each test gets its own SQLite file database with the schema created from
the SQLModel metadata, so tests never share rows.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

import src.drip.models  # noqa: F401 - registers tables on the metadata
from src.drip.core.config import Settings
from src.drip.core.db import create_session_factory
from src.drip.engine import AutomationEngine
from src.drip.engine.actions import Channels
from src.drip.main import create_app
from src.drip.models import AutomationWorkflow, Customer, Tenant
from src.drip.services.execution_store import ExecutionStore
from src.drip.services.lookup import SqlTargetLookup
from tests.factories import CustomerFactory, TenantFactory, WorkflowFactory
from tests.helpers import FakeEmailSender, FakeSmsSender, FakeWebhookCaller, FixedClock

Persist = Callable[..., Awaitable[None]]


@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """Fresh database per test with every table created."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'drip.db'}", poolclass=NullPool
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session for direct assertions. Tests commit explicitly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def persist(session_factory: async_sessionmaker[AsyncSession]) -> Persist:
    """Insert entities in one committed transaction."""

    async def _persist(*entities: Any) -> None:
        async with session_factory() as session:
            session.add_all(entities)
            await session.commit()

    return _persist


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession], clock: FixedClock) -> ExecutionStore:
    return ExecutionStore(session_factory, clock)


@pytest.fixture
def channels(
    session_factory: async_sessionmaker[AsyncSession],
    email_sender: FakeEmailSender,
    sms_sender: FakeSmsSender,
    webhook_caller: FakeWebhookCaller,
) -> Channels:
    return Channels(
        email=email_sender,
        sms=sms_sender,
        webhook=webhook_caller,
        lookup=SqlTargetLookup(session_factory),
    )


@pytest.fixture
async def automation(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    clock: FixedClock,
    channels: Channels,
) -> AsyncGenerator[AutomationEngine]:
    """Engine wired to the test database and fake channels. Periodic tasks are not started."""
    engine = AutomationEngine(settings, session_factory, clock, channels=channels)
    yield engine
    await engine.stop(timeout=5)


@pytest.fixture
async def tenant(persist: Persist) -> Tenant:
    tenant = TenantFactory.build()
    await persist(tenant)
    return tenant


@pytest.fixture
async def customer(persist: Persist, tenant: Tenant) -> Customer:
    customer = CustomerFactory.build(tenant_id=tenant.id)
    await persist(customer)
    return customer


@pytest.fixture
async def workflow(persist: Persist, tenant: Tenant) -> AutomationWorkflow:
    workflow = WorkflowFactory.build(tenant_id=tenant.id)
    await persist(workflow)
    return workflow


@pytest.fixture
async def client(
    automation: AutomationEngine,
    session_factory: async_sessionmaker[AsyncSession],
    tenant: Tenant,
) -> AsyncGenerator[AsyncClient]:
    """HTTP client with the tenant header set."""
    app = create_app(engine=automation, session_factory=session_factory)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Tenant-Slug": tenant.slug},
    ) as client:
        yield client
