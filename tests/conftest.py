"""Shared test fixtures for pytest"""
import os
import tempfile

# Settings are read once and the module-level engine is built at import time,
# so the environment must be in place before anything from the app is imported.
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'tenant_platform_test.db')}",
)
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("TELEMETRY_ENABLED", "false")

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from main import app  # noqa: E402
from tenant_platform.application.services.tenant_lifecycle_service import (  # noqa: E402
    TenantLifecycleService,
)
from tenant_platform.application.services.tenant_service import TenantService  # noqa: E402
from tenant_platform.application.services.tenant_validation_service import (  # noqa: E402
    TenantValidationService,
)
from tenant_platform.infrastructure.idempotency.store import InMemoryIdempotencyStore  # noqa: E402
from tenant_platform.infrastructure.messaging.event_publisher import (  # noqa: E402
    TenantEventPublisher,
)
from tenant_platform.infrastructure.persistence.database import Base, get_db  # noqa: E402
from tenant_platform.infrastructure.persistence.repositories import (  # noqa: E402
    AddressRepository,
    ContactInfoRepository,
    TenantRepository,
)
from tenant_platform.infrastructure.persistence.transaction import (  # noqa: E402
    TransactionManager,
)
from tenant_platform.presentation.api.dependencies import (  # noqa: E402
    get_lifecycle_service,
    get_tenant_service,
    get_validation_service,
)


class FakeClock:
    """Manually advanced monotonic clock for TTL tests"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def test_engine(tmp_path):
    """Create test database engine (one SQLite file per test)"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory):
    """Plain session for assertions made outside the services"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def transactions(session_factory):
    return TransactionManager(session_factory)


@pytest.fixture
def tenant_repo(transactions):
    return TenantRepository(transactions)


@pytest.fixture
def address_repo(transactions):
    return AddressRepository(transactions)


@pytest.fixture
def contact_repo(transactions):
    return ContactInfoRepository(transactions)


@pytest.fixture
def events():
    """Event publisher double; every publish reports success"""
    publisher = AsyncMock(spec=TenantEventPublisher)
    for name in (
        "publish_tenant_created",
        "publish_tenant_updated",
        "publish_tenant_deleted",
        "publish_tenant_provisioned",
        "publish_tenant_deprovisioned",
    ):
        getattr(publisher, name).return_value = True
    return publisher


@pytest.fixture
def idempotency_store(clock):
    return InMemoryIdempotencyStore(ttl=24 * 60 * 60, clock=clock)


@pytest.fixture
def tenant_service(transactions, tenant_repo, address_repo, contact_repo, events, idempotency_store):
    return TenantService(
        transactions=transactions,
        tenant_repo=tenant_repo,
        address_repo=address_repo,
        contact_repo=contact_repo,
        events=events,
        idempotency=idempotency_store,
    )


@pytest.fixture
def validation_service(tenant_service, clock):
    return TenantValidationService(tenant_service, cache_ttl=60, clock=clock)


@pytest.fixture
def lifecycle_service(transactions, tenant_repo, events):
    return TenantLifecycleService(transactions=transactions, tenant_repo=tenant_repo, events=events)


@pytest.fixture
async def client(test_db, tenant_service, validation_service, lifecycle_service):
    """HTTP client for API testing"""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_tenant_service] = lambda: tenant_service
    app.dependency_overrides[get_validation_service] = lambda: validation_service
    app.dependency_overrides[get_lifecycle_service] = lambda: lifecycle_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def test_tenant(tenant_service):
    """Create test tenant (PENDING, active flag set)"""
    from tenant_platform.application.dto.tenant import TenantCreate

    return await tenant_service.create(TenantCreate(name="Acme", subdomain="acme"))
