"""Shared fixtures for the Decivue test suite.

Every test gets a fresh in-memory SQLite database. API tests run the
FastAPI app over httpx's ASGI transport with the session dependency
pointed at that database.
"""

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import decivue.core.models  # noqa: F401  register mappers
from decivue.core.database import Base, get_db_session
from decivue.core.models.assumption import AssumptionScope, AssumptionStatus
from decivue.core.schemas.assumption import AssumptionCreate
from decivue.core.schemas.constraint import ConstraintCreate
from decivue.core.schemas.decision import DecisionCreate
from decivue.core.services import AssumptionService, ConstraintService, DecisionService
from decivue.core.services.event_bus import event_bus
from decivue.utils.config import Settings


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def clean_event_bus():
    """The bus is a process-wide singleton; isolate tests from each other."""
    event_bus.clear()
    yield
    event_bus.clear()


@pytest.fixture
def test_settings():
    return Settings(
        environment="test",
        logging={"level": "WARNING", "json_output": False},
        security={"api_key": None, "rate_limit_default": 1000, "rate_limit_strict": 1000},
    )


@pytest.fixture
async def client(session_factory, test_settings):
    """HTTP client bound to a fresh app and the test database."""
    from decivue.main import create_app

    app = create_app(test_settings)

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# --- Builders ---


@pytest.fixture
def make_assumption(session):
    """Create an assumption through the service layer."""

    async def _make(
        description: str,
        status: AssumptionStatus = AssumptionStatus.VALID,
        scope: AssumptionScope = AssumptionScope.DECISION_SPECIFIC,
        **kwargs,
    ):
        service = AssumptionService.from_session(session)
        return await service.create_assumption(
            AssumptionCreate(description=description, status=status, scope=scope, **kwargs)
        )

    return _make


@pytest.fixture
def make_decision(session):
    """Create a decision through the service layer."""

    async def _make(title: str = "Adopt vendor X", **kwargs):
        service = DecisionService.from_session(session)
        return await service.create_decision(DecisionCreate(title=title, **kwargs))

    return _make


@pytest.fixture
def make_constraint(session):
    async def _make(name: str, rule: dict | None = None, **kwargs):
        service = ConstraintService.from_session(session)
        return await service.create_constraint(ConstraintCreate(name=name, rule=rule, **kwargs))

    return _make
