import itertools
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.services.payment_gateway import MockPaymentGateway
from src.depends import get_payment_gateway, get_session

# Registers the tables on SQLModel.metadata
import src.domain  # noqa: F401

WEBHOOK_SECRET = "test_webhook_secret"


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Create an in-memory SQLite engine shared by every connection of a test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a new database session for each test"""
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with Session() as session:
        yield session


@pytest.fixture
def payment_gateway(monkeypatch):
    counter = itertools.count(1)
    monkeypatch.setattr(
        "src.adapter.services.payment_gateway.generate_gateway_transaction_id",
        lambda: f"TXN_IT_{next(counter)}",
    )
    return MockPaymentGateway(webhook_secret=WEBHOOK_SECRET)


@pytest_asyncio.fixture
async def client(db_session, payment_gateway):
    """Create test client with database session and gateway overrides"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_payment_gateway] = lambda: payment_gateway

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
