# tests/conftest.py
from contextlib import AsyncExitStack

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from sweetshop.config.settings import Settings
from sweetshop.db.crud import AccountStore, ItemRepository
from sweetshop.db.database import init_db, make_engine, make_session_factory
from sweetshop.main import create_app
from sweetshop.models.account import Identity, Role
from sweetshop.security.hashing import PasswordHasher
from sweetshop.security.tokens import SessionIssuer
from sweetshop.services.inventory import InventoryService

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass"
USER_EMAIL = "alice@example.com"
USER_PASSWORD = "password123"


@pytest.fixture
def settings():
    """Settings for an isolated in-memory database with cheap hashing."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        SECRET_KEY="test-secret",
        BCRYPT_ROUNDS=4,
        LOG_LEVEL="WARNING",
    )


# --- Service-level fixtures (no HTTP) ---

@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def issuer(settings):
    return SessionIssuer(settings)


@pytest.fixture
def db_session(settings):
    """A session on a fresh in-memory database."""
    engine = make_engine(settings.DATABASE_URL)
    init_db(engine)
    session = make_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def accounts(db_session, hasher):
    return AccountStore(db_session, hasher)


@pytest.fixture
def inventory(db_session):
    return InventoryService(ItemRepository(db_session))


@pytest.fixture
def admin_identity(accounts):
    account = accounts.create(ADMIN_EMAIL, ADMIN_PASSWORD, role=Role.admin)
    return Identity.model_validate(account)


@pytest.fixture
def user_identity(accounts):
    account = accounts.create(USER_EMAIL, USER_PASSWORD)
    return Identity.model_validate(account)


# --- HTTP fixtures ---

@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest_asyncio.fixture
async def client_factory(app):
    """Hands out independent clients (separate cookie jars) against one app."""
    async with AsyncExitStack() as stack:

        async def make_client() -> AsyncClient:
            transport = ASGITransport(app=app)
            return await stack.enter_async_context(AsyncClient(transport=transport, base_url="http://test"))

        yield make_client


@pytest_asyncio.fixture
async def client(client_factory):
    return await client_factory()


@pytest_asyncio.fixture
async def user_client(client_factory):
    """A client logged in as a freshly registered regular user."""
    ac = await client_factory()
    response = await ac.post("/api/auth/register", json={"email": USER_EMAIL, "password": USER_PASSWORD})
    assert response.status_code == 201
    assert "access_token" in response.cookies
    return ac


@pytest_asyncio.fixture
async def admin_client(app, client_factory):
    """A client logged in as an admin created directly in the database."""
    db = app.state.session_factory()
    try:
        AccountStore(db, app.state.hasher).create(ADMIN_EMAIL, ADMIN_PASSWORD, role=Role.admin)
    finally:
        db.close()

    ac = await client_factory()
    response = await ac.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    assert response.json()["role"] == "admin"
    return ac
