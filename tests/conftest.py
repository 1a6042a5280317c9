"""
Test fixtures for the beep.money test suite.

This module provides shared fixtures used across all test files:

  - db_engine / db_session: Fresh in-memory SQLite database for each test
  - fake_teller: In-memory stand-in for the Teller API
  - fake_email: Records every email instead of sending it
  - client: Async HTTP test client (unauthenticated) wired to all of the above
  - authenticated_client: Test client signed in through the real magic-link flow
  - sign_in: Helper to sign in additional users for multi-user tests

Key design decisions:
  - Required settings are set in the environment before the app is
    imported, since beep.config reads them at import time.
  - In-memory SQLite (sqlite+aiosqlite://) is used for speed and isolation.
    Each test gets a completely fresh database — no state leaks between tests.
  - FastAPI dependencies (get_db, get_session_factory, get_teller_client,
    get_email_client) are overridden, so the application code runs exactly
    as it does in production against fake collaborators.
"""

import os

from cryptography.fernet import Fernet

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("TOKEN_ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("REPORT_TIMEZONE", "UTC")
# One user at a time: every session shares the single in-memory connection
os.environ.setdefault("REPORT_CONCURRENCY", "1")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from beep.database import Base, get_db, get_session_factory  # noqa: E402
from beep.dependencies import get_email_client, get_teller_client  # noqa: E402
from beep.exceptions import EmailDeliveryError, ProviderError  # noqa: E402
from beep.main import app  # noqa: E402
from beep.schemas.teller import parse_accounts, parse_transactions  # noqa: E402
from helpers import extract_magic_token  # noqa: E402


# In-memory SQLite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------

class FakeTeller:
    """
    Stand-in for TellerClient.

    Tests populate:
      accounts[access_token]      -> raw Teller account dicts
      transactions[account_id]    -> raw Teller transaction dicts
      failing_accounts            -> account ids whose fetch raises
      fail_account_listing        -> make list_accounts raise

    Raw payloads go through the real parsers, so malformed records are
    quarantined exactly as they would be in production.
    """

    def __init__(self):
        self.accounts: dict[str, list[dict]] = {}
        self.transactions: dict[str, list[dict]] = {}
        self.failing_accounts: set[str] = set()
        self.fail_account_listing = False
        self.transaction_calls: list[tuple[str, str]] = []

    async def list_accounts(self, access_token):
        if self.fail_account_listing:
            raise ProviderError("Teller returned 503 for /accounts", status=503)
        return parse_accounts(self.accounts.get(access_token, []))

    async def list_transactions(self, access_token, account_id, from_date=None, to_date=None, count=None):
        self.transaction_calls.append((access_token, account_id))
        if account_id in self.failing_accounts:
            raise ProviderError(f"Teller returned 500 for /accounts/{account_id}/transactions", status=500)
        transactions = parse_transactions(self.transactions.get(account_id, []))
        if from_date:
            transactions = [tx for tx in transactions if tx.date >= from_date]
        if to_date:
            transactions = [tx for tx in transactions if tx.date <= to_date]
        return transactions


class FakeEmail:
    """Stand-in for EmailClient that records messages."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_for: set[str] = set()

    async def send(self, to, subject, html):
        if to in self.fail_for:
            raise EmailDeliveryError("Failed to send email: mailbox unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"msg_{len(self.sent)}"

    def last_to(self, address):
        return [m for m in self.sent if m["to"] == address][-1]


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Provide an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_teller():
    return FakeTeller()


@pytest.fixture
def fake_email():
    return FakeEmail()


@pytest_asyncio.fixture
async def client(session_factory, fake_teller, fake_email):
    """
    Async HTTP test client with the test database and fakes injected.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_teller_client] = lambda: fake_teller
    app.dependency_overrides[get_email_client] = lambda: fake_email

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def sign_in(client, fake_email):
    """
    Return a coroutine that signs a user in through the magic-link flow
    and returns Authorization headers for them.
    """

    async def _sign_in(email="testuser@example.com", first_name="Test"):
        response = await client.post(
            "/auth/magic-link", json={"email": email, "first_name": first_name}
        )
        assert response.status_code == 202, f"Magic link failed: {response.text}"
        token = extract_magic_token(fake_email.last_to(email)["html"])

        response = await client.get("/auth/callback", params={"token": token})
        assert response.status_code == 200, f"Callback failed: {response.text}"
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _sign_in


@pytest_asyncio.fixture
async def authenticated_client(client, sign_in):
    """Test client signed in as testuser@example.com."""
    client.headers.update(await sign_in())
    return client
