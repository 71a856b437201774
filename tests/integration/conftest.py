"""Integration-test fixtures.

Pre-condition: PostgreSQL reachable at DATABASE_URL and ``alembic upgrade head``.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session. Without a reachable database they are skipped.
"""

import uuid
from datetime import UTC, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.main import app
from src.tl_common.database import async_session_factory, engine
from src.tl_gateway.auth.jwt_handler import create_access_token


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def database() -> None:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1 FROM token_purchases LIMIT 1"))
    except (OSError, SQLAlchemyError) as exc:
        pytest.skip(f"ledger database not available: {exc}")


_PURCHASE_SQL = text("""
    INSERT INTO token_purchases
        (id, total_tokens, total_payment, meter_reading, purchase_date, is_emergency)
    VALUES (:id, :total_tokens, :total_payment, :meter_reading, :purchase_date, :is_emergency)
""")

_CONTRIBUTION_SQL = text("""
    INSERT INTO user_contributions
        (id, purchase_id, user_id, contribution_amount, meter_reading, tokens_consumed)
    VALUES (:id, :purchase_id, :user_id, :contribution_amount, :meter_reading, :tokens_consumed)
""")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def seeded_ledger(database: None) -> dict[str, str]:
    """Two purchases in January/February 2000 with one member's contributions.

    The year keeps them ahead of any real data so the first one is the
    ledger's earliest purchase. Everything is removed afterwards.
    """
    run = uuid.uuid4().hex[:8]
    ids = {
        "member": f"it_member_{run}",
        "first": f"it_pa_{run}",
        "second": f"it_pb_{run}",
    }
    async with async_session_factory() as db:
        await db.execute(_PURCHASE_SQL, {
            "id": ids["first"], "total_tokens": 100.0, "total_payment": 20.0,
            "meter_reading": 1000.0, "purchase_date": datetime(2000, 1, 1, 8, tzinfo=UTC),
            "is_emergency": False,
        })
        await db.execute(_PURCHASE_SQL, {
            "id": ids["second"], "total_tokens": 200.0, "total_payment": 50.0,
            "meter_reading": 1100.0, "purchase_date": datetime(2000, 2, 1, 8, tzinfo=UTC),
            "is_emergency": False,
        })
        await db.execute(_CONTRIBUTION_SQL, {
            "id": f"it_ca_{run}", "purchase_id": ids["first"], "user_id": ids["member"],
            "contribution_amount": 10.0, "meter_reading": 1000.0, "tokens_consumed": 40.0,
        })
        await db.execute(_CONTRIBUTION_SQL, {
            "id": f"it_cb_{run}", "purchase_id": ids["second"], "user_id": ids["member"],
            "contribution_amount": 18.0, "meter_reading": 1100.0, "tokens_consumed": 80.0,
        })
        await db.commit()

    yield ids

    async with async_session_factory() as db:
        await db.execute(
            text("DELETE FROM meter_readings WHERE user_id = :uid"), {"uid": ids["member"]}
        )
        await db.execute(
            text("DELETE FROM token_purchases WHERE id IN (:a, :b)"),
            {"a": ids["first"], "b": ids["second"]},
        )
        await db.commit()


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def auth_client(client: AsyncClient, seeded_ledger: dict[str, str]) -> AsyncClient:
    """Client authenticated as the seeded member."""
    token = create_access_token(seeded_ledger["member"])
    client.headers.update({"Authorization": f"Bearer {token}"})
    return client
