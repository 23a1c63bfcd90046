"""Integration-test fixtures.

Requires a running PostgreSQL with migrations applied (``alembic upgrade head``)
and SX_INTEGRATION=1; otherwise every test in this directory is skipped.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across
the entire test session.
"""

import os
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.main import app
from src.sx_common.database import async_session_factory
from tests.integration.support import SeededGame

_HERE = Path(__file__).parent
_STARTING_CASH = 1_000_000  # $10,000


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.environ.get("SX_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set SX_INTEGRATION=1 against a migrated database")
    for item in items:
        if _HERE in item.path.parents:
            item.add_marker(skip)


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client — keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def seeded_game() -> SeededGame:
    """An open game with one founder, one angel and one VC, all active."""
    game_id = f"it-{uuid.uuid4().hex[:10]}"
    seeded = SeededGame(game_id=game_id, owner_user_id=f"{game_id}-owner")
    now = datetime.now(UTC)

    async with async_session_factory() as db:
        await db.execute(
            text("INSERT INTO users (id, email, display_name) VALUES (:id, :email, :name)"),
            {"id": seeded.owner_user_id, "email": f"{seeded.owner_user_id}@example.com",
             "name": "Owner"},
        )
        await db.execute(
            text("""
                INSERT INTO games (id, name, owner_user_id, status, starts_at, ends_at)
                VALUES (:id, 'Integration Day', :owner, 'open', :starts_at, :ends_at)
            """),
            {"id": game_id, "owner": seeded.owner_user_id,
             "starts_at": now - timedelta(hours=1), "ends_at": now + timedelta(hours=2)},
        )
        for role in ("founder", "angel", "vc"):
            user_id = f"{game_id}-{role}"
            email = f"{user_id}@example.com"
            participant_id = f"{game_id}-p-{role}"
            cash = 0 if role == "founder" else _STARTING_CASH
            await db.execute(
                text("INSERT INTO users (id, email, display_name) VALUES (:id, :email, :name)"),
                {"id": user_id, "email": email, "name": f"{role.title()} {game_id}"},
            )
            await db.execute(
                text("""
                    INSERT INTO participants
                        (id, game_id, user_id, role, status, initial_budget, current_cash)
                    VALUES (:id, :game_id, :user_id, :role, 'active', :cash, :cash)
                """),
                {"id": participant_id, "game_id": game_id, "user_id": user_id,
                 "role": role, "cash": cash},
            )
            seeded.participant_ids[role] = participant_id
            seeded.emails[role] = email
        await db.commit()
    return seeded
