"""Pytest fixtures: in-memory SQLite database, seeded reward rules, a five-step story."""

from types import SimpleNamespace

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from backend.config.rewards import RewardConfig
from backend.db import Base, get_session
from backend.db import models  # noqa: F401  registers every table on Base.metadata
from backend.db.dao import RewardRuleDAO, StoryDAO, UserDAO
from backend.services.ledger_service import LedgerService
from backend.utils import generate_ulid


@pytest.fixture
async def engine():
    """Single shared in-memory connection for the whole test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite never emits BEGIN itself; SAVEPOINT needs a real transaction
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    """Session factory with the default reward rules seeded."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with get_session(factory) as session:
        await RewardRuleDAO.seed_defaults(session, RewardConfig.DEFAULT_RULES)
    return factory


@pytest.fixture
def uow(session_factory):
    """Open one unit of work (commit on success, rollback on exception)."""
    def _open():
        return get_session(session_factory)
    return _open


@pytest.fixture
def make_user(uow):
    """Create a user, optionally funded through an adjust entry."""
    async def _make(plan="free", coins=0, is_admin=False):
        async with uow() as session:
            user = await UserDAO.create(
                session, f"{generate_ulid().lower()}@example.com", plan=plan, is_admin=is_admin
            )
            if coins:
                await LedgerService.adjust(session, user.id, coins, reason="seed")
        return user.id
    return _make


@pytest.fixture
async def story(uow):
    """
    Five-step story graph:

        start(1) --romance--> romance(2) --horror--> storm(3) --comedy--> harbor(4) --drama--> ending(5)
                 --mystery--> mystery(2) --horror--> storm(3)
    """
    async with uow() as session:
        record = await StoryDAO.create_story(session, "The Lighthouse", slug="the-lighthouse")
        version = await StoryDAO.create_version(session, record.id)

        start = await StoryDAO.create_node(
            session, version.id, 1, "Arrival", "The ferry docks at dusk.", is_start=True
        )
        romance = await StoryDAO.create_node(session, version.id, 2, "The Keeper", "A lantern in the window.")
        mystery = await StoryDAO.create_node(session, version.id, 2, "The Ledger", "Pages torn from a logbook.")
        storm = await StoryDAO.create_node(session, version.id, 3, "Storm", "The sea climbs the rocks.")
        harbor = await StoryDAO.create_node(session, version.id, 4, "Harbor", "Boats knock together.")
        ending = await StoryDAO.create_node(session, version.id, 5, "Dawn", "The light goes out.")

        await StoryDAO.create_choice(session, start.id, "romance", romance.id, "Follow the keeper")
        await StoryDAO.create_choice(session, start.id, "mystery", mystery.id, "Open the logbook")
        await StoryDAO.create_choice(session, romance.id, "horror", storm.id, "Climb the tower")
        await StoryDAO.create_choice(session, mystery.id, "horror", storm.id, "Climb the tower")
        await StoryDAO.create_choice(session, storm.id, "comedy", harbor.id, "Row to shore")
        await StoryDAO.create_choice(session, harbor.id, "drama", ending.id, "Wait for morning")

    return SimpleNamespace(
        id=record.id,
        title=record.title,
        version_id=version.id,
        start=start.id,
        romance=romance.id,
        mystery=mystery.id,
        storm=storm.id,
        harbor=harbor.id,
        ending=ending.id,
    )
