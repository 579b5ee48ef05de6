from collections.abc import AsyncIterator
from datetime import UTC, datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from binderkeep.models.db import Base, CardDB, CardSetDB, PriceHistoryDB


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Create an in-memory SQLite engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def catalog(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """
    Seed a small catalog.

    base1 (3 cards): base1-1 in en+de, base1-2 in en, base1-3 in de+fr only
    jungle (2 cards): jungle-1, jungle-2 in en
    promo: total unknown (0)
    """
    async with session_factory() as session:
        session.add_all(
            [
                CardSetDB(set_id="base1", name="Base Set", total=3, series_id="base"),
                CardSetDB(set_id="jungle", name="Jungle", total=2, series_id="base"),
                CardSetDB(set_id="promo", name="Promo", total=None),
                CardDB(
                    card_id="base1-1",
                    language="en",
                    set_id="base1",
                    set_name="Base Set",
                    name="Alakazam",
                    rarity="Rare Holo",
                    card_number="1",
                    stats={"hp": 80, "types": ["Psychic"]},
                ),
                CardDB(
                    card_id="base1-1",
                    language="de",
                    set_id="base1",
                    set_name="Grundset",
                    name="Simsala",
                    rarity="Rare Holo",
                    card_number="1",
                ),
                CardDB(
                    card_id="base1-2",
                    language="en",
                    set_id="base1",
                    set_name="Base Set",
                    name="Blastoise",
                    card_number="2",
                ),
                CardDB(
                    card_id="base1-3",
                    language="fr",
                    set_id="base1",
                    set_name="Set de Base",
                    name="Leviator",
                    card_number="3",
                ),
                CardDB(
                    card_id="base1-3",
                    language="de",
                    set_id="base1",
                    set_name="Grundset",
                    name="Garados",
                    card_number="3",
                ),
                CardDB(card_id="jungle-1", language="en", set_id="jungle", name="Clefable"),
                CardDB(card_id="jungle-2", language="en", set_id="jungle", name="Electrode"),
                PriceHistoryDB(
                    card_id="base1-1",
                    source="tcgplayer",
                    price_type="normal_market",
                    price=15.0,
                    currency="USD",
                    recorded_at=datetime(2024, 1, 1, tzinfo=UTC),
                ),
                PriceHistoryDB(
                    card_id="base1-1",
                    source="tcgplayer",
                    price_type="normal_market",
                    price=20.0,
                    currency="USD",
                    recorded_at=datetime(2024, 2, 1, tzinfo=UTC),
                ),
                PriceHistoryDB(
                    card_id="base1-2",
                    source="cardmarket",
                    price_type="averageSellPrice",
                    price=5.0,
                    currency="EUR",
                    recorded_at=datetime(2024, 2, 1, tzinfo=UTC),
                ),
                PriceHistoryDB(
                    card_id="jungle-1",
                    source="tcgplayer",
                    price_type="normal_market",
                    price=4.0,
                    currency="USD",
                    recorded_at=datetime(2024, 2, 1, tzinfo=UTC),
                ),
            ]
        )
        await session.commit()


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], catalog: None
) -> AsyncIterator[AsyncClient]:
    """Provide an async test client over the seeded catalog."""
    from binderkeep.db.database import get_session
    from binderkeep.main import app

    async def override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
