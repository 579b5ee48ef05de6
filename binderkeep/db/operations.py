"""
Database CRUD operations.

The narrow store interface consumed by the ledgers and the reconciler:
filtered select / count / insert / update / delete over the catalog and
ledger tables. Functions here do not commit; the caller owns the
transaction.
"""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.config import PREFERRED_PRICE_SOURCES
from binderkeep.models.card import CardRecord, CardSet
from binderkeep.models.db import CardDB, CardSetDB, OwnershipDB, PriceHistoryDB, WishlistDB
from binderkeep.models.failure import CatalogRecordError
from binderkeep.models.ledger import CardSnapshot, OwnershipEntry, WishlistEntry, normalize_priority
from binderkeep.models.value import CurrentPrice

# --- Row conversion ---


def card_record_from_row(row: CardDB) -> CardRecord:
    """
    Convert a catalog row to a CardRecord.

    Raises CatalogRecordError if the row has no identifier or language.
    """
    if not row.card_id or not row.card_id.strip():
        raise CatalogRecordError("Catalog card row without card_id")
    if not row.language or not row.language.strip():
        raise CatalogRecordError(f"Catalog card '{row.card_id}' has no language")

    return CardRecord(
        card_id=row.card_id,
        language=row.language,
        set_id=row.set_id,
        name=row.name,
        rarity=row.rarity,
        set_name=row.set_name,
        card_number=row.card_number,
        image_url=row.image_url,
        illustrator=row.illustrator,
        stats=dict(row.stats or {}),
    )


def card_set_from_row(row: CardSetDB) -> CardSet:
    """Convert a catalog set row to a CardSet. Missing totals count as 0."""
    if not row.set_id:
        raise CatalogRecordError("Catalog set row without set_id")
    total = row.total or 0
    if total < 0:
        raise CatalogRecordError(f"Set '{row.set_id}' has negative total {total}")

    return CardSet(
        set_id=row.set_id,
        name=row.name or row.set_id,
        total=total,
        series_id=row.series_id,
        series_name=row.series_name,
    )


def ownership_entry_from_row(row: OwnershipDB) -> OwnershipEntry:
    """Convert an ownership row to a domain entry."""
    return OwnershipEntry(
        id=row.id,
        user_id=row.user_id,
        card_id=row.card_id,
        language=row.language,
        snapshot=CardSnapshot(
            language=row.language,
            name=row.name,
            set_id=row.set_id,
            set_name=row.set_name,
            rarity=row.rarity,
            card_number=row.card_number,
            image_url=row.image_url,
            stats=dict(row.stats or {}),
        ),
        condition=row.condition,
        price=row.price,
        notes=row.notes,
        acquired_date=row.acquired_date,
        quantity=row.quantity or 1,
        created_at=row.created_at,
    )


def wishlist_entry_from_row(row: WishlistDB) -> WishlistEntry:
    """Convert a wishlist row to a domain entry."""
    return WishlistEntry(
        id=row.id,
        user_id=row.user_id,
        card_id=row.card_id,
        language=row.language,
        priority=normalize_priority(row.priority),
        set_id=row.set_id,
        series_id=row.series_id,
        price=row.price,
        notes=row.notes,
        created_at=row.created_at,
    )


# --- Catalog Operations ---


async def get_card_record(session: AsyncSession, card_id: str, language: str) -> CardRecord | None:
    """Get one language variant of a card, or None."""
    result = await session.execute(
        select(CardDB).where(CardDB.card_id == card_id, CardDB.language == language)
    )
    row = result.scalar_one_or_none()
    return card_record_from_row(row) if row else None


async def get_card_records(session: AsyncSession, card_id: str) -> list[CardRecord]:
    """Get every language variant of a card, ordered by language code."""
    result = await session.execute(
        select(CardDB).where(CardDB.card_id == card_id).order_by(CardDB.language.asc())
    )
    return [card_record_from_row(row) for row in result.scalars().all()]


async def get_card_sets(session: AsyncSession, card_ids: Iterable[str]) -> dict[str, set[str]]:
    """
    Batched lookup of the set(s) each card belongs to.

    Returns {card_id: {set_id, ...}}. Cards with no set are omitted.
    """
    ids = sorted(set(card_ids))
    if not ids:
        return {}

    result = await session.execute(
        select(CardDB.card_id, CardDB.set_id).where(CardDB.card_id.in_(ids)).distinct()
    )
    lookup: dict[str, set[str]] = {}
    for card_id, set_id in result.all():
        if not card_id or not set_id:
            continue
        lookup.setdefault(card_id, set()).add(set_id)
    return lookup


async def get_sets(session: AsyncSession, set_id: str | None = None) -> list[CardSet]:
    """Get all sets ordered by name, or just one if set_id is given."""
    query = select(CardSetDB).order_by(CardSetDB.name.asc())
    if set_id is not None:
        query = query.where(CardSetDB.set_id == set_id)
    result = await session.execute(query)
    return [card_set_from_row(row) for row in result.scalars().all()]


async def get_current_prices(
    session: AsyncSession, card_ids: Iterable[str]
) -> dict[str, CurrentPrice]:
    """
    Get the current external price for each card.

    Takes the latest observation per (card, source, price_type), then picks
    the first available source in PREFERRED_PRICE_SOURCES order.
    Cards without a preferred price are omitted.
    """
    ids = sorted(set(card_ids))
    if not ids:
        return {}

    result = await session.execute(
        select(PriceHistoryDB)
        .where(PriceHistoryDB.card_id.in_(ids))
        .order_by(PriceHistoryDB.recorded_at.desc(), PriceHistoryDB.id.desc())
    )

    latest: dict[tuple[str, str, str, str], PriceHistoryDB] = {}
    for row in result.scalars().all():
        key = (row.card_id, row.source, row.price_type, row.currency)
        latest.setdefault(key, row)

    prices: dict[str, CurrentPrice] = {}
    for card_id in ids:
        for source, price_type, currency in PREFERRED_PRICE_SOURCES:
            row = latest.get((card_id, source, price_type, currency))
            if row is None:
                continue
            prices[card_id] = CurrentPrice(
                card_id=card_id,
                price=row.price,
                currency=row.currency,
                source=row.source,
                price_type=row.price_type,
                recorded_at=row.recorded_at,
            )
            break
    return prices


async def insert_price_rows(session: AsyncSession, rows: list[PriceHistoryDB]) -> int:
    """Insert price observations. Returns the number inserted."""
    session.add_all(rows)
    await session.flush()
    return len(rows)


# --- Ownership Operations ---


async def select_ownership_rows(
    session: AsyncSession, user_id: str, card_id: str | None = None
) -> list[OwnershipDB]:
    """Get a user's ownership rows, newest first, optionally for one card."""
    query = select(OwnershipDB).where(OwnershipDB.user_id == user_id)
    if card_id is not None:
        query = query.where(OwnershipDB.card_id == card_id)
    result = await session.execute(
        query.order_by(OwnershipDB.created_at.desc(), OwnershipDB.id.desc())
    )
    return list(result.scalars().all())


async def select_owned_card_ids(session: AsyncSession, user_id: str) -> list[str]:
    """Get the card_id of every ownership row (one per row, not distinct)."""
    result = await session.execute(
        select(OwnershipDB.card_id).where(OwnershipDB.user_id == user_id)
    )
    return list(result.scalars().all())


async def insert_ownership_row(session: AsyncSession, row: OwnershipDB) -> OwnershipDB:
    """Insert an ownership row and load its server-generated columns."""
    session.add(row)
    await session.flush()
    await session.refresh(row)
    return row


async def update_ownership_rows(
    session: AsyncSession,
    user_id: str,
    card_id: str,
    changes: dict[str, Any],
    language: str | None = None,
) -> list[OwnershipDB]:
    """
    Apply changes to every ownership row for (user, card).

    If language is given, only that variant is updated.
    Returns the updated rows (empty if none matched).
    """
    rows = await select_ownership_rows(session, user_id, card_id)
    if language is not None:
        rows = [row for row in rows if row.language == language]

    for row in rows:
        for name, value in changes.items():
            setattr(row, name, value)

    await session.flush()
    return rows


async def delete_ownership_rows(session: AsyncSession, user_id: str, card_id: str) -> int:
    """
    Delete every ownership row for (user, card), regardless of language.

    Returns the number of deleted records.
    """
    result = await session.execute(
        delete(OwnershipDB).where(OwnershipDB.user_id == user_id, OwnershipDB.card_id == card_id)
    )
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount)  # type: ignore[attr-defined]


async def count_ownership(session: AsyncSession, user_id: str, card_id: str | None = None) -> int:
    """Count a user's ownership rows, optionally for one card."""
    query = select(func.count()).select_from(OwnershipDB).where(OwnershipDB.user_id == user_id)
    if card_id is not None:
        query = query.where(OwnershipDB.card_id == card_id)
    result = await session.execute(query)
    return int(result.scalar_one())


# --- Wishlist Operations ---


async def select_wishlist_rows(
    session: AsyncSession, user_id: str, card_id: str | None = None
) -> list[WishlistDB]:
    """Get a user's wishlist rows, newest first, optionally for one card."""
    query = select(WishlistDB).where(WishlistDB.user_id == user_id)
    if card_id is not None:
        query = query.where(WishlistDB.card_id == card_id)
    result = await session.execute(
        query.order_by(WishlistDB.created_at.desc(), WishlistDB.id.desc())
    )
    return list(result.scalars().all())


async def select_wishlisted_card_ids(session: AsyncSession, user_id: str) -> list[str]:
    """Get the card_id of every wishlist row."""
    result = await session.execute(select(WishlistDB.card_id).where(WishlistDB.user_id == user_id))
    return list(result.scalars().all())


async def get_wishlist_row(session: AsyncSession, user_id: str, entry_id: int) -> WishlistDB | None:
    """Get a wishlist row by its id, only if it belongs to the user."""
    result = await session.execute(
        select(WishlistDB).where(WishlistDB.id == entry_id, WishlistDB.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def find_wishlist_row(session: AsyncSession, user_id: str, card_id: str) -> WishlistDB | None:
    """Get the wishlist row for (user, card), if any."""
    result = await session.execute(
        select(WishlistDB)
        .where(WishlistDB.user_id == user_id, WishlistDB.card_id == card_id)
        .order_by(WishlistDB.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def insert_wishlist_row(session: AsyncSession, row: WishlistDB) -> WishlistDB:
    """
    Insert a wishlist row and load its server-generated columns.

    Raises IntegrityError if (user, card) already has a row.
    """
    session.add(row)
    await session.flush()
    await session.refresh(row)
    return row


async def update_wishlist_row(
    session: AsyncSession, row: WishlistDB, changes: dict[str, Any]
) -> WishlistDB:
    """Apply changes to a wishlist row."""
    for name, value in changes.items():
        setattr(row, name, value)
    await session.flush()
    return row


async def delete_wishlist_rows(session: AsyncSession, user_id: str, card_id: str) -> int:
    """Delete the wishlist row(s) for (user, card). Returns the count."""
    result = await session.execute(
        delete(WishlistDB).where(WishlistDB.user_id == user_id, WishlistDB.card_id == card_id)
    )
    return int(result.rowcount)  # type: ignore[attr-defined]


async def count_wishlist(session: AsyncSession, user_id: str, card_id: str | None = None) -> int:
    """Count a user's wishlist rows, optionally for one card."""
    query = select(func.count()).select_from(WishlistDB).where(WishlistDB.user_id == user_id)
    if card_id is not None:
        query = query.where(WishlistDB.card_id == card_id)
    result = await session.execute(query)
    return int(result.scalar_one())
