"""
Wishlist Ledger.

Per-user record of wanted cards.

INVARIANTS:
1. At most one entry per (user, card_id)
2. A duplicate add fails with DuplicateWishlistEntry, never upserts
3. Priority is stored as its ordinal (0 low, 1 medium, 2 high)

The duplicate check is read-then-write. Two concurrent adds for the same
card can both pass the read; the UNIQUE(user_id, card_id) constraint on
card_wishlist rejects the second insert, which is reported as the same
DuplicateWishlistEntry.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.db.errors import persistence_errors
from binderkeep.db.operations import (
    count_wishlist,
    delete_wishlist_rows,
    find_wishlist_row,
    get_sets,
    get_wishlist_row,
    insert_wishlist_row,
    select_wishlist_rows,
    update_wishlist_row,
    wishlist_entry_from_row,
)
from binderkeep.models.db import WishlistDB
from binderkeep.models.failure import (
    DuplicateWishlistEntry,
    InvalidLedgerInput,
    LedgerEntryNotFound,
)
from binderkeep.models.ledger import Priority, WishlistEdit, WishlistEntry, normalize_priority
from binderkeep.services.card_resolver import resolve_card

logger = logging.getLogger(__name__)


def _require_card_id(card_id: str) -> str:
    if not card_id or not card_id.strip():
        raise InvalidLedgerInput("A card must be selected.", detail="Empty card_id")
    return card_id.strip()


async def add_wishlist(
    session: AsyncSession,
    user_id: str,
    card_id: str,
    language: str | None = None,
    priority: Priority | str | int | None = None,
    notes: str | None = None,
    price: float | None = None,
) -> WishlistEntry:
    """
    Add a card to the user's wishlist.

    Raises:
        DuplicateWishlistEntry: If the card is already on the wishlist
        CardNotFound: If the card has no variant in any language
        PersistenceError: If the store rejects the insert
    """
    card_id = _require_card_id(card_id)
    if price is not None and price < 0:
        raise InvalidLedgerInput("Price cannot be negative.", detail=f"price={price}")
    ordinal = normalize_priority(priority)

    with persistence_errors("add wishlist"):
        existing = await find_wishlist_row(session, user_id, card_id)
        if existing is not None:
            raise DuplicateWishlistEntry(user_id, card_id)

        record = await resolve_card(session, card_id, language)
        series_id = None
        if record.set_id:
            sets = await get_sets(session, record.set_id)
            series_id = sets[0].series_id if sets else None

        row = WishlistDB(
            user_id=user_id,
            card_id=record.card_id,
            language=record.language,
            set_id=record.set_id,
            series_id=series_id,
            priority=int(ordinal),
            notes=notes,
            price=price,
        )
        try:
            row = await insert_wishlist_row(session, row)
        except IntegrityError as e:
            # Lost the race against a concurrent add of the same card
            raise DuplicateWishlistEntry(user_id, card_id) from e

    logger.info(
        "User %s added %s to wishlist (priority=%s)", user_id, card_id, ordinal.name.lower()
    )
    return wishlist_entry_from_row(row)


async def remove_wishlist(session: AsyncSession, user_id: str, card_id: str) -> None:
    """Remove a card from the user's wishlist. Idempotent."""
    card_id = _require_card_id(card_id)

    with persistence_errors("remove wishlist"):
        deleted = await delete_wishlist_rows(session, user_id, card_id)

    logger.info("User %s removed %s from wishlist (%d entries)", user_id, card_id, deleted)


async def edit_wishlist(
    session: AsyncSession,
    user_id: str,
    entry_id: int,
    fields: WishlistEdit,
) -> WishlistEntry:
    """
    Partially update a wishlist entry by its id.

    Raises:
        LedgerEntryNotFound: If the entry does not exist for this user
        PersistenceError: If the store rejects the update
    """
    changes = fields.changes()

    with persistence_errors("edit wishlist"):
        row = await get_wishlist_row(session, user_id, entry_id)
        if row is None:
            raise LedgerEntryNotFound("wishlist", str(entry_id))
        if changes:
            row = await update_wishlist_row(session, row, changes)

    logger.info("User %s edited wishlist entry %s: %s", user_id, entry_id, sorted(changes))
    return wishlist_entry_from_row(row)


async def list_wishlist(session: AsyncSession, user_id: str) -> list[WishlistEntry]:
    """Get the user's wishlist, newest first."""
    with persistence_errors("list wishlist"):
        rows = await select_wishlist_rows(session, user_id)
    return [wishlist_entry_from_row(row) for row in rows]


async def is_wishlisted(session: AsyncSession, user_id: str, card_id: str) -> bool:
    """Check whether the card is on the user's wishlist."""
    with persistence_errors("check wishlist"):
        return await count_wishlist(session, user_id, card_id) > 0


async def count_wishlisted(session: AsyncSession, user_id: str) -> int:
    """Number of wishlist entries for the user."""
    with persistence_errors("count wishlist"):
        return await count_wishlist(session, user_id)


def priority_breakdown(entries: list[WishlistEntry]) -> dict[str, int]:
    """Count wishlist entries per priority level."""
    breakdown = {priority.name.lower(): 0 for priority in reversed(Priority)}
    for entry in entries:
        breakdown[normalize_priority(entry.priority).name.lower()] += 1
    return breakdown
