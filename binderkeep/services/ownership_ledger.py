"""
Ownership Ledger.

Per-user record of owned cards. Each entry references a catalog card by
(card_id, language) and carries a frozen copy of the catalog's display
fields taken when the card was added.

INVARIANTS:
1. Several entries per card_id are allowed when they differ in language
2. Removal deletes every language variant and is idempotent
3. Store failures surface as PersistenceError
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.db.errors import persistence_errors
from binderkeep.db.operations import (
    count_ownership,
    delete_ownership_rows,
    insert_ownership_row,
    ownership_entry_from_row,
    select_ownership_rows,
    update_ownership_rows,
)
from binderkeep.models.db import OwnershipDB
from binderkeep.models.failure import InvalidLedgerInput, LedgerEntryNotFound
from binderkeep.models.ledger import (
    CardSnapshot,
    OwnershipEdit,
    OwnershipEntry,
    OwnershipMetadata,
)
from binderkeep.services.card_resolver import resolve_card

logger = logging.getLogger(__name__)


def _require_card_id(card_id: str) -> str:
    if not card_id or not card_id.strip():
        raise InvalidLedgerInput("A card must be selected.", detail="Empty card_id")
    return card_id.strip()


async def add_ownership(
    session: AsyncSession,
    user_id: str,
    card_id: str,
    language: str | None = None,
    metadata: OwnershipMetadata | None = None,
) -> OwnershipEntry:
    """
    Add a card to the user's collection.

    The catalog record is resolved with language fallback and its display
    fields are copied onto the new entry.

    Raises:
        CardNotFound: If the card has no variant in any language
        PersistenceError: If the store rejects the insert
    """
    card_id = _require_card_id(card_id)
    metadata = metadata or OwnershipMetadata()

    with persistence_errors("add ownership"):
        record = await resolve_card(session, card_id, language)
        snapshot = CardSnapshot.from_record(record)

        row = OwnershipDB(
            user_id=user_id,
            card_id=record.card_id,
            language=record.language,
            name=snapshot.name,
            set_id=snapshot.set_id,
            set_name=snapshot.set_name,
            rarity=snapshot.rarity,
            card_number=snapshot.card_number,
            image_url=snapshot.image_url,
            stats=dict(snapshot.stats),
            condition=metadata.condition,
            price=metadata.price,
            notes=metadata.notes,
            acquired_date=metadata.acquired_date,
            quantity=metadata.quantity,
        )
        row = await insert_ownership_row(session, row)

    logger.info("User %s added %s (%s) to collection", user_id, card_id, record.language)
    return ownership_entry_from_row(row)


async def remove_ownership(session: AsyncSession, user_id: str, card_id: str) -> None:
    """
    Remove a card from the user's collection, in every language.

    Removing a card that is not in the collection is not an error.
    """
    card_id = _require_card_id(card_id)

    with persistence_errors("remove ownership"):
        deleted = await delete_ownership_rows(session, user_id, card_id)

    logger.info("User %s removed %s from collection (%d entries)", user_id, card_id, deleted)


async def edit_ownership(
    session: AsyncSession,
    user_id: str,
    card_id: str,
    fields: OwnershipEdit,
) -> OwnershipEntry:
    """
    Partially update the user's entry for a card.

    Entries are matched by (user, card) because the entry id may not be
    known client-side. Only fields explicitly set on `fields` change.
    When `fields.language` is set it re-labels every matched entry.

    Raises:
        LedgerEntryNotFound: If the user does not own the card
        PersistenceError: If the store rejects the update
    """
    card_id = _require_card_id(card_id)
    changes = fields.changes()

    with persistence_errors("edit ownership"):
        if changes:
            rows = await update_ownership_rows(session, user_id, card_id, changes)
        else:
            rows = await select_ownership_rows(session, user_id, card_id)

    if not rows:
        raise LedgerEntryNotFound("collection", card_id)

    logger.info("User %s edited %s in collection: %s", user_id, card_id, sorted(changes))
    return ownership_entry_from_row(rows[0])


async def list_ownership(session: AsyncSession, user_id: str) -> list[OwnershipEntry]:
    """Get the user's collection, newest first."""
    with persistence_errors("list ownership"):
        rows = await select_ownership_rows(session, user_id)
    return [ownership_entry_from_row(row) for row in rows]


async def is_owned(session: AsyncSession, user_id: str, card_id: str) -> bool:
    """Check whether the user owns any language variant of a card."""
    with persistence_errors("check ownership"):
        return await count_ownership(session, user_id, card_id) > 0


async def count_owned(session: AsyncSession, user_id: str) -> int:
    """Number of ownership entries (rows, not distinct cards) for the user."""
    with persistence_errors("count ownership"):
        return await count_ownership(session, user_id)
