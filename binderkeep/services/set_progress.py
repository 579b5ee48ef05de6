"""
Set Completion Reconciler.

Computes, per user and per set, how many distinct cards are owned and
wishlisted against the set's catalog total.

INVARIANTS:
1. Counting is by DISTINCT card_id per set, never by ledger row.
   Two language copies of one card count once.
2. A set with total_cards == 0 is never completed.
3. Progress is derived on every call and never stored.
4. Store failures propagate; there are no partial results.
"""

import logging
from collections.abc import Iterable, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.db.errors import persistence_errors
from binderkeep.db.operations import (
    get_card_sets,
    get_sets,
    select_owned_card_ids,
    select_wishlisted_card_ids,
)
from binderkeep.models.card import CardSet
from binderkeep.models.progress import SetProgress

logger = logging.getLogger(__name__)


def completion_percentage(collected: int, total: int) -> int:
    """
    Integer percentage of a set collected, rounded half up.

    0 for an empty set; never above 100.
    """
    if total <= 0:
        return 0
    percentage = (200 * collected + total) // (2 * total)
    return min(percentage, 100)


def cards_per_set(
    card_ids: Iterable[str], card_sets: Mapping[str, set[str]]
) -> dict[str, set[str]]:
    """
    Group distinct card identifiers by the set they belong to.

    Args:
        card_ids: Card identifiers from ledger rows (duplicates allowed)
        card_sets: Catalog lookup {card_id: {set_id, ...}}

    Returns:
        {set_id: {card_id, ...}}
    """
    by_set: dict[str, set[str]] = {}
    for card_id in set(card_ids):
        for set_id in card_sets.get(card_id, ()):
            by_set.setdefault(set_id, set()).add(card_id)
    return by_set


def reconcile_set_progress(
    sets: Iterable[CardSet],
    owned_by_set: Mapping[str, set[str]],
    wishlisted_by_set: Mapping[str, set[str]],
) -> list[SetProgress]:
    """
    Build SetProgress for each set from per-set distinct card sets.

    Pure function: no store access.
    """
    progress: list[SetProgress] = []
    for card_set in sets:
        total = card_set.total
        collected = len(owned_by_set.get(card_set.set_id, ()))
        wishlisted = len(wishlisted_by_set.get(card_set.set_id, ()))
        progress.append(
            SetProgress(
                set_id=card_set.set_id,
                set_name=card_set.name,
                total_cards=total,
                collected_cards=collected,
                wishlist_cards=wishlisted,
                completion_percentage=completion_percentage(collected, total),
                is_completed=total > 0 and collected >= total,
            )
        )
    return progress


async def load_set_progress(
    session: AsyncSession, user_id: str, set_id: str | None = None
) -> list[SetProgress]:
    """
    Compute set progress for a user.

    Steps:
    1. Load sets (optionally one)
    2. Load owned and wishlisted card ids (two flat queries)
    3. Resolve card ids to sets in one batched catalog lookup
    4. Deduplicate per set and reconcile

    Raises:
        PersistenceError: If any store read fails
        CatalogRecordError: If a catalog set row is invalid
    """
    with persistence_errors("load set progress"):
        sets = await get_sets(session, set_id)
        owned_ids = await select_owned_card_ids(session, user_id)
        wishlisted_ids = await select_wishlisted_card_ids(session, user_id)
        card_sets = await get_card_sets(session, [*owned_ids, *wishlisted_ids])

    progress = reconcile_set_progress(
        sets,
        cards_per_set(owned_ids, card_sets),
        cards_per_set(wishlisted_ids, card_sets),
    )
    logger.debug(
        "Set progress for %s: %d sets, %d owned rows, %d wishlist rows",
        user_id,
        len(progress),
        len(owned_ids),
        len(wishlisted_ids),
    )
    return progress


def single_set_progress(progress: Iterable[SetProgress], set_id: str) -> SetProgress | None:
    """Pick one set's progress out of a full result."""
    for item in progress:
        if item.set_id == set_id:
            return item
    return None
