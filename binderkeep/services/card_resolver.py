"""
Card Resolution Service.

Resolves a (card_id, language) request to one catalog CardRecord.

RULES:
1. An exact (card_id, language) match wins
2. No language requested means the default language ("en")
3. Otherwise fall back to the variant with the smallest language code
4. No variant in any language is a CardNotFound failure
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.config import settings
from binderkeep.db.operations import get_card_record, get_card_records
from binderkeep.models.card import CardRecord
from binderkeep.models.failure import CardNotFound

logger = logging.getLogger(__name__)


def pick_language_variant(
    records: list[CardRecord], language: str | None = None
) -> CardRecord | None:
    """
    Choose a variant from all language variants of one card.

    Pure version of the fallback rule, usable on already-loaded records.
    """
    if not records:
        return None
    wanted = language or settings.default_language
    for record in records:
        if record.language == wanted:
            return record
    return min(records, key=lambda record: record.language)


async def resolve_card(
    session: AsyncSession, card_id: str, language: str | None = None
) -> CardRecord:
    """
    Resolve a card request to one catalog record.

    Args:
        session: Open database session
        card_id: Logical card identifier
        language: Requested language, or None for the default

    Returns:
        The exact variant, or the fallback variant

    Raises:
        CardNotFound: If the card has no variant in any language
    """
    wanted = language or settings.default_language

    exact = await get_card_record(session, card_id, wanted)
    if exact is not None:
        return exact

    variants = await get_card_records(session, card_id)
    fallback = pick_language_variant(variants, wanted)
    if fallback is None:
        raise CardNotFound(card_id)

    logger.debug(
        "Card %s has no '%s' variant, falling back to '%s'", card_id, wanted, fallback.language
    )
    return fallback
