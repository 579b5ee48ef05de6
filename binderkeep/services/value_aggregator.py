"""
Value Aggregator.

Sums manual (user-entered) and automatic (externally sourced) prices
across a ledger. No currency conversion is performed.
"""

from collections.abc import Iterable, Mapping

from binderkeep.config import settings
from binderkeep.models.ledger import OwnershipEntry, WishlistEntry
from binderkeep.models.value import CurrentPrice, ValueSummary


def _has_price(value: float | None) -> bool:
    return value is not None and value > 0


def aggregate_value(
    entries: Iterable[OwnershipEntry | WishlistEntry],
    current_prices: Mapping[str, CurrentPrice],
    automatic_currency: str | None = None,
    weight_by_quantity: bool = True,
) -> ValueSummary:
    """
    Aggregate a ledger's value.

    Args:
        entries: Ownership or wishlist entries
        current_prices: Latest external price per card_id
        automatic_currency: Currency summed into automatic_total
            (defaults to settings.automatic_price_currency)
        weight_by_quantity: Multiply by OwnershipEntry.quantity

    Returns:
        ValueSummary. Card counts are by distinct card_id; a missing or
        non-positive price counts as no price.
    """
    automatic_currency = automatic_currency or settings.automatic_price_currency
    summary = ValueSummary(
        manual_currency=settings.manual_price_currency,
        automatic_currency=automatic_currency,
    )

    all_ids: set[str] = set()
    manual_ids: set[str] = set()
    automatic_ids: set[str] = set()

    for entry in entries:
        all_ids.add(entry.card_id)
        quantity = 1
        if weight_by_quantity and isinstance(entry, OwnershipEntry):
            quantity = max(entry.quantity, 1)

        if _has_price(entry.price):
            summary.manual_total += entry.price * quantity  # type: ignore[operator]
            manual_ids.add(entry.card_id)

        current = current_prices.get(entry.card_id)
        if current is None or not _has_price(current.price):
            continue
        if current.currency == automatic_currency:
            summary.automatic_total += current.price * quantity
            automatic_ids.add(entry.card_id)
        else:
            totals = summary.other_currency_totals
            totals[current.currency] = totals.get(current.currency, 0.0) + current.price * quantity

    summary.total_cards = len(all_ids)
    summary.cards_with_manual_price = len(manual_ids)
    summary.cards_with_automatic_price = len(automatic_ids)
    summary.cards_both_prices = len(manual_ids & automatic_ids)
    return summary
