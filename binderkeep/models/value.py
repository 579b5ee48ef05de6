from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class CurrentPrice:
    """Latest externally sourced price for a card."""

    card_id: str
    price: float
    currency: str
    source: str
    price_type: str
    recorded_at: datetime | None = None


@dataclass
class ValueSummary:
    """
    Value of a ledger, split by price origin.

    Manual (user-entered) and automatic (externally sourced) totals are
    kept apart and reported in their own currencies. Automatic prices in
    any currency other than `automatic_currency` are reported in
    `other_currency_totals` and never added to `automatic_total`.
    """

    manual_total: float = 0.0
    manual_currency: str = "EUR"
    automatic_total: float = 0.0
    automatic_currency: str = "USD"
    total_cards: int = 0
    cards_with_manual_price: int = 0
    cards_with_automatic_price: int = 0
    cards_both_prices: int = 0
    other_currency_totals: dict[str, float] = field(default_factory=dict)

    @property
    def manual_value_per_card(self) -> float:
        if self.cards_with_manual_price == 0:
            return 0.0
        return self.manual_total / self.cards_with_manual_price

    @property
    def automatic_value_per_card(self) -> float:
        if self.cards_with_automatic_price == 0:
            return 0.0
        return self.automatic_total / self.cards_with_automatic_price
