"""Tests for ledger value aggregation."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.db.operations import get_current_prices
from binderkeep.models.ledger import CardSnapshot, OwnershipEntry, WishlistEntry
from binderkeep.models.value import CurrentPrice
from binderkeep.services.value_aggregator import aggregate_value

USER = "user-1"


def owned(card_id: str, price: float | None = None, quantity: int = 1) -> OwnershipEntry:
    return OwnershipEntry(
        user_id=USER,
        card_id=card_id,
        language="en",
        snapshot=CardSnapshot(language="en"),
        price=price,
        quantity=quantity,
    )


def usd(card_id: str, price: float) -> CurrentPrice:
    return CurrentPrice(card_id, price, "USD", "tcgplayer", "normal_market")


class TestAggregateValue:
    def test_manual_and_automatic_totals(self) -> None:
        """Manual 10+20 over two cards, automatic 20+20 over two, one card has both."""
        entries = [owned("a", price=10.0), owned("b", price=20.0), owned("c")]
        prices = {"a": usd("a", 20.0), "c": usd("c", 20.0)}

        summary = aggregate_value(entries, prices)

        assert summary.manual_total == 30.0
        assert summary.cards_with_manual_price == 2
        assert summary.automatic_total == 40.0
        assert summary.cards_with_automatic_price == 2
        assert summary.cards_both_prices == 1
        assert summary.total_cards == 3
        assert summary.manual_value_per_card == 15.0
        assert summary.automatic_value_per_card == 20.0
        assert summary.manual_currency == "EUR"
        assert summary.automatic_currency == "USD"

    def test_zero_and_missing_prices_are_not_prices(self) -> None:
        entries = [owned("a", price=0.0), owned("b")]
        prices = {"a": usd("a", 0.0)}

        summary = aggregate_value(entries, prices)

        assert summary.manual_total == 0.0
        assert summary.cards_with_manual_price == 0
        assert summary.cards_with_automatic_price == 0
        assert summary.manual_value_per_card == 0.0

    def test_quantity_weights_ownership(self) -> None:
        summary = aggregate_value([owned("a", price=2.0, quantity=3)], {"a": usd("a", 1.5)})

        assert summary.manual_total == 6.0
        assert summary.automatic_total == 4.5
        assert summary.cards_with_manual_price == 1

    def test_quantity_weighting_can_be_disabled(self) -> None:
        summary = aggregate_value(
            [owned("a", price=2.0, quantity=3)], {}, weight_by_quantity=False
        )

        assert summary.manual_total == 2.0

    def test_language_copies_count_as_one_card(self) -> None:
        entries = [owned("a", price=1.0), owned("a", price=2.0)]

        summary = aggregate_value(entries, {})

        assert summary.total_cards == 1
        assert summary.cards_with_manual_price == 1
        assert summary.manual_total == 3.0

    def test_other_currencies_are_kept_apart(self) -> None:
        eur = CurrentPrice("b", 5.0, "EUR", "cardmarket", "averageSellPrice")

        summary = aggregate_value([owned("a"), owned("b")], {"a": usd("a", 2.0), "b": eur})

        assert summary.automatic_total == 2.0
        assert summary.other_currency_totals == {"EUR": 5.0}
        assert summary.cards_with_automatic_price == 1

    def test_wishlist_entries_count_once(self) -> None:
        entries = [WishlistEntry(USER, "a", "en", price=4.0)]

        summary = aggregate_value(entries, {"a": usd("a", 3.0)})

        assert summary.manual_total == 4.0
        assert summary.automatic_total == 3.0

    def test_empty(self) -> None:
        summary = aggregate_value([], {})

        assert summary.total_cards == 0
        assert summary.automatic_value_per_card == 0.0


@pytest.mark.usefixtures("catalog")
class TestCurrentPrices:
    async def test_latest_observation_wins(self, session: AsyncSession) -> None:
        prices = await get_current_prices(session, ["base1-1"])

        assert prices["base1-1"].price == 20.0
        assert prices["base1-1"].currency == "USD"

    async def test_falls_back_to_second_source(self, session: AsyncSession) -> None:
        prices = await get_current_prices(session, ["base1-2"])

        assert prices["base1-2"].source == "cardmarket"
        assert prices["base1-2"].currency == "EUR"

    async def test_cards_without_prices_are_omitted(self, session: AsyncSession) -> None:
        prices = await get_current_prices(session, ["jungle-2", "missing"])

        assert prices == {}
