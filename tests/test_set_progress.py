"""Tests for set completion."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.models.card import CardSet
from binderkeep.services.ownership_ledger import add_ownership
from binderkeep.services.set_progress import (
    cards_per_set,
    completion_percentage,
    load_set_progress,
    reconcile_set_progress,
    single_set_progress,
)
from binderkeep.services.wishlist_ledger import add_wishlist

USER = "user-1"


class TestCompletionPercentage:
    @pytest.mark.parametrize(
        ("collected", "total", "expected"),
        [
            (0, 0, 0),
            (5, 0, 0),
            (0, 10, 0),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),
            (1, 200, 1),
            (10, 10, 100),
            (12, 10, 100),
        ],
    )
    def test_rounding(self, collected: int, total: int, expected: int) -> None:
        assert completion_percentage(collected, total) == expected


class TestReconcile:
    def test_distinct_cards_per_set(self) -> None:
        card_sets = {"a-1": {"a"}, "a-2": {"a"}}
        owned = cards_per_set(["a-1", "a-1", "a-2"], card_sets)

        progress = reconcile_set_progress([CardSet("a", "Set A", total=4)], owned, {})

        assert progress[0].collected_cards == 2
        assert progress[0].completion_percentage == 50

    def test_empty_set_is_never_completed(self) -> None:
        progress = reconcile_set_progress([CardSet("x", "Empty", total=0)], {}, {})

        assert progress[0].completion_percentage == 0
        assert progress[0].is_completed is False

    def test_completed_boundary(self) -> None:
        sets = [CardSet("a", "A", total=2)]

        almost = reconcile_set_progress(sets, {"a": {"a-1"}}, {})[0]
        done = reconcile_set_progress(sets, {"a": {"a-1", "a-2"}}, {})[0]

        assert almost.is_completed is False
        assert almost.missing_cards == 1
        assert done.is_completed is True
        assert done.completion_percentage == 100

    def test_unknown_cards_are_ignored(self) -> None:
        assert cards_per_set(["ghost-1"], {}) == {}


@pytest.mark.usefixtures("catalog")
class TestLoadSetProgress:
    async def test_language_copies_count_once(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "base1-1", "en")
        await add_ownership(session, USER, "base1-1", "de")

        base = single_set_progress(await load_set_progress(session, USER), "base1")

        assert base is not None
        assert base.collected_cards == 1
        assert base.total_cards == 3
        assert base.completion_percentage == 33

    async def test_wishlist_counts(self, session: AsyncSession) -> None:
        await add_wishlist(session, USER, "jungle-1")
        await add_ownership(session, USER, "jungle-2")

        jungle = single_set_progress(await load_set_progress(session, USER), "jungle")

        assert jungle is not None
        assert jungle.collected_cards == 1
        assert jungle.wishlist_cards == 1
        assert jungle.completion_percentage == 50

    async def test_completed_set(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "jungle-1")
        await add_ownership(session, USER, "jungle-2")

        progress = await load_set_progress(session, USER, "jungle")

        assert len(progress) == 1
        assert progress[0].is_completed is True

    async def test_all_sets_ordered_by_name(self, session: AsyncSession) -> None:
        progress = await load_set_progress(session, USER)

        assert [item.set_name for item in progress] == ["Base Set", "Jungle", "Promo"]
        promo = progress[2]
        assert promo.total_cards == 0
        assert promo.is_completed is False

    async def test_unknown_set(self, session: AsyncSession) -> None:
        assert await load_set_progress(session, USER, "missing") == []
