"""Tests for database CRUD operations."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.db.operations import (
    card_record_from_row,
    card_set_from_row,
    count_wishlist,
    delete_ownership_rows,
    get_card_records,
    get_card_sets,
    get_sets,
    insert_ownership_row,
    select_owned_card_ids,
)
from binderkeep.models.db import CardDB, CardSetDB, OwnershipDB
from binderkeep.models.failure import CatalogRecordError

pytestmark = pytest.mark.usefixtures("catalog")


class TestCatalogOperations:
    async def test_card_records_ordered_by_language(self, session: AsyncSession) -> None:
        records = await get_card_records(session, "base1-3")

        assert [record.language for record in records] == ["de", "fr"]

    async def test_card_sets_batched(self, session: AsyncSession) -> None:
        lookup = await get_card_sets(session, ["base1-1", "base1-1", "jungle-2", "missing"])

        assert lookup == {"base1-1": {"base1"}, "jungle-2": {"jungle"}}

    async def test_card_sets_empty_input(self, session: AsyncSession) -> None:
        assert await get_card_sets(session, []) == {}

    async def test_get_one_set(self, session: AsyncSession) -> None:
        sets = await get_sets(session, "jungle")

        assert len(sets) == 1
        assert sets[0].total == 2

    async def test_missing_total_reads_as_zero(self, session: AsyncSession) -> None:
        sets = await get_sets(session, "promo")

        assert sets[0].total == 0


class TestRowValidation:
    def test_card_without_language(self) -> None:
        with pytest.raises(CatalogRecordError):
            card_record_from_row(CardDB(card_id="x-1", language=""))

    def test_set_with_negative_total(self) -> None:
        with pytest.raises(CatalogRecordError):
            card_set_from_row(CardSetDB(set_id="bad", name="Bad", total=-1))

    def test_set_name_defaults_to_id(self) -> None:
        card_set = card_set_from_row(CardSetDB(set_id="s1", name="", total=4))

        assert card_set.name == "s1"


class TestLedgerOperations:
    async def test_owned_ids_are_per_row(self, session: AsyncSession) -> None:
        for language in ("en", "de"):
            await insert_ownership_row(
                session, OwnershipDB(user_id="user-1", card_id="base1-1", language=language)
            )

        assert await select_owned_card_ids(session, "user-1") == ["base1-1", "base1-1"]

    async def test_delete_returns_count(self, session: AsyncSession) -> None:
        for language in ("en", "de"):
            await insert_ownership_row(
                session, OwnershipDB(user_id="user-1", card_id="base1-1", language=language)
            )

        assert await delete_ownership_rows(session, "user-1", "base1-1") == 2
        assert await delete_ownership_rows(session, "user-1", "base1-1") == 0

    async def test_count_wishlist_empty(self, session: AsyncSession) -> None:
        assert await count_wishlist(session, "user-1") == 0
