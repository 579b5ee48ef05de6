"""Tests for the ownership ledger."""

from datetime import date

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.models.db import CardDB
from binderkeep.models.failure import CardNotFound, InvalidLedgerInput, LedgerEntryNotFound
from binderkeep.models.ledger import OwnershipEdit, OwnershipMetadata
from binderkeep.services.ownership_ledger import (
    add_ownership,
    count_owned,
    edit_ownership,
    is_owned,
    list_ownership,
    remove_ownership,
)

pytestmark = pytest.mark.usefixtures("catalog")

USER = "user-1"
OTHER_USER = "user-2"


class TestAddOwnership:
    async def test_add_copies_catalog_snapshot(self, session: AsyncSession) -> None:
        entry = await add_ownership(session, USER, "base1-1", "en")

        assert entry.id is not None
        assert entry.user_id == USER
        assert entry.language == "en"
        assert entry.snapshot.name == "Alakazam"
        assert entry.snapshot.set_id == "base1"
        assert entry.snapshot.stats["hp"] == 80
        assert entry.quantity == 1
        assert entry.created_at is not None

    async def test_add_with_metadata(self, session: AsyncSession) -> None:
        metadata = OwnershipMetadata(
            condition="near_mint", price=12.5, notes="trade", acquired_date=date(2024, 3, 1)
        )

        entry = await add_ownership(session, USER, "base1-2", metadata=metadata)

        assert entry.condition == "near_mint"
        assert entry.price == 12.5
        assert entry.acquired_date == date(2024, 3, 1)

    async def test_add_falls_back_to_available_language(self, session: AsyncSession) -> None:
        entry = await add_ownership(session, USER, "base1-3", "en")

        assert entry.language == "de"
        assert entry.snapshot.name == "Garados"

    async def test_add_unknown_card(self, session: AsyncSession) -> None:
        with pytest.raises(CardNotFound):
            await add_ownership(session, USER, "missing-1")

        assert await count_owned(session, USER) == 0

    async def test_add_empty_card_id(self, session: AsyncSession) -> None:
        with pytest.raises(InvalidLedgerInput):
            await add_ownership(session, USER, "  ")

    async def test_language_copies_are_separate_entries(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "base1-1", "en")
        await add_ownership(session, USER, "base1-1", "de")

        entries = await list_ownership(session, USER)

        assert sorted(entry.language for entry in entries) == ["de", "en"]

    async def test_snapshot_is_not_affected_by_catalog_edits(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "base1-2", "en")
        await session.execute(
            update(CardDB).where(CardDB.card_id == "base1-2").values(name="Renamed")
        )

        entries = await list_ownership(session, USER)

        assert entries[0].snapshot.name == "Blastoise"


class TestRemoveOwnership:
    async def test_remove_deletes_every_language(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "base1-1", "en")
        await add_ownership(session, USER, "base1-1", "de")

        await remove_ownership(session, USER, "base1-1")

        assert not await is_owned(session, USER, "base1-1")
        assert await count_owned(session, USER) == 0

    async def test_remove_is_idempotent(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "base1-2")

        await remove_ownership(session, USER, "base1-2")
        await remove_ownership(session, USER, "base1-2")

        assert await list_ownership(session, USER) == []

    async def test_remove_only_affects_user(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "base1-2")
        await add_ownership(session, OTHER_USER, "base1-2")

        await remove_ownership(session, USER, "base1-2")

        assert await is_owned(session, OTHER_USER, "base1-2")


class TestEditOwnership:
    async def test_edit_only_set_fields(self, session: AsyncSession) -> None:
        await add_ownership(
            session, USER, "base1-2", metadata=OwnershipMetadata(condition="played", notes="keep")
        )

        entry = await edit_ownership(session, USER, "base1-2", OwnershipEdit(price=7.0))

        assert entry.price == 7.0
        assert entry.condition == "played"
        assert entry.notes == "keep"

    async def test_edit_can_clear_nullable_field(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "base1-2", metadata=OwnershipMetadata(notes="old"))

        entry = await edit_ownership(session, USER, "base1-2", OwnershipEdit(notes=None))

        assert entry.notes is None

    async def test_edit_missing_entry(self, session: AsyncSession) -> None:
        with pytest.raises(LedgerEntryNotFound):
            await edit_ownership(session, USER, "base1-2", OwnershipEdit(price=1.0))


class TestReads:
    async def test_list_newest_first(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "base1-1")
        await add_ownership(session, USER, "base1-2")
        await add_ownership(session, USER, "jungle-1")

        entries = await list_ownership(session, USER)

        assert [entry.card_id for entry in entries] == ["jungle-1", "base1-2", "base1-1"]

    async def test_count_counts_rows(self, session: AsyncSession) -> None:
        await add_ownership(session, USER, "base1-1", "en")
        await add_ownership(session, USER, "base1-1", "de")

        assert await count_owned(session, USER) == 2
        assert await count_owned(session, OTHER_USER) == 0
