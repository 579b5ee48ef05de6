"""Tests for the price import job."""

from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from binderkeep.db.operations import get_current_prices
from binderkeep.jobs.import_prices import (
    PriceRowError,
    parse_price_row,
    read_price_rows,
    run_price_import,
)
from binderkeep.models.db import PriceHistoryDB

HEADER = "card_id,source,price_type,price,currency,recorded_at\n"


class TestParsePriceRow:
    def test_valid_row(self) -> None:
        row = parse_price_row(
            {
                "card_id": "base1-4",
                "source": "tcgplayer",
                "price_type": "normal_market",
                "price": "350.5",
                "currency": "usd",
                "recorded_at": "2024-05-01T12:00:00+00:00",
            }
        )

        assert row.card_id == "base1-4"
        assert row.price == 350.5
        assert row.currency == "USD"
        assert row.recorded_at.year == 2024

    @pytest.mark.parametrize(
        "changes",
        [
            {"card_id": ""},
            {"price": "abc"},
            {"price": "0"},
            {"price": "-3"},
            {"currency": "EURO"},
            {"recorded_at": "yesterday"},
        ],
    )
    def test_invalid_rows(self, changes: dict[str, str]) -> None:
        record = {
            "card_id": "base1-4",
            "source": "tcgplayer",
            "price_type": "normal_market",
            "price": "1.0",
            "currency": "USD",
            **changes,
        }

        with pytest.raises(PriceRowError):
            parse_price_row(record)


class TestReadPriceRows:
    def test_skips_malformed_lines(self) -> None:
        lines = [
            HEADER,
            "base1-1,tcgplayer,normal_market,20,USD,\n",
            "base1-2,cardmarket,averageSellPrice,not-a-price,EUR,\n",
            "jungle-1,tcgplayer,normal_market,4,USD,2024-01-01\n",
        ]

        rows, skipped = read_price_rows(lines)

        assert [row.card_id for row in rows] == ["base1-1", "jungle-1"]
        assert skipped == 1

    def test_missing_columns(self) -> None:
        with pytest.raises(PriceRowError):
            read_price_rows(["card_id,price\n", "base1-1,2\n"])


class TestRunPriceImport:
    async def test_imports_into_price_history(
        self, tmp_path: Path, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        csv_path = tmp_path / "prices.csv"
        csv_path.write_text(
            HEADER
            + "base1-4,tcgplayer,normal_market,300,USD,2024-05-01T00:00:00\n"
            + "base1-4,cardmarket,averageSellPrice,250,EUR,2024-05-01T00:00:00\n"
            + "base1-5,tcgplayer,normal_market,,USD,\n",
            encoding="utf-8",
        )

        with patch("binderkeep.jobs.import_prices.async_session_factory", session_factory):
            inserted = await run_price_import(csv_path, batch_size=1)

        assert inserted == 2
        async with session_factory() as session:
            rows = (await session.execute(select(PriceHistoryDB))).scalars().all()
            prices = await get_current_prices(session, ["base1-4"])
        assert len(rows) == 2
        assert prices["base1-4"].currency == "USD"
        assert prices["base1-4"].price == 300.0
