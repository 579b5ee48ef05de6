"""
Job to load external price observations into price_history.

Reads a CSV file with the header

    card_id,source,price_type,price,currency[,recorded_at]

and inserts one price_history row per valid line. Malformed lines are
skipped with a warning. Can be run as a standalone script or called from
a scheduler.
"""

import argparse
import asyncio
import csv
import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from binderkeep.db.database import async_session_factory
from binderkeep.db.errors import persistence_errors
from binderkeep.db.operations import insert_price_rows
from binderkeep.models.db import PriceHistoryDB

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("card_id", "source", "price_type", "price", "currency")
DEFAULT_BATCH_SIZE = 500


class PriceRowError(ValueError):
    """A CSV line that cannot be turned into a price observation."""


def parse_price_row(row: dict[str, str | None]) -> PriceHistoryDB:
    """
    Convert one CSV record to a PriceHistoryDB row.

    Raises:
        PriceRowError: If a required value is missing, the price is not a
            positive number, or recorded_at is not ISO 8601
    """
    values = {name: (row.get(name) or "").strip() for name in REQUIRED_COLUMNS}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise PriceRowError(f"missing {', '.join(missing)}")

    try:
        price = float(values["price"])
    except ValueError as e:
        raise PriceRowError(f"price {values['price']!r} is not a number") from e
    if price <= 0:
        raise PriceRowError(f"price {price} is not positive")

    currency = values["currency"].upper()
    if len(currency) != 3:
        raise PriceRowError(f"currency {currency!r} is not a 3-letter code")

    price_row = PriceHistoryDB(
        card_id=values["card_id"],
        source=values["source"],
        price_type=values["price_type"],
        price=price,
        currency=currency,
    )

    recorded_at = (row.get("recorded_at") or "").strip()
    if recorded_at:
        try:
            price_row.recorded_at = datetime.fromisoformat(recorded_at)
        except ValueError as e:
            raise PriceRowError(f"recorded_at {recorded_at!r} is not ISO 8601") from e

    return price_row


def read_price_rows(lines: Iterable[str]) -> tuple[list[PriceHistoryDB], int]:
    """
    Parse CSV lines into price rows.

    Returns:
        (valid rows, number of skipped lines)
    """
    reader = csv.DictReader(lines)
    header = reader.fieldnames or []
    absent = [name for name in REQUIRED_COLUMNS if name not in header]
    if absent:
        raise PriceRowError(f"CSV header is missing columns: {', '.join(absent)}")

    rows: list[PriceHistoryDB] = []
    skipped = 0
    for line_number, record in enumerate(reader, start=2):
        try:
            rows.append(parse_price_row(record))
        except PriceRowError as e:
            logger.warning("Skipping line %d: %s", line_number, e)
            skipped += 1
    return rows, skipped


async def run_price_import(path: Path, batch_size: int = DEFAULT_BATCH_SIZE) -> int:
    """
    Import a price CSV.

    Args:
        path: CSV file to read
        batch_size: Rows inserted per flush

    Returns:
        Number of rows inserted
    """
    logger.info("Reading prices from %s...", path)
    with path.open(newline="", encoding="utf-8") as handle:
        rows, skipped = read_price_rows(handle)
    logger.info("Parsed %d price rows (%d skipped)", len(rows), skipped)

    inserted = 0
    async with async_session_factory() as session:
        with persistence_errors("import prices"):
            for start in range(0, len(rows), batch_size):
                inserted += await insert_price_rows(session, rows[start : start + batch_size])
            await session.commit()

    logger.info("Price import complete. Rows inserted: %d", inserted)
    return inserted


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for running a price import."""
    parser = argparse.ArgumentParser(description="Load external card prices into price_history.")
    parser.add_argument("csv_path", type=Path, help="CSV file of price observations")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_price_import(args.csv_path, args.batch_size))


if __name__ == "__main__":
    main()
