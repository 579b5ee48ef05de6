"""
SQLAlchemy ORM models for persistent storage.

Catalog tables (cards, card_sets, price_history) are read-only to the
ledgers. Ledger tables (card_collections, card_wishlist) hold one row per
entry and are always filtered by user_id.
"""

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CardDB(Base):
    """
    One language variant of a catalog card.

    The (card_id, language) pair is unique; a logical card has one
    row per language it was printed in.
    """

    __tablename__ = "cards"

    card_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    language: Mapped[str] = mapped_column(String(8), primary_key=True)
    set_id: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    set_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rarity: Mapped[str | None] = mapped_column(String(64), nullable=True)
    card_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    illustrator: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # hp, types, attacks, weaknesses, retreat
    stats: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    def __repr__(self) -> str:
        return f"<CardDB(card_id={self.card_id}, language={self.language})>"


class CardSetDB(Base):
    """A catalog set with its total card count."""

    __tablename__ = "card_sets"

    set_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    total: Mapped[int | None] = mapped_column(Integer, nullable=True)
    series_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    series_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<CardSetDB(set_id={self.set_id}, total={self.total})>"


class OwnershipDB(Base):
    """
    A card in a user's collection.

    Display columns are a copy of the catalog row taken when the card
    was added, not a reference to it.
    """

    __tablename__ = "card_collections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    card_id: Mapped[str] = mapped_column(String(64), index=True)
    language: Mapped[str] = mapped_column(String(8), default="en")

    # Catalog snapshot
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    set_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    set_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    rarity: Mapped[str | None] = mapped_column(String(64), nullable=True)
    card_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    stats: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    # User metadata
    condition: Mapped[str | None] = mapped_column(String(32), nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    acquired_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<OwnershipDB(user={self.user_id}, card={self.card_id}, lang={self.language})>"


class WishlistDB(Base):
    """
    A card on a user's wishlist.

    UNIQUE(user_id, card_id) enforces one entry per card at the store,
    closing the read-then-write race of the duplicate check.
    """

    __tablename__ = "card_wishlist"
    __table_args__ = (UniqueConstraint("user_id", "card_id", name="uq_wishlist_user_card"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    card_id: Mapped[str] = mapped_column(String(64), index=True)
    language: Mapped[str] = mapped_column(String(8), default="en")
    set_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    series_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=1)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<WishlistDB(id={self.id}, user={self.user_id}, card={self.card_id})>"


class PriceHistoryDB(Base):
    """An externally sourced price observation for a card."""

    __tablename__ = "price_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[str] = mapped_column(String(64), index=True)
    source: Mapped[str] = mapped_column(String(32))
    price_type: Mapped[str] = mapped_column(String(64))
    price: Mapped[float] = mapped_column(Float)
    currency: Mapped[str] = mapped_column(String(3))
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    def __repr__(self) -> str:
        return f"<PriceHistoryDB(card={self.card_id}, {self.source}/{self.price_type})>"
