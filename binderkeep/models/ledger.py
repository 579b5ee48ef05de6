"""
Ledger entry types.

A ledger is a per-user collection of entries referencing catalog cards:
the ownership ledger (cards the user has) and the wishlist ledger (cards
the user wants).

Ownership entries carry a frozen CardSnapshot copied from the catalog when
the card is added. Later catalog edits never change historical entries.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from binderkeep.models.card import CardRecord


class Priority(IntEnum):
    """Wishlist priority, stored as its ordinal."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2


DEFAULT_PRIORITY = Priority.MEDIUM


def normalize_priority(value: Priority | str | int | None) -> Priority:
    """
    Normalize priority input to the ordinal enum.

    Accepts the enum itself, its name in any case ("high"), or the ordinal
    (2 or "2"). Anything missing or unrecognized becomes MEDIUM.
    """
    if isinstance(value, Priority):
        return value
    if isinstance(value, bool) or value is None:
        return DEFAULT_PRIORITY
    if isinstance(value, int):
        try:
            return Priority(value)
        except ValueError:
            return DEFAULT_PRIORITY
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return normalize_priority(int(text))
        try:
            return Priority[text.upper()]
        except KeyError:
            return DEFAULT_PRIORITY
    return DEFAULT_PRIORITY


@dataclass(frozen=True, slots=True)
class CardSnapshot:
    """Display fields copied from a CardRecord at the moment of adding."""

    language: str
    name: str | None = None
    set_id: str | None = None
    set_name: str | None = None
    rarity: str | None = None
    card_number: str | None = None
    image_url: str | None = None
    stats: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: CardRecord) -> "CardSnapshot":
        return cls(
            language=record.language,
            name=record.name,
            set_id=record.set_id,
            set_name=record.set_name,
            rarity=record.rarity,
            card_number=record.card_number,
            image_url=record.image_url,
            stats=dict(record.stats),
        )


@dataclass
class OwnershipEntry:
    """
    One owned physical card.

    A user may hold several entries for the same card_id when they
    differ in language.
    """

    user_id: str
    card_id: str
    language: str
    snapshot: CardSnapshot
    id: int | None = None
    condition: str | None = None
    price: float | None = None
    notes: str | None = None
    acquired_date: date | None = None
    quantity: int = 1
    created_at: datetime | None = None


@dataclass
class WishlistEntry:
    """A card the user wants. At most one per (user, card_id)."""

    user_id: str
    card_id: str
    language: str
    id: int | None = None
    priority: Priority = DEFAULT_PRIORITY
    set_id: str | None = None
    series_id: str | None = None
    price: float | None = None
    notes: str | None = None
    created_at: datetime | None = None


# =============================================================================
# INPUT MODELS
# =============================================================================


class OwnershipMetadata(BaseModel):
    """User-supplied details recorded when a card is added to the collection."""

    condition: str | None = None
    price: float | None = Field(default=None, ge=0)
    notes: str | None = None
    acquired_date: date | None = None
    quantity: int = Field(default=1, ge=1)


class OwnershipEdit(BaseModel):
    """
    Partial update of an ownership entry.

    Only fields explicitly set are applied; see `changes()`.
    """

    model_config = ConfigDict(extra="forbid")

    condition: str | None = None
    price: float | None = Field(default=None, ge=0)
    notes: str | None = None
    acquired_date: date | None = None
    quantity: int | None = Field(default=None, ge=1)
    language: str | None = None

    def changes(self) -> dict[str, Any]:
        fields = self.model_dump(exclude_unset=True)
        # quantity and language cannot be cleared
        for name in ("quantity", "language"):
            if name in fields and fields[name] is None:
                del fields[name]
        return fields


class WishlistEdit(BaseModel):
    """Partial update of a wishlist entry."""

    model_config = ConfigDict(extra="forbid")

    priority: Priority | str | int | None = None
    price: float | None = Field(default=None, ge=0)
    notes: str | None = None
    language: str | None = None

    def changes(self) -> dict[str, Any]:
        fields = self.model_dump(exclude_unset=True)
        if fields.get("language", "") is None:
            del fields["language"]
        if "priority" in fields:
            fields["priority"] = int(normalize_priority(fields["priority"]))
        return fields
