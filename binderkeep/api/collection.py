"""
Collection API endpoints.

Add, edit, remove and inspect the cards a user owns.
"""

from datetime import date, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.db.database import get_session
from binderkeep.db.errors import persistence_errors
from binderkeep.db.operations import get_current_prices
from binderkeep.models.ledger import OwnershipEdit, OwnershipEntry, OwnershipMetadata
from binderkeep.models.value import ValueSummary
from binderkeep.services.ownership_ledger import (
    add_ownership,
    count_owned,
    edit_ownership,
    is_owned,
    list_ownership,
    remove_ownership,
)
from binderkeep.services.value_aggregator import aggregate_value

router = APIRouter(prefix="/collection", tags=["collection"])


class OwnershipEntryResponse(BaseModel):
    """One owned card, with the catalog fields copied when it was added."""

    id: int | None = None
    card_id: str
    language: str
    name: str | None = None
    set_id: str | None = None
    set_name: str | None = None
    rarity: str | None = None
    card_number: str | None = None
    image_url: str | None = None
    stats: dict[str, Any] = Field(default_factory=dict)
    condition: str | None = None
    price: float | None = None
    notes: str | None = None
    acquired_date: date | None = None
    quantity: int = 1
    created_at: datetime | None = None

    @classmethod
    def from_entry(cls, entry: OwnershipEntry) -> "OwnershipEntryResponse":
        snapshot = entry.snapshot
        return cls(
            id=entry.id,
            card_id=entry.card_id,
            language=entry.language,
            name=snapshot.name,
            set_id=snapshot.set_id,
            set_name=snapshot.set_name,
            rarity=snapshot.rarity,
            card_number=snapshot.card_number,
            image_url=snapshot.image_url,
            stats=dict(snapshot.stats),
            condition=entry.condition,
            price=entry.price,
            notes=entry.notes,
            acquired_date=entry.acquired_date,
            quantity=entry.quantity,
            created_at=entry.created_at,
        )


class CollectionResponse(BaseModel):
    """Response model for collection data."""

    user_id: str
    entries: list[OwnershipEntryResponse] = Field(default_factory=list)
    total_entries: int = 0
    unique_cards: int = Field(
        default=0,
        description="Distinct card identifiers; language copies count once",
    )


class AddOwnershipRequest(OwnershipMetadata):
    """Request model for adding a card to a collection."""

    card_id: str = Field(..., min_length=1, examples=["base1-4"])
    language: str | None = Field(
        default=None,
        description="Requested language; falls back to another variant if missing",
        examples=["en"],
    )


class CheckResponse(BaseModel):
    user_id: str
    card_id: str
    present: bool


class CountResponse(BaseModel):
    user_id: str
    count: int


class DeleteResponse(BaseModel):
    """Response model for delete operations."""

    user_id: str
    card_id: str
    message: str = ""


class ValueResponse(BaseModel):
    """Manual and automatic value of a ledger, each in its own currency."""

    user_id: str
    manual_total: float
    manual_currency: str
    automatic_total: float
    automatic_currency: str
    total_cards: int
    cards_with_manual_price: int
    cards_with_automatic_price: int
    cards_both_prices: int
    manual_value_per_card: float
    automatic_value_per_card: float
    other_currency_totals: dict[str, float] = Field(
        default_factory=dict,
        description="Automatic prices in other currencies, never converted",
    )

    @classmethod
    def from_summary(cls, user_id: str, summary: ValueSummary) -> "ValueResponse":
        return cls(
            user_id=user_id,
            manual_total=round(summary.manual_total, 2),
            manual_currency=summary.manual_currency,
            automatic_total=round(summary.automatic_total, 2),
            automatic_currency=summary.automatic_currency,
            total_cards=summary.total_cards,
            cards_with_manual_price=summary.cards_with_manual_price,
            cards_with_automatic_price=summary.cards_with_automatic_price,
            cards_both_prices=summary.cards_both_prices,
            manual_value_per_card=round(summary.manual_value_per_card, 2),
            automatic_value_per_card=round(summary.automatic_value_per_card, 2),
            other_currency_totals={
                currency: round(total, 2)
                for currency, total in summary.other_currency_totals.items()
            },
        )


@router.get("/{user_id}", response_model=CollectionResponse)
async def get_user_collection(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CollectionResponse:
    """Get a user's collection, newest first."""
    entries = await list_ownership(session, user_id)
    return CollectionResponse(
        user_id=user_id,
        entries=[OwnershipEntryResponse.from_entry(entry) for entry in entries],
        total_entries=len(entries),
        unique_cards=len({entry.card_id for entry in entries}),
    )


@router.post(
    "/{user_id}",
    response_model=OwnershipEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_to_collection(
    user_id: str,
    request: AddOwnershipRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> OwnershipEntryResponse:
    """
    Add a card to a user's collection.

    The requested language variant is used when the catalog has it;
    otherwise another variant is chosen. Adding the same card again
    creates another entry.
    """
    metadata = OwnershipMetadata.model_validate(
        request.model_dump(include=set(OwnershipMetadata.model_fields))
    )
    entry = await add_ownership(session, user_id, request.card_id, request.language, metadata)
    return OwnershipEntryResponse.from_entry(entry)


@router.patch("/{user_id}/{card_id}", response_model=OwnershipEntryResponse)
async def edit_collection_entry(
    user_id: str,
    card_id: str,
    request: OwnershipEdit,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> OwnershipEntryResponse:
    """Edit the user's entries for a card. Only fields present in the body change."""
    entry = await edit_ownership(session, user_id, card_id, request)
    return OwnershipEntryResponse.from_entry(entry)


@router.delete("/{user_id}/{card_id}", response_model=DeleteResponse)
async def remove_from_collection(
    user_id: str,
    card_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """Remove a card, in every language. Removing an absent card succeeds."""
    await remove_ownership(session, user_id, card_id)
    return DeleteResponse(
        user_id=user_id, card_id=card_id, message="Card removed from your collection."
    )


@router.get("/{user_id}/check/{card_id}", response_model=CheckResponse)
async def check_in_collection(
    user_id: str,
    card_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CheckResponse:
    present = await is_owned(session, user_id, card_id)
    return CheckResponse(user_id=user_id, card_id=card_id, present=present)


@router.get("/{user_id}/count", response_model=CountResponse)
async def get_collection_count(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CountResponse:
    return CountResponse(user_id=user_id, count=await count_owned(session, user_id))


@router.get("/{user_id}/value", response_model=ValueResponse)
async def get_collection_value(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ValueResponse:
    """
    Value of a user's collection.

    Manual prices are the prices users entered; automatic prices are the
    latest external observations. Both are weighted by quantity.
    """
    entries = await list_ownership(session, user_id)
    with persistence_errors("load current prices"):
        prices = await get_current_prices(session, [entry.card_id for entry in entries])
    return ValueResponse.from_summary(user_id, aggregate_value(entries, prices))
