"""
Wishlist API endpoints.

A user's wanted cards: at most one entry per card, with a priority.
"""

from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.api.collection import CheckResponse, CountResponse, DeleteResponse, ValueResponse
from binderkeep.db.database import get_session
from binderkeep.db.errors import persistence_errors
from binderkeep.db.operations import get_current_prices
from binderkeep.models.ledger import Priority, WishlistEdit, WishlistEntry
from binderkeep.services.value_aggregator import aggregate_value
from binderkeep.services.wishlist_ledger import (
    add_wishlist,
    count_wishlisted,
    edit_wishlist,
    is_wishlisted,
    list_wishlist,
    priority_breakdown,
    remove_wishlist,
)

router = APIRouter(prefix="/wishlist", tags=["wishlist"])

PriorityLabel = Literal["high", "medium", "low"]


class WishlistEntryResponse(BaseModel):
    """One wishlist entry."""

    id: int | None = None
    card_id: str
    language: str
    priority: PriorityLabel
    set_id: str | None = None
    series_id: str | None = None
    price: float | None = None
    notes: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_entry(cls, entry: WishlistEntry) -> "WishlistEntryResponse":
        return cls(
            id=entry.id,
            card_id=entry.card_id,
            language=entry.language,
            priority=Priority(entry.priority).name.lower(),  # type: ignore[arg-type]
            set_id=entry.set_id,
            series_id=entry.series_id,
            price=entry.price,
            notes=entry.notes,
            created_at=entry.created_at,
        )


class WishlistResponse(BaseModel):
    """Response model for wishlist data."""

    user_id: str
    entries: list[WishlistEntryResponse] = Field(default_factory=list)
    total_entries: int = 0
    by_priority: dict[str, int] = Field(
        default_factory=dict,
        description="Entry counts per priority (high, medium, low)",
    )


class AddWishlistRequest(BaseModel):
    """Request model for adding a card to a wishlist."""

    card_id: str = Field(..., min_length=1, examples=["base1-4"])
    language: str | None = None
    priority: Priority | str | int | None = Field(
        default=None,
        description="high/medium/low or 2/1/0; anything else is medium",
        examples=["high"],
    )
    notes: str | None = None
    price: float | None = Field(default=None, ge=0)


@router.get("/{user_id}", response_model=WishlistResponse)
async def get_user_wishlist(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> WishlistResponse:
    """Get a user's wishlist, newest first."""
    entries = await list_wishlist(session, user_id)
    return WishlistResponse(
        user_id=user_id,
        entries=[WishlistEntryResponse.from_entry(entry) for entry in entries],
        total_entries=len(entries),
        by_priority=priority_breakdown(entries),
    )


@router.post(
    "/{user_id}",
    response_model=WishlistEntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "The card is already on the wishlist"}},
)
async def add_to_wishlist(
    user_id: str,
    request: AddWishlistRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> WishlistEntryResponse:
    """
    Add a card to a user's wishlist.

    Fails with 409 if the card is already there; the existing entry is
    left unchanged.
    """
    entry = await add_wishlist(
        session,
        user_id,
        request.card_id,
        language=request.language,
        priority=request.priority,
        notes=request.notes,
        price=request.price,
    )
    return WishlistEntryResponse.from_entry(entry)


@router.patch("/{user_id}/entries/{entry_id}", response_model=WishlistEntryResponse)
async def edit_wishlist_entry(
    user_id: str,
    entry_id: int,
    request: WishlistEdit,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> WishlistEntryResponse:
    entry = await edit_wishlist(session, user_id, entry_id, request)
    return WishlistEntryResponse.from_entry(entry)


@router.delete("/{user_id}/{card_id}", response_model=DeleteResponse)
async def remove_from_wishlist(
    user_id: str,
    card_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> DeleteResponse:
    """Remove a card from the wishlist. Removing an absent card succeeds."""
    await remove_wishlist(session, user_id, card_id)
    return DeleteResponse(
        user_id=user_id, card_id=card_id, message="Card removed from your wishlist."
    )


@router.get("/{user_id}/check/{card_id}", response_model=CheckResponse)
async def check_in_wishlist(
    user_id: str,
    card_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CheckResponse:
    present = await is_wishlisted(session, user_id, card_id)
    return CheckResponse(user_id=user_id, card_id=card_id, present=present)


@router.get("/{user_id}/count", response_model=CountResponse)
async def get_wishlist_count(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CountResponse:
    return CountResponse(user_id=user_id, count=await count_wishlisted(session, user_id))


@router.get("/{user_id}/value", response_model=ValueResponse)
async def get_wishlist_value(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ValueResponse:
    """Value of a user's wishlist. Each entry counts once."""
    entries = await list_wishlist(session, user_id)
    with persistence_errors("load current prices"):
        prices = await get_current_prices(session, [entry.card_id for entry in entries])
    return ValueResponse.from_summary(user_id, aggregate_value(entries, prices))
