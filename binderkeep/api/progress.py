"""
Set progress API endpoints.

Completion is computed on every request from the user's ledgers and
the catalog; nothing is stored.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.db.database import get_session
from binderkeep.models.progress import SetProgress
from binderkeep.services.set_progress import load_set_progress, single_set_progress

router = APIRouter(prefix="/progress", tags=["progress"])


class SetProgressResponse(BaseModel):
    """Completion of one set."""

    set_id: str
    set_name: str
    total_cards: int
    collected_cards: int
    wishlist_cards: int
    missing_cards: int
    completion_percentage: int = Field(..., ge=0, le=100)
    is_completed: bool

    @classmethod
    def from_progress(cls, progress: SetProgress) -> "SetProgressResponse":
        return cls(
            set_id=progress.set_id,
            set_name=progress.set_name,
            total_cards=progress.total_cards,
            collected_cards=progress.collected_cards,
            wishlist_cards=progress.wishlist_cards,
            missing_cards=progress.missing_cards,
            completion_percentage=progress.completion_percentage,
            is_completed=progress.is_completed,
        )


class ProgressResponse(BaseModel):
    user_id: str
    sets: list[SetProgressResponse] = Field(default_factory=list)
    completed_sets: int = 0


@router.get("/{user_id}", response_model=ProgressResponse)
async def get_set_progress(
    user_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
    set_id: Annotated[str | None, Query(description="Restrict to one set")] = None,
) -> ProgressResponse:
    """Completion of every catalog set (or one set) for a user, ordered by set name."""
    progress = await load_set_progress(session, user_id, set_id)
    return ProgressResponse(
        user_id=user_id,
        sets=[SetProgressResponse.from_progress(item) for item in progress],
        completed_sets=sum(1 for item in progress if item.is_completed),
    )


@router.get("/{user_id}/{set_id}", response_model=SetProgressResponse)
async def get_one_set_progress(
    user_id: str,
    set_id: str,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SetProgressResponse:
    progress = single_set_progress(await load_set_progress(session, user_id, set_id), set_id)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Set '{set_id}' not found",
        )
    return SetProgressResponse.from_progress(progress)
