"""
Health check endpoints.

Liveness, plus a readiness probe that checks the database and that the
ledger tables have the columns this version expects.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from binderkeep.db.database import get_session
from binderkeep.db.errors import looks_like_schema_mismatch
from binderkeep.models.db import OwnershipDB, WishlistDB

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str | None = None
    schema_status: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe. Does not check dependencies."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HealthResponse:
    """
    Readiness probe.

    Returns 503 if the database is unreachable or its ledger tables are
    missing columns (schema_status="out_of_date").
    """
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready", database="disconnected")

    try:
        await session.execute(select(OwnershipDB).limit(1))
        await session.execute(select(WishlistDB).limit(1))
    except SQLAlchemyError as e:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        schema_status = "out_of_date" if looks_like_schema_mismatch(e) else "unavailable"
        return HealthResponse(status="not ready", database="connected", schema_status=schema_status)

    return HealthResponse(status="ready", database="connected", schema_status="ok")
