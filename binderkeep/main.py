import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from binderkeep.api import (
    collection_router,
    health_router,
    progress_router,
    wishlist_router,
)
from binderkeep.config import settings
from binderkeep.db.database import init_db
from binderkeep.models.failure import KnownError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    logging.getLogger("binderkeep").setLevel(settings.log_level.upper())
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("binderkeep"),
    lifespan=lifespan,
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render a classified failure as the response envelope."""
    logger.warning("Request failed: %s (%s)", exc.kind.value, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


app.include_router(collection_router)
app.include_router(health_router)
app.include_router(progress_router)
app.include_router(wishlist_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
