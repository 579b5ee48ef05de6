from binderkeep.api.collection import router as collection_router
from binderkeep.api.health import router as health_router
from binderkeep.api.progress import router as progress_router
from binderkeep.api.wishlist import router as wishlist_router

__all__ = [
    "collection_router",
    "health_router",
    "progress_router",
    "wishlist_router",
]
