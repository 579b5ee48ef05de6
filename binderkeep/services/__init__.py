"""
BinderKeep services.

Ledger operations, set completion, value aggregation and the optimistic
cache coordinator.
"""

from binderkeep.services.card_resolver import pick_language_variant, resolve_card
from binderkeep.services.coordinator import CollectionCoordinator, Notification
from binderkeep.services.optimistic_cache import (
    CacheEntry,
    CacheStatus,
    Mutation,
    MutationState,
    QueryCache,
)
from binderkeep.services.ownership_ledger import (
    add_ownership,
    count_owned,
    edit_ownership,
    is_owned,
    list_ownership,
    remove_ownership,
)
from binderkeep.services.set_progress import (
    completion_percentage,
    load_set_progress,
    reconcile_set_progress,
    single_set_progress,
)
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

__all__ = [
    "CacheEntry",
    "CacheStatus",
    "CollectionCoordinator",
    "Mutation",
    "MutationState",
    "Notification",
    "QueryCache",
    "add_ownership",
    "add_wishlist",
    "aggregate_value",
    "completion_percentage",
    "count_owned",
    "count_wishlisted",
    "edit_ownership",
    "edit_wishlist",
    "is_owned",
    "is_wishlisted",
    "list_ownership",
    "list_wishlist",
    "load_set_progress",
    "pick_language_variant",
    "priority_breakdown",
    "reconcile_set_progress",
    "remove_ownership",
    "remove_wishlist",
    "resolve_card",
    "single_set_progress",
]
