"""
Collection Coordinator.

Client-session facade over the ledgers. Reads go through the optimistic
query cache; mutations are mirrored into the cache before the store is
called, then committed or rolled back.

FAILURE BOUNDARY:
Every ledger failure is caught here, rolled back, and re-surfaced as a
classified Notification plus a non-success ApiResponse. Nothing is
swallowed. A mutation without a signed-in user fails fast with
NotAuthenticated: no store call, no cache change.

Read failures (catalog or ledger reads) propagate to the caller.
"""

import asyncio
import contextlib
import dataclasses
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from binderkeep.config import settings
from binderkeep.db.errors import persistence_errors
from binderkeep.db.operations import get_card_sets, get_current_prices, get_sets
from binderkeep.models.card import CardSet
from binderkeep.models.failure import (
    ApiResponse,
    FailureKind,
    KnownError,
    NotAuthenticated,
    classify_failure,
    create_unknown_failure,
)
from binderkeep.models.ledger import (
    CardSnapshot,
    OwnershipEdit,
    OwnershipEntry,
    OwnershipMetadata,
    Priority,
    WishlistEdit,
    WishlistEntry,
    normalize_priority,
)
from binderkeep.models.progress import SetProgress
from binderkeep.models.value import CurrentPrice, ValueSummary
from binderkeep.services import ownership_ledger, wishlist_ledger
from binderkeep.services.optimistic_cache import Mutation, QueryCache, QueryKey, Transform
from binderkeep.services.set_progress import cards_per_set, reconcile_set_progress
from binderkeep.services.value_aggregator import aggregate_value

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# QUERY KEYS
# =============================================================================


def collection_key(user_id: str) -> QueryKey:
    return ("collection", user_id)


def collection_check_key(user_id: str, card_id: str) -> QueryKey:
    return ("collection-check", user_id, card_id)


def collection_count_key(user_id: str) -> QueryKey:
    return ("collection-count", user_id)


def wishlist_key(user_id: str) -> QueryKey:
    return ("wishlist", user_id)


def wishlist_check_key(user_id: str, card_id: str) -> QueryKey:
    return ("wishlist-check", user_id, card_id)


def wishlist_count_key(user_id: str) -> QueryKey:
    return ("wishlist-count", user_id)


def set_progress_key(user_id: str, set_id: str | None = None) -> QueryKey:
    return ("set-progress", user_id, set_id or "all")


def collection_value_key(user_id: str) -> QueryKey:
    return ("collection-value", user_id)


def wishlist_value_key(user_id: str) -> QueryKey:
    return ("wishlist-value", user_id)


# =============================================================================
# NOTIFICATIONS
# =============================================================================


@dataclass(frozen=True, slots=True)
class Notification:
    """A user-visible message about a finished mutation."""

    level: str
    message: str
    kind: FailureKind | None = None

    @property
    def is_error(self) -> bool:
        return self.level == "error"


NotificationListener = Callable[[Notification], None]


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


# =============================================================================
# COORDINATOR
# =============================================================================


class CollectionCoordinator:
    """
    Optimistic collection and wishlist state for one client session.

    The cache belongs to the signed-in user; switching users clears it.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        user_id: str | None = None,
        cache: QueryCache | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._user_id = user_id
        self.cache = cache or QueryCache()
        self._listeners: list[NotificationListener] = []
        self._locks: dict[tuple[str, ...], _KeyLock] = {}

    # --- Session identity ---

    @property
    def user_id(self) -> str | None:
        return self._user_id

    def switch_user(self, user_id: str | None) -> None:
        """Change the signed-in user, dropping everything cached for the previous one."""
        if user_id == self._user_id:
            return
        logger.info("Switching user %s -> %s, clearing cache", self._user_id, user_id)
        self.cache.clear()
        self._locks.clear()
        self._user_id = user_id

    def sign_out(self) -> None:
        self.switch_user(None)

    # --- Notifications ---

    def add_listener(self, listener: NotificationListener) -> Callable[[], None]:
        """Register a notification listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self, notification: Notification) -> None:
        for listener in list(self._listeners):
            listener(notification)

    # --- Store access ---

    async def _read(self, operation: str, call: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self._session_factory() as session:
            with persistence_errors(operation):
                return await call(session)

    async def _write(self, operation: str, call: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self._session_factory() as session:
            result = await call(session)
            with persistence_errors(operation):
                await session.commit()
            return result

    @contextlib.asynccontextmanager
    async def _serialized(self, *key: str) -> AsyncIterator[None]:
        """Hold the lock for `key`. The lock is dropped once nobody holds or awaits it."""
        holder = self._locks.get(key)
        if holder is None:
            holder = self._locks[key] = _KeyLock()
        holder.users += 1
        try:
            async with holder.lock:
                yield
        finally:
            holder.users -= 1
            if holder.users == 0 and self._locks.get(key) is holder:
                del self._locks[key]

    def _invalidate_derived(self, mutation: Mutation) -> None:
        for prefix in mutation.invalidates:
            if prefix not in mutation.transforms:
                self.cache.invalidate(prefix)

    async def _mutate(
        self,
        operation: str,
        transforms: Callable[[str], dict[QueryKey, Transform]],
        invalidates: Callable[[str], tuple[QueryKey, ...]],
        call: Callable[[AsyncSession, str], Awaitable[T]],
        lock_key: tuple[str, ...],
        success_message: str,
    ) -> ApiResponse[T]:
        """
        Run one optimistic mutation end to end.

        1. Fail fast without a user
        2. Snapshot and apply the provisional values (synchronously)
        3. Call the ledger, serialized per lock_key
        4. Commit and invalidate, or roll back and notify
        """
        user_id = self._user_id
        if user_id is None:
            error = NotAuthenticated()
            self._notify(Notification("error", error.message, error.kind))
            return error.to_response()

        derived = invalidates(user_id)
        mutation = self.cache.begin(operation, transforms(user_id), derived)
        mutation.apply()
        # Derived views recompute from the provisional ledger state
        self._invalidate_derived(mutation)

        try:
            async with self._serialized(user_id, *lock_key):
                result = await self._write(operation, lambda session: call(session, user_id))
        except asyncio.CancelledError:
            mutation.rollback()
            self._invalidate_derived(mutation)
            raise
        except KnownError as e:
            mutation.rollback()
            self._invalidate_derived(mutation)
            logger.warning("%s failed for %s, rolled back: %s", operation, user_id, e.kind.value)
            self._notify(Notification("error", e.message, e.kind))
            return e.to_response()
        except Exception as e:
            mutation.rollback()
            self._invalidate_derived(mutation)
            logger.exception("%s failed unexpectedly for %s, rolled back", operation, user_id)
            failure = classify_failure(e)
            self._notify(Notification("error", failure.message, failure.kind))
            return create_unknown_failure(e)

        mutation.commit()
        self._notify(Notification("success", success_message))
        return ApiResponse.success(result)

    # --- Collection reads ---

    async def collection(self) -> list[OwnershipEntry]:
        """The user's collection, newest first. Empty when signed out."""
        user_id = self._user_id
        if user_id is None:
            return []
        return await self.cache.fetch(
            collection_key(user_id),
            lambda: self._read(
                "list ownership",
                lambda session: ownership_ledger.list_ownership(session, user_id),
            ),
        )

    async def in_collection(self, card_id: str) -> bool:
        user_id = self._user_id
        if user_id is None:
            return False
        return await self.cache.fetch(
            collection_check_key(user_id, card_id),
            lambda: self._read(
                "check ownership",
                lambda session: ownership_ledger.is_owned(session, user_id, card_id),
            ),
        )

    async def collection_count(self) -> int:
        user_id = self._user_id
        if user_id is None:
            return 0
        return await self.cache.fetch(
            collection_count_key(user_id),
            lambda: self._read(
                "count ownership",
                lambda session: ownership_ledger.count_owned(session, user_id),
            ),
        )

    # --- Wishlist reads ---

    async def wishlist(self) -> list[WishlistEntry]:
        """The user's wishlist, newest first. Empty when signed out."""
        user_id = self._user_id
        if user_id is None:
            return []
        return await self.cache.fetch(
            wishlist_key(user_id),
            lambda: self._read(
                "list wishlist",
                lambda session: wishlist_ledger.list_wishlist(session, user_id),
            ),
        )

    async def in_wishlist(self, card_id: str) -> bool:
        user_id = self._user_id
        if user_id is None:
            return False
        return await self.cache.fetch(
            wishlist_check_key(user_id, card_id),
            lambda: self._read(
                "check wishlist",
                lambda session: wishlist_ledger.is_wishlisted(session, user_id, card_id),
            ),
        )

    async def wishlist_count(self) -> int:
        user_id = self._user_id
        if user_id is None:
            return 0
        return await self.cache.fetch(
            wishlist_count_key(user_id),
            lambda: self._read(
                "count wishlist",
                lambda session: wishlist_ledger.count_wishlisted(session, user_id),
            ),
        )

    # --- Derived views ---

    async def set_progress(self, set_id: str | None = None) -> list[SetProgress]:
        """
        Set completion computed from the cached (possibly provisional) ledgers.

        Catalog read failures propagate; no partial progress is returned.
        """
        user_id = self._user_id
        if user_id is None:
            return []

        async def compute() -> list[SetProgress]:
            owned_ids = [entry.card_id for entry in await self.collection()]
            wishlisted_ids = [entry.card_id for entry in await self.wishlist()]
            sets: list[CardSet] = await self._read(
                "load sets", lambda session: get_sets(session, set_id)
            )
            card_sets = await self._read(
                "load card sets",
                lambda session: get_card_sets(session, [*owned_ids, *wishlisted_ids]),
            )
            return reconcile_set_progress(
                sets,
                cards_per_set(owned_ids, card_sets),
                cards_per_set(wishlisted_ids, card_sets),
            )

        return await self.cache.fetch(set_progress_key(user_id, set_id), compute)

    async def _prices_for(self, card_ids: list[str]) -> dict[str, CurrentPrice]:
        return await self._read(
            "load current prices", lambda session: get_current_prices(session, card_ids)
        )

    async def collection_value(self) -> ValueSummary | None:
        user_id = self._user_id
        if user_id is None:
            return None

        async def compute() -> ValueSummary:
            entries = await self.collection()
            prices = await self._prices_for([entry.card_id for entry in entries])
            return aggregate_value(entries, prices)

        return await self.cache.fetch(collection_value_key(user_id), compute)

    async def wishlist_value(self) -> ValueSummary | None:
        user_id = self._user_id
        if user_id is None:
            return None

        async def compute() -> ValueSummary:
            entries = await self.wishlist()
            prices = await self._prices_for([entry.card_id for entry in entries])
            return aggregate_value(entries, prices)

        return await self.cache.fetch(wishlist_value_key(user_id), compute)

    # --- Collection mutations ---

    @staticmethod
    def _collection_views(card_id: str) -> Callable[[str], tuple[QueryKey, ...]]:
        def views(user_id: str) -> tuple[QueryKey, ...]:
            return (
                collection_key(user_id),
                collection_check_key(user_id, card_id),
                collection_count_key(user_id),
                ("set-progress", user_id),
                collection_value_key(user_id),
            )

        return views

    async def add_to_collection(
        self,
        card_id: str,
        card_name: str | None = None,
        language: str | None = None,
        metadata: OwnershipMetadata | None = None,
    ) -> ApiResponse[OwnershipEntry]:
        """Add a card to the collection, showing it immediately."""
        details = metadata or OwnershipMetadata()

        def transforms(user_id: str) -> dict[QueryKey, Transform]:
            provisional = OwnershipEntry(
                user_id=user_id,
                card_id=card_id,
                language=language or settings.default_language,
                snapshot=CardSnapshot(
                    language=language or settings.default_language, name=card_name
                ),
                condition=details.condition,
                price=details.price,
                notes=details.notes,
                acquired_date=details.acquired_date,
                quantity=details.quantity,
            )
            return {
                collection_key(user_id): lambda entries: [provisional, *entries],
                collection_check_key(user_id, card_id): lambda _: True,
                collection_count_key(user_id): lambda count: count + 1,
            }

        return await self._mutate(
            "add to collection",
            transforms,
            self._collection_views(card_id),
            lambda session, user_id: ownership_ledger.add_ownership(
                session, user_id, card_id, language, details
            ),
            ("collection", card_id),
            f"{card_name or card_id} added to your collection.",
        )

    async def remove_from_collection(self, card_id: str) -> ApiResponse[None]:
        """Remove every copy of a card from the collection, hiding it immediately."""

        def transforms(user_id: str) -> dict[QueryKey, Transform]:
            cached = self.cache.get(collection_key(user_id)) or []
            removed = sum(1 for entry in cached if entry.card_id == card_id)
            return {
                collection_key(user_id): lambda entries: [
                    entry for entry in entries if entry.card_id != card_id
                ],
                collection_check_key(user_id, card_id): lambda _: False,
                collection_count_key(user_id): lambda count: max(count - removed, 0),
            }

        return await self._mutate(
            "remove from collection",
            transforms,
            self._collection_views(card_id),
            lambda session, user_id: ownership_ledger.remove_ownership(session, user_id, card_id),
            ("collection", card_id),
            "Card removed from your collection.",
        )

    async def edit_collection_entry(
        self, card_id: str, fields: OwnershipEdit
    ) -> ApiResponse[OwnershipEntry]:
        """Edit the user's entries for a card, showing the change immediately."""
        changes = fields.changes()

        def edited(entry: OwnershipEntry) -> OwnershipEntry:
            if entry.card_id != card_id:
                return entry
            return dataclasses.replace(entry, **changes)

        def transforms(user_id: str) -> dict[QueryKey, Transform]:
            return {collection_key(user_id): lambda entries: [edited(e) for e in entries]}

        return await self._mutate(
            "edit collection entry",
            transforms,
            self._collection_views(card_id),
            lambda session, user_id: ownership_ledger.edit_ownership(
                session, user_id, card_id, fields
            ),
            ("collection", card_id),
            "Card updated.",
        )

    # --- Wishlist mutations ---

    @staticmethod
    def _wishlist_views(card_id: str | None) -> Callable[[str], tuple[QueryKey, ...]]:
        def views(user_id: str) -> tuple[QueryKey, ...]:
            check: QueryKey = (
                wishlist_check_key(user_id, card_id) if card_id else ("wishlist-check", user_id)
            )
            return (
                wishlist_key(user_id),
                check,
                wishlist_count_key(user_id),
                ("set-progress", user_id),
                wishlist_value_key(user_id),
            )

        return views

    async def add_to_wishlist(
        self,
        card_id: str,
        card_name: str | None = None,
        language: str | None = None,
        priority: Priority | str | int | None = None,
        notes: str | None = None,
        price: float | None = None,
    ) -> ApiResponse[WishlistEntry]:
        """
        Add a card to the wishlist, showing it immediately.

        Adds for the same card are serialized, so a second add waits for
        the first and then fails with DuplicateWishlistEntry.
        """
        ordinal = normalize_priority(priority)

        def transforms(user_id: str) -> dict[QueryKey, Transform]:
            provisional = WishlistEntry(
                user_id=user_id,
                card_id=card_id,
                language=language or settings.default_language,
                priority=ordinal,
                notes=notes,
                price=price,
            )
            return {
                wishlist_key(user_id): lambda entries: [provisional, *entries],
                wishlist_check_key(user_id, card_id): lambda _: True,
                wishlist_count_key(user_id): lambda count: count + 1,
            }

        return await self._mutate(
            "add to wishlist",
            transforms,
            self._wishlist_views(card_id),
            lambda session, user_id: wishlist_ledger.add_wishlist(
                session, user_id, card_id, language, ordinal, notes, price
            ),
            ("wishlist", card_id),
            f"{card_name or card_id} added to your wishlist.",
        )

    async def remove_from_wishlist(self, card_id: str) -> ApiResponse[None]:
        """Remove a card from the wishlist, hiding it immediately."""

        def transforms(user_id: str) -> dict[QueryKey, Transform]:
            cached = self.cache.get(wishlist_key(user_id)) or []
            removed = sum(1 for entry in cached if entry.card_id == card_id)
            return {
                wishlist_key(user_id): lambda entries: [
                    entry for entry in entries if entry.card_id != card_id
                ],
                wishlist_check_key(user_id, card_id): lambda _: False,
                wishlist_count_key(user_id): lambda count: max(count - removed, 0),
            }

        return await self._mutate(
            "remove from wishlist",
            transforms,
            self._wishlist_views(card_id),
            lambda session, user_id: wishlist_ledger.remove_wishlist(session, user_id, card_id),
            ("wishlist", card_id),
            "Card removed from your wishlist.",
        )

    async def edit_wishlist_entry(
        self, entry_id: int, fields: WishlistEdit
    ) -> ApiResponse[WishlistEntry]:
        """Edit a wishlist entry by id, showing the change immediately."""
        changes: dict[str, Any] = fields.changes()
        if "priority" in changes:
            changes["priority"] = Priority(changes["priority"])

        def edited(entry: WishlistEntry) -> WishlistEntry:
            if entry.id != entry_id:
                return entry
            return dataclasses.replace(entry, **changes)

        def transforms(user_id: str) -> dict[QueryKey, Transform]:
            return {wishlist_key(user_id): lambda entries: [edited(e) for e in entries]}

        return await self._mutate(
            "edit wishlist entry",
            transforms,
            self._wishlist_views(None),
            lambda session, user_id: wishlist_ledger.edit_wishlist(
                session, user_id, entry_id, fields
            ),
            ("wishlist-entry", str(entry_id)),
            "Wishlist entry updated.",
        )
