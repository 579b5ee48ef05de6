"""
Optimistic Query Cache.

An explicit key-value arena of query results:

    query key -> CacheEntry(data, status)

Mutations write a provisional value into the cache before the store
answers, then either commit (keep the provisional value, mark derived
views stale so they are refetched) or roll back (remove their own effect).

Mutation lifecycle:

    IDLE --apply()--> PENDING --commit()---> CONFIRMED
                              --rollback()-> ROLLED_BACK

INVARIANTS:
1. Each mutation snapshots every key it touches at its OWN dispatch time
2. Rollback removes only the rolled-back mutation's effect; pending and
   confirmed siblings on the same key keep theirs
3. With no sibling on a key, rollback restores the pre-mutation snapshot
4. Keys absent from the cache are never fabricated by a mutation
5. A load that overlaps an invalidation or a mutation is not stored;
   the entry keeps its newer value and status

Transforms must be pure: they receive the current value and return a new
one without modifying their argument.
"""

import copy
import itertools
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

QueryKey = tuple[Hashable, ...]
Transform = Callable[[Any], Any]


class CacheStatus(str, Enum):
    """Freshness of a cached query result."""

    FRESH = "fresh"
    STALE = "stale"


class MutationState(str, Enum):
    """Lifecycle state of one optimistic mutation."""

    IDLE = "idle"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


@dataclass
class CacheEntry:
    """
    One cached query result.

    `base` is the value underneath the mutation log: the cached value with
    none of the logged mutations applied. It is only meaningful while the
    log is non-empty. `generation` moves on whenever the entry is
    invalidated or written by a mutation.
    """

    key: QueryKey
    data: Any
    status: CacheStatus = CacheStatus.FRESH
    base: Any = None
    log: list["Mutation"] = field(default_factory=list)
    generation: int = 0

    def replay(self) -> Any:
        """Recompute data from base and every mutation not rolled back."""
        value = self.base
        for mutation in self.log:
            if mutation.state == MutationState.ROLLED_BACK:
                continue
            value = mutation.transforms[self.key](value)
        return value


def key_matches(key: QueryKey, prefix: QueryKey) -> bool:
    """True if `key` starts with `prefix`."""
    return key[: len(prefix)] == prefix


class Mutation:
    """
    One optimistic mutation.

    Created by QueryCache.begin(); drives its own lifecycle through
    apply(), commit() and rollback().
    """

    def __init__(
        self,
        cache: "QueryCache",
        mutation_id: int,
        name: str,
        transforms: dict[QueryKey, Transform],
        invalidates: tuple[QueryKey, ...],
    ) -> None:
        self.cache = cache
        self.id = mutation_id
        self.name = name
        self.transforms = transforms
        self.invalidates = invalidates
        self.state = MutationState.IDLE
        self.snapshots: dict[QueryKey, Any] = {}
        # Keys that were cached, and therefore written, at apply time
        self.touched_keys: list[QueryKey] = []

    def __repr__(self) -> str:
        return f"<Mutation(id={self.id}, name={self.name}, state={self.state.value})>"

    def snapshot(self) -> dict[QueryKey, Any]:
        """Capture the current value of every cached key this mutation touches."""
        self.snapshots = {
            key: copy.deepcopy(entry.data)
            for key in self.transforms
            if (entry := self.cache.entry(key)) is not None
        }
        return self.snapshots

    def apply(self) -> None:
        """Snapshot, then write the provisional values. IDLE -> PENDING."""
        if self.state != MutationState.IDLE:
            raise RuntimeError(f"Cannot apply {self!r}")
        self.snapshot()
        self.cache._apply(self)
        self.state = MutationState.PENDING

    def commit(self) -> None:
        """Server accepted: discard snapshots, mark derived views stale."""
        if self.state != MutationState.PENDING:
            raise RuntimeError(f"Cannot commit {self!r}")
        self.state = MutationState.CONFIRMED
        self.snapshots = {}
        self.cache._settle(self)
        for prefix in self.invalidates:
            self.cache.invalidate(prefix)

    def rollback(self) -> None:
        """Server rejected: remove this mutation's effect from the cache."""
        if self.state != MutationState.PENDING:
            raise RuntimeError(f"Cannot roll back {self!r}")
        self.state = MutationState.ROLLED_BACK
        self.cache._rollback(self)
        self.snapshots = {}


class QueryCache:
    """Per-session store of query results with optimistic mutations."""

    def __init__(self) -> None:
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._ids = itertools.count(1)

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, key: QueryKey) -> CacheEntry | None:
        return self._entries.get(key)

    def get(self, key: QueryKey) -> Any:
        """Cached value for a key, or None."""
        entry = self._entries.get(key)
        return entry.data if entry else None

    def status(self, key: QueryKey) -> CacheStatus | None:
        entry = self._entries.get(key)
        return entry.status if entry else None

    def is_fresh(self, key: QueryKey) -> bool:
        return self.status(key) == CacheStatus.FRESH

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def set_data(self, key: QueryKey, data: Any) -> Any:
        """
        Store an authoritative value for a key and mark it fresh.

        Pending mutations on the key are replayed over the new value so
        their provisional effect stays visible until they settle.
        """
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key=key, data=data)
            self._entries[key] = entry
            return entry.data

        entry.log = [m for m in entry.log if m.state == MutationState.PENDING]
        entry.status = CacheStatus.FRESH
        if entry.log:
            entry.base = data
            entry.data = entry.replay()
            # The old snapshot no longer describes the state under the log
            for mutation in entry.log:
                mutation.snapshots.pop(key, None)
        else:
            entry.base = None
            entry.data = data
        return entry.data

    async def fetch(self, key: QueryKey, loader: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the fresh cached value, or load, store and return it.

        A load that finishes after the entry was invalidated or written
        by a mutation is dropped, and the current cached value is returned.
        """
        entry = self._entries.get(key)
        if entry is not None and entry.status == CacheStatus.FRESH:
            return entry.data
        generation = entry.generation if entry else None
        data = await loader()

        current = self._entries.get(key)
        if generation != (current.generation if current else None):
            # Loaded before the entry last changed
            return current.data if current else data
        return self.set_data(key, data)

    def invalidate(self, prefix: QueryKey) -> int:
        """Mark every key starting with `prefix` stale. Returns the count."""
        count = 0
        for key, entry in self._entries.items():
            if key_matches(key, prefix):
                entry.status = CacheStatus.STALE
                entry.generation += 1
                count += 1
        return count

    def remove(self, prefix: QueryKey) -> None:
        """Drop every key starting with `prefix`."""
        for key in [k for k in self._entries if key_matches(k, prefix)]:
            del self._entries[key]

    def clear(self) -> None:
        """Drop everything. In-flight mutations settle as no-ops."""
        self._entries.clear()

    def begin(
        self,
        name: str,
        transforms: dict[QueryKey, Transform],
        invalidates: tuple[QueryKey, ...] = (),
    ) -> Mutation:
        """Create a mutation bound to this cache. Call apply() to dispatch it."""
        return Mutation(self, next(self._ids), name, transforms, invalidates)

    # --- Mutation bookkeeping ---

    def _apply(self, mutation: Mutation) -> None:
        for key, transform in mutation.transforms.items():
            entry = self._entries.get(key)
            if entry is None:
                continue
            if not entry.log:
                entry.base = entry.data
            entry.log.append(mutation)
            entry.generation += 1
            mutation.touched_keys.append(key)
            entry.data = transform(entry.data)

    def _rollback(self, mutation: Mutation) -> None:
        for key in mutation.touched_keys:
            entry = self._entries.get(key)
            if entry is None or mutation not in entry.log:
                continue
            if entry.log == [mutation] and key in mutation.snapshots:
                entry.data = mutation.snapshots[key]
            else:
                entry.data = entry.replay()
            self._trim(entry)
            entry.generation += 1

    def _settle(self, mutation: Mutation) -> None:
        for key in mutation.touched_keys:
            entry = self._entries.get(key)
            if entry is not None:
                self._trim(entry)

    @staticmethod
    def _trim(entry: CacheEntry) -> None:
        """Forget the log once no mutation on the entry is pending."""
        if any(m.state == MutationState.PENDING for m in entry.log):
            return
        entry.log = []
        entry.base = None
