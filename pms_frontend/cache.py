"""
Query cache for server state.

The frontend never owns authoritative data: every entity lives in the PMS
backend, and this cache is a disposable projection of it. Entries are
keyed by tuples that start with the resource type (``("tasks",)``,
``("tasks", 42)``, ``("tasks", "stats", "TODO")``), which lets a single
:meth:`QueryCache.invalidate` call mark a whole resource family stale by
prefix.

Besides plain get/set/invalidate, the cache hands out monotonic sequence
numbers per entity. A writer takes a number before it starts a round trip
and checks :meth:`QueryCache.is_latest` when the response arrives; if a
newer writer for the same entity has started in the meantime, the older
response must not touch the cache.

Key Concepts Demonstrated:
- Injectable store (no module-level state) so reconciliation is testable
- Prefix invalidation with a staleness window
- Per-entity sequencing to discard out-of-order responses
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

QueryKey = tuple[Hashable, ...]


class QueryKeys:
    """Canonical cache keys for every resource the frontend reads."""

    USER: QueryKey = ("user",)
    PROJECTS: QueryKey = ("projects",)
    TASKS: QueryKey = ("tasks",)
    TEAMS: QueryKey = ("teams",)

    @staticmethod
    def project(project_id: int) -> QueryKey:
        return ("projects", project_id)

    @staticmethod
    def task(task_id: int) -> QueryKey:
        return ("tasks", task_id)

    @staticmethod
    def task_stats(status: str) -> QueryKey:
        return ("tasks", "stats", str(status))

    @staticmethod
    def team(team_id: int) -> QueryKey:
        return ("teams", team_id)


@dataclass
class _Entry:
    value: Any
    updated_at: float
    invalidated: bool = False


class QueryCache:
    """
    In-memory store of backend responses with a staleness window.

    Args:
        stale_after: Seconds after which an entry is refetched on the next
            :meth:`fetch`, even if it was never invalidated.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        stale_after: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stale_after = stale_after
        self._clock = clock
        self._entries: dict[QueryKey, _Entry] = {}
        self._sequences: dict[QueryKey, int] = {}
        self._lock = threading.RLock()

    def __contains__(self, key: QueryKey) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: QueryKey, default: Any = None) -> Any:
        """Return the cached value for *key*, stale or not."""
        with self._lock:
            entry = self._entries.get(key)
            return default if entry is None else entry.value

    def snapshot(self, key: QueryKey) -> Any:
        """Return a deep copy of the cached value, for later :meth:`set`."""
        with self._lock:
            return copy.deepcopy(self.get(key))

    def set(self, key: QueryKey, value: Any) -> None:
        """Store *value* as a fresh entry."""
        with self._lock:
            self._entries[key] = _Entry(value=value, updated_at=self._clock())

    def update(self, key: QueryKey, updater: Callable[[Any], Any]) -> bool:
        """
        Replace the cached value with ``updater(current)``.

        The entry keeps its freshness; this is for local speculative edits.

        Returns:
            ``True`` if *key* was cached and updated, ``False`` otherwise.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.value = updater(entry.value)
            return True

    def remove(self, key: QueryKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate(self, prefix: QueryKey) -> int:
        """
        Mark every entry whose key starts with *prefix* as stale.

        Returns:
            The number of entries invalidated.
        """
        count = 0
        with self._lock:
            for key, entry in self._entries.items():
                if key[: len(prefix)] == prefix:
                    entry.invalidated = True
                    count += 1
        return count

    def is_fresh(self, key: QueryKey) -> bool:
        """True when *key* is cached, not invalidated, and inside the window."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.invalidated:
                return False
            return (self._clock() - entry.updated_at) < self.stale_after

    def fetch(self, key: QueryKey, loader: Callable[[], Any]) -> Any:
        """
        Return the fresh cached value for *key*, loading it if needed.

        Loader exceptions propagate and leave the existing entry untouched.
        """
        if self.is_fresh(key):
            return self.get(key)
        value = loader()
        self.set(key, value)
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._sequences.clear()

    # ------------------------------------------------------------------
    # Per-entity sequencing
    # ------------------------------------------------------------------

    def next_sequence(self, entity_key: QueryKey) -> int:
        """Issue the next monotonic sequence number for *entity_key*."""
        with self._lock:
            sequence = self._sequences.get(entity_key, 0) + 1
            self._sequences[entity_key] = sequence
            return sequence

    def is_latest(self, entity_key: QueryKey, sequence: int) -> bool:
        """True when no newer sequence was issued for *entity_key*."""
        with self._lock:
            return self._sequences.get(entity_key, 0) == sequence


class CacheRegistry:
    """
    One :class:`QueryCache` per signed-in user.

    A cache never outlives the user's session in a way that could leak one
    user's data to another: entries are keyed by username and dropped on
    logout. Sessions that simply expire never log out, so a cache that has
    not been asked for in ``idle_after`` seconds is evicted on the next
    lookup.

    Args:
        stale_after: Staleness window handed to each new cache.
        idle_after: Seconds without :meth:`for_user` before a user's
            cache is discarded.
        clock: Monotonic time source shared with the caches.
    """

    def __init__(
        self,
        stale_after: float = 30.0,
        idle_after: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stale_after = stale_after
        self.idle_after = idle_after
        self._clock = clock
        self._caches: dict[str, QueryCache] = {}
        self._last_access: dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._caches)

    def for_user(self, username: str) -> QueryCache:
        with self._lock:
            now = self._clock()
            self._evict_idle(now)
            cache = self._caches.get(username)
            if cache is None:
                cache = QueryCache(stale_after=self.stale_after, clock=self._clock)
                self._caches[username] = cache
            self._last_access[username] = now
            return cache

    def drop(self, username: str) -> None:
        with self._lock:
            self._caches.pop(username, None)
            self._last_access.pop(username, None)

    def _evict_idle(self, now: float) -> None:
        idle = [
            username
            for username, seen_at in self._last_access.items()
            if now - seen_at >= self.idle_after
        ]
        for username in idle:
            del self._caches[username]
            del self._last_access[username]
        if idle:
            logger.info("Evicted %d idle user cache(s)", len(idle))
