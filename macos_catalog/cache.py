"""In-memory catalog cache with stale-serve and single-flight rebuilds."""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable

from macos_catalog.models import CatalogSnapshot

logger = logging.getLogger(__name__)

SnapshotBuilder = Callable[[], Awaitable[CatalogSnapshot]]


class CacheState(str, Enum):
    """Lifecycle states of the catalog cache."""

    EMPTY = "empty"
    BUILDING = "building"
    FRESH = "fresh"
    STALE = "stale"


class CatalogCache:
    """
    Serves catalog snapshots without blocking callers once one exists.

    - no snapshot: the first caller starts a build, concurrent callers await it
    - fresh snapshot: returned as is
    - stale snapshot: returned as is, and a background rebuild is started
      unless one ran less than ``stale_refresh_cooldown`` seconds ago
    - ``invalidate()``: drops the snapshot; results of builds started before
      the invalidation are handed to their waiters but never published
    """

    def __init__(
        self,
        builder: SnapshotBuilder,
        ttl: float = 30 * 60,
        stale_refresh_cooldown: float = 15,
        clock: Callable[[], float] = time.monotonic
    ):
        self._builder = builder
        self.ttl = ttl
        self.stale_refresh_cooldown = stale_refresh_cooldown
        self._clock = clock

        self._snapshot: CatalogSnapshot | None = None
        self._built_at: float | None = None
        self._inflight: asyncio.Task | None = None
        self._last_refresh_request: float | None = None
        self._generation = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> CacheState:
        if self._snapshot is None:
            return CacheState.BUILDING if self._inflight is not None else CacheState.EMPTY
        if self._is_fresh():
            return CacheState.FRESH
        return CacheState.STALE

    @property
    def is_building(self) -> bool:
        return self._inflight is not None

    @property
    def last_build_time(self) -> float | None:
        """Clock reading when the current snapshot was published, None if there is none."""
        return self._built_at

    @property
    def snapshot(self) -> CatalogSnapshot | None:
        return self._snapshot

    async def get(self) -> CatalogSnapshot:
        """Return the current catalog, building it only when none is held."""
        if self._snapshot is not None:
            if not self._is_fresh():
                self._refresh_in_background()
            return self._snapshot

        if self._inflight is None:
            self._inflight = self._start_build()
        return await asyncio.shield(self._inflight)

    def invalidate(self) -> None:
        """Forget the current snapshot; the next get() rebuilds."""
        self._generation += 1
        self._snapshot = None
        self._built_at = None
        self._last_refresh_request = None
        # An older build may still finish; it just will not be published
        self._inflight = None

    def _is_fresh(self) -> bool:
        return self._built_at is not None and self._clock() - self._built_at < self.ttl

    def _refresh_in_background(self) -> None:
        if self._inflight is not None:
            return

        now = self._clock()
        if self._last_refresh_request is not None and now - self._last_refresh_request < self.stale_refresh_cooldown:
            return

        self._last_refresh_request = now
        logger.debug("Catalog is stale, refreshing in background")
        self._inflight = self._start_build()

    def _start_build(self) -> asyncio.Task:
        task = asyncio.ensure_future(self._build(self._generation))
        # keep detached builds alive until they finish
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _build(self, generation: int) -> CatalogSnapshot:
        try:
            snapshot = await self._builder()
        except Exception:
            logger.exception("Catalog build failed")
            if generation == self._generation:
                self._inflight = None
            # Stale callers already have the old snapshot; cold callers get an empty one
            return self._snapshot if self._snapshot is not None else CatalogSnapshot.empty()

        if generation == self._generation:
            self._snapshot = snapshot
            self._built_at = self._clock()
            self._inflight = None
        else:
            logger.debug("Discarding catalog built before invalidation")
        return snapshot
