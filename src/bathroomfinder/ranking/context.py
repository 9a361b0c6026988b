"""
Finder context: the reactive wiring around the ranking engine.

One `FinderContext` is owned by the top-level component (the API lifespan or the CLI
`watch` loop) and holds the three independent inputs:
- the latest feed snapshot (pushed by the feed subscription),
- the user location (acquired once at start, possibly never),
- the filter criteria (edited by the user).

Each input change triggers a full recomputation via `rank_bathrooms` and notifies
listeners; nothing is updated incrementally. All work runs on the caller's event
loop: no threads, no locks.

Lifecycle: `await start()` subscribes and requests the location; `await stop()`
cancels both and releases the feed registration. `async with` does both.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import Callable

from bathroomfinder.config.settings import SearchMode, Settings
from bathroomfinder.domain.models import Bathroom, BathroomView, Coordinate, FilterCriteria, FilterUpdate
from bathroomfinder.feed.base import Feed
from bathroomfinder.feed.factory import build_feed
from bathroomfinder.feed.snapshot import parse_snapshot
from bathroomfinder.geolocation.providers import GeolocationError, LocationProvider, build_location_provider
from bathroomfinder.ranking.engine import attach_distances, rank_bathrooms

logger = logging.getLogger(__name__)

ViewListener = Callable[[BathroomView], None]


class FinderContext:
    def __init__(
        self,
        feed: Feed,
        location_provider: LocationProvider,
        *,
        collection: str = "bathrooms",
        filters: FilterCriteria | None = None,
        search_mode: SearchMode = "all",
    ):
        self._feed = feed
        self._location_provider = location_provider
        self._collection = collection
        self._filters = filters or FilterCriteria()
        self._search_mode: SearchMode = search_mode

        self._snapshot: list[Bathroom] = []
        self._location: Coordinate | None = None
        self._loading = True
        self._listeners: list[ViewListener] = []
        self._tasks: list[asyncio.Task[None]] = []
        self._feed_settled = asyncio.Event()
        self._location_settled = asyncio.Event()

    @property
    def feed(self) -> Feed:
        return self._feed

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def snapshot(self) -> list[Bathroom]:
        return list(self._snapshot)

    @property
    def location(self) -> Coordinate | None:
        return self._location

    @property
    def filters(self) -> FilterCriteria:
        return self._filters

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def search_mode(self) -> SearchMode:
        return self._search_mode

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    # ---- lifecycle ----

    async def start(self) -> None:
        if self._tasks:
            raise RuntimeError("FinderContext is already started.")
        self._tasks = [
            asyncio.create_task(self._acquire_location(), name="bathroomfinder-geolocation"),
            asyncio.create_task(self._consume_feed(), name="bathroomfinder-feed"),
        ]

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> "FinderContext":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def wait_ready(self, timeout: float | None = None) -> bool:
        """Wait for the first snapshot and the location outcome; False on timeout."""
        waiters = asyncio.gather(self._feed_settled.wait(), self._location_settled.wait())
        try:
            await asyncio.wait_for(waiters, timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # ---- inputs ----

    async def _acquire_location(self) -> None:
        try:
            coordinate = await self._location_provider.get_current_position()
        except GeolocationError as exc:
            logger.info("No user location (%s); listing without distances.", exc)
        else:
            self._location = coordinate
            logger.info("User location acquired (%.4f, %.4f)", coordinate.lat, coordinate.lng)
            self._changed("location")
        finally:
            self._location_settled.set()

    async def _consume_feed(self) -> None:
        try:
            async with aclosing(self._feed.subscribe(self._collection)) as stream:
                async for raw in stream:
                    self._snapshot = parse_snapshot(raw)
                    self._loading = False
                    self._feed_settled.set()
                    self._changed("snapshot")
            logger.warning("Feed stream for '%s' ended; no further updates.", self._collection)
            if self._loading:
                self._loading = False
                self._changed("snapshot")
        except Exception:
            logger.exception("Subscription to '%s' failed; showing an empty list.", self._collection)
            self._snapshot = []
            self._loading = False
            self._changed("snapshot")
        finally:
            self._feed_settled.set()

    def update_filters(self, update: FilterUpdate) -> FilterCriteria:
        """Apply a single typed field update and recompute."""
        self._filters = update.apply(self._filters)
        self._changed("filters")
        return self._filters

    def set_filters(self, criteria: FilterCriteria) -> FilterCriteria:
        self._filters = criteria
        self._changed("filters")
        return self._filters

    # ---- outputs ----

    def add_listener(self, listener: ViewListener) -> Callable[[], None]:
        """Register `listener` for every recomputed view; returns an unregister function."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def view(self) -> BathroomView:
        results = rank_bathrooms(self._snapshot, self._location, self._filters, search_mode=self._search_mode)
        return BathroomView(
            loading=self._loading,
            location=self._location,
            filters=self._filters,
            search_mode=self._search_mode,
            results=results,
        )

    def get_bathroom(self, bathroom_id: str) -> Bathroom | None:
        """Look up one bathroom in the latest snapshot (distance attached, filters ignored)."""
        for bathroom in attach_distances(self._snapshot, self._location):
            if bathroom.id == bathroom_id:
                return bathroom
        return None

    def _changed(self, reason: str) -> None:
        view = self.view()
        logger.debug("Recomputed view after %s change: %d results", reason, view.count)
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("View listener %r failed", listener)


def build_context(settings: Settings) -> FinderContext:
    """Wire a context from settings (feed backend, location provider, search semantics)."""
    return FinderContext(
        build_feed(settings),
        build_location_provider(settings),
        collection=settings.feed.collection,
        search_mode=settings.ranking.search_mode,
    )
