"""
In-process feed.

Keeps the whole datastore as one JSON-like tree and fans out change notifications to
subscribers through `asyncio.Queue`s. Used for local demos (seeded from a JSON file
shaped like the remote database) and offline tests.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import uuid
from pathlib import Path
from typing import Any, AsyncIterator, Callable

from bathroomfinder.core.env import resolve_project_path
from bathroomfinder.core.time import epoch_ms
from bathroomfinder.feed.base import resolve_server_values, split_path
from bathroomfinder.feed.tree import read_path

logger = logging.getLogger(__name__)


def load_seed(path: str | Path) -> dict[str, Any]:
    """Load a datastore seed file (the database root, e.g. `{"bathrooms": {...}}`)."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Invalid seed root in {resolved}; expected a JSON object.")
    return payload


class MemoryFeed:
    """A `Feed` whose data lives in this process."""

    def __init__(self, root: dict[str, Any] | None = None, *, clock: Callable[[], int] = epoch_ms):
        self._root: dict[str, Any] = copy.deepcopy(root) if root else {}
        self._clock = clock
        self._subscribers: set[tuple[tuple[str, ...], asyncio.Queue[None]]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _node_for_write(self, parts: list[str]) -> dict[str, Any]:
        node = self._root
        for key in parts:
            child = node.get(key)
            if isinstance(child, list):
                # The remote store keeps arrays as index-keyed objects.
                child = {str(i): v for i, v in enumerate(child) if v is not None}
                node[key] = child
            elif not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        return node

    def _notify(self, parts: list[str]) -> None:
        for prefix, queue in list(self._subscribers):
            if tuple(parts[: len(prefix)]) == prefix:
                queue.put_nowait(None)

    async def fetch(self, collection: str) -> Any:
        return copy.deepcopy(read_path(self._root, collection))

    async def append(self, path: str, value: dict[str, Any]) -> str:
        parts = split_path(path)
        key = uuid.uuid4().hex[:20]
        self._node_for_write(parts)[key] = resolve_server_values(copy.deepcopy(value), self._clock())
        logger.info("Appended %s/%s", path, key)
        self._notify(parts)
        return key

    async def subscribe(self, collection: str) -> AsyncIterator[Any]:
        queue: asyncio.Queue[None] = asyncio.Queue()
        entry = (tuple(split_path(collection)), queue)
        self._subscribers.add(entry)
        try:
            yield await self.fetch(collection)
            while True:
                await queue.get()
                yield await self.fetch(collection)
        finally:
            self._subscribers.discard(entry)
