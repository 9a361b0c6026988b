"""
Feed contract.

The feed is the external real-time datastore that owns every bathroom and comment.
We only rely on three primitives, so any backend (Firebase, in-process, a test stub)
can be swapped in:
- `subscribe(collection)`: async stream of *full* snapshots (never diffs)
- `fetch(collection)`: one-shot read of the current snapshot
- `append(path, value)`: push a child under `path`; the feed assigns the id
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Protocol


class FeedError(RuntimeError):
    """Transport or remote failure while talking to the feed."""


class _ServerTimestamp:
    """Sentinel replaced by the backend with the datastore's own clock."""

    _instance: "_ServerTimestamp | None" = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class Feed(Protocol):
    def subscribe(self, collection: str) -> AsyncIterator[Any]: ...

    async def fetch(self, collection: str) -> Any: ...

    async def append(self, path: str, value: dict[str, Any]) -> str: ...


def split_path(path: str) -> list[str]:
    """Split a slash-separated datastore path into its non-empty segments."""
    return [p for p in path.strip("/").split("/") if p]


def resolve_server_values(value: Any, replacement: Any) -> Any:
    """Return a copy of `value` with every SERVER_TIMESTAMP swapped for `replacement`."""
    if value is SERVER_TIMESTAMP:
        return replacement
    if isinstance(value, dict):
        return {k: resolve_server_values(v, replacement) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_server_values(v, replacement) for v in value]
    return value
