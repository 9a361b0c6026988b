"""
Firebase Realtime Database feed client.

Uses the documented REST surface:
- `GET  {base_url}/{path}.json`                      one-shot read
- `POST {base_url}/{path}.json`                      push a child, returns `{"name": <id>}`
- `GET  {base_url}/{path}.json` + text/event-stream   live `put`/`patch` events

The stream is folded into a local tree so `subscribe()` yields the complete
collection after every change, matching the `Feed` contract.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, AsyncIterator

import httpx

from bathroomfinder.config.settings import Settings
from bathroomfinder.core.http import get_json, post_json, stream_events
from bathroomfinder.feed.base import FeedError, resolve_server_values, split_path
from bathroomfinder.feed.tree import apply_patch, apply_put

logger = logging.getLogger(__name__)

FIREBASE_SERVER_TIMESTAMP = {".sv": "timestamp"}


class FirebaseFeed:
    """Talks to one Firebase Realtime Database instance."""

    def __init__(self, settings: Settings):
        base_url = settings.feed.base_url
        if not base_url:
            raise RuntimeError(
                "Firebase feed requires feed.base_url (or BATHROOMFINDER_FEED_URL) to be set."
            )
        self._base_url = base_url.rstrip("/")
        self._auth_token = settings.feed.auth_token
        self._timeout_seconds = settings.app.http_timeout_seconds

    def _url(self, path: str) -> str:
        return f"{self._base_url}/{'/'.join(split_path(path))}.json"

    def _params(self) -> dict[str, Any] | None:
        return {"auth": self._auth_token} if self._auth_token else None

    async def fetch(self, collection: str) -> Any:
        try:
            return await get_json(
                self._url(collection), params=self._params(), timeout_seconds=self._timeout_seconds
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise FeedError(f"Could not read '{collection}' from the feed: {exc}") from exc

    async def append(self, path: str, value: dict[str, Any]) -> str:
        payload = resolve_server_values(value, FIREBASE_SERVER_TIMESTAMP)
        try:
            body = await post_json(
                self._url(path),
                payload=payload,
                params=self._params(),
                timeout_seconds=self._timeout_seconds,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise FeedError(f"Could not write to '{path}': {exc}") from exc

        name = body.get("name") if isinstance(body, dict) else None
        if not name:
            raise FeedError(f"Feed accepted the write to '{path}' but returned no id.")
        logger.info("Appended %s/%s", path, name)
        return str(name)

    async def subscribe(self, collection: str) -> AsyncIterator[Any]:
        tree: Any = None
        try:
            async for event in stream_events(self._url(collection), params=self._params()):
                if event.event == "keep-alive":
                    continue
                if event.event in {"cancel", "auth_revoked"}:
                    raise FeedError(f"Feed closed the '{collection}' stream ({event.event}).")
                if event.event not in {"put", "patch"}:
                    logger.debug("Ignoring feed event %r", event.event)
                    continue

                message = json.loads(event.data)
                path = message.get("path") or "/"
                data = message.get("data")
                if event.event == "put":
                    tree = apply_put(tree, path, data)
                else:
                    tree = apply_patch(tree, path, data)
                yield copy.deepcopy(tree)
        except (httpx.HTTPError, ValueError) as exc:
            raise FeedError(f"Feed stream for '{collection}' failed: {exc}") from exc
