"""
Snapshot parsing.

The feed delivers the collection as `{id: record}` where each record's `comments`
is itself `{push_id: comment}` (or a list, or missing). We validate it into typed
`Bathroom` models so the ranking engine can assume a consistent shape. Malformed
records and comments are skipped with a warning instead of failing the snapshot.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from bathroomfinder.domain.models import Bathroom, Comment

logger = logging.getLogger(__name__)


def _children(value: Any) -> list[tuple[str, Any]]:
    if isinstance(value, dict):
        return [(str(k), v) for k, v in value.items()]
    if isinstance(value, list):
        return [(str(i), v) for i, v in enumerate(value) if v is not None]
    return []


def parse_comments(raw: Any, *, bathroom_id: str = "") -> list[Comment]:
    """Return comments in stored (insertion) order; never reordered or deduplicated."""
    comments: list[Comment] = []
    for key, value in _children(raw):
        if not isinstance(value, dict):
            continue
        try:
            comments.append(Comment.model_validate({"id": key, **value}))
        except ValidationError as exc:
            logger.warning("Skipping malformed comment %s/%s: %s", bathroom_id, key, exc)
    return comments


def parse_snapshot(raw: Any) -> list[Bathroom]:
    """Convert a raw collection snapshot into bathrooms, preserving snapshot order."""
    bathrooms: list[Bathroom] = []
    for key, value in _children(raw):
        if not isinstance(value, dict):
            logger.warning("Skipping non-object bathroom entry %s", key)
            continue
        payload = {k: v for k, v in value.items() if k != "comments"}
        payload["id"] = key
        try:
            bathroom = Bathroom.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Skipping malformed bathroom %s: %s", key, exc)
            continue
        comments = parse_comments(value.get("comments"), bathroom_id=key)
        bathrooms.append(bathroom.model_copy(update={"comments": comments}))
    return bathrooms
