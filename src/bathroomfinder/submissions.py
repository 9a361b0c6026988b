"""
User writes: new bathrooms and comments.

Both are single attempts. Validation happens on the draft models before anything is
sent; a feed failure is re-raised as `SubmissionError` with a message fit for the
user. The new data reaches the UI only through the feed subscription (no local
optimistic update).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from bathroomfinder.core.time import epoch_ms, to_iso, utc_now
from bathroomfinder.domain.models import BathroomDraft, CommentDraft
from bathroomfinder.feed.base import SERVER_TIMESTAMP, Feed, FeedError

logger = logging.getLogger(__name__)

ANONYMOUS_USER_ID = "anonymous"
ANONYMOUS_USER_NAME = "Anonymous User"


class SubmissionError(RuntimeError):
    """A write to the feed failed; `str(exc)` is safe to show to the user."""


def build_bathroom_record(draft: BathroomDraft, *, now: datetime | None = None) -> dict[str, Any]:
    """Return the feed payload for a new bathroom (rating totals zeroed, no comments)."""
    record = draft.model_dump(by_alias=True)
    record.update(
        {
            "rating": 0,
            "ratingCount": 0,
            "totalRating": 0,
            "lastReviewed": to_iso(now or utc_now()),
            "comments": [],
        }
    )
    return record


def build_comment_record(draft: CommentDraft, *, now: datetime | None = None) -> dict[str, Any]:
    """Return the feed payload for a new anonymous comment."""
    return {
        "id": str(epoch_ms(now)),
        "text": draft.text,
        "createdAt": SERVER_TIMESTAMP,
        "userId": ANONYMOUS_USER_ID,
        "userName": ANONYMOUS_USER_NAME,
    }


async def submit_bathroom(feed: Feed, draft: BathroomDraft, *, collection: str = "bathrooms") -> str:
    """Append a new bathroom to `collection`; returns the id assigned by the feed."""
    try:
        bathroom_id = await feed.append(collection, build_bathroom_record(draft))
    except FeedError as exc:
        logger.warning("Bathroom submission failed: %s", exc)
        raise SubmissionError(f"Could not add the bathroom: {exc}") from exc
    logger.info("Added bathroom %s (%s)", bathroom_id, draft.name)
    return bathroom_id


async def add_comment(
    feed: Feed, bathroom_id: str, draft: CommentDraft, *, collection: str = "bathrooms"
) -> str:
    """Append a comment to `<collection>/<bathroom_id>/comments`; returns its feed key."""
    try:
        key = await feed.append(f"{collection}/{bathroom_id}/comments", build_comment_record(draft))
    except FeedError as exc:
        logger.warning("Comment on %s failed: %s", bathroom_id, exc)
        raise SubmissionError(f"Could not add the comment: {exc}") from exc
    return key
