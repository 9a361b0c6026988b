"""
API routes.

Endpoints:
- GET   `/api/view`: ranked, filtered list for the current session inputs.
- GET   `/api/filters`, PUT `/api/filters`, PATCH `/api/filters`: read/replace/edit filters.
- GET   `/api/bathrooms/{id}`: one bathroom with comments and distance.
- POST  `/api/bathrooms`: submit a new bathroom.
- POST  `/api/bathrooms/{id}/comments`: append a comment.
- GET   `/api/health`: liveness plus input status.

Handlers are `async` so they run on the same event loop as the context's feed
subscription (single-threaded; no locking needed).
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import TypeAdapter, ValidationError

from bathroomfinder.domain.models import BathroomDraft, CommentDraft, FilterCriteria, FilterUpdate
from bathroomfinder.ranking.context import FinderContext
from bathroomfinder.submissions import SubmissionError, add_comment, submit_bathroom

logger = logging.getLogger(__name__)

router = APIRouter()

_FILTER_UPDATE_ADAPTER: TypeAdapter[FilterUpdate] = TypeAdapter(FilterUpdate)

_INTERNAL_ERROR = {"code": "INTERNAL_ERROR", "message": "Something went wrong"}


def get_context(request: Request) -> FinderContext:
    return request.app.state.context


def _dump(model: Any) -> dict:
    return model.model_dump(mode="json", by_alias=True)


@router.get("/api/health")
async def get_health(context: FinderContext = Depends(get_context)) -> dict:
    return {
        "status": "ok",
        "loading": context.loading,
        "has_location": context.location is not None,
        "bathroom_count": len(context.snapshot),
    }


@router.get("/api/view")
async def get_view(context: FinderContext = Depends(get_context)) -> dict:
    """Return the filtered, distance-ranked list the UI should render."""
    try:
        return _dump(context.view())
    except Exception as e:
        logger.exception("Failed to build view")
        raise HTTPException(status_code=500, detail=_INTERNAL_ERROR) from e


@router.get("/api/filters")
async def get_filters(context: FinderContext = Depends(get_context)) -> dict:
    return _dump(context.filters)


@router.put("/api/filters")
async def put_filters(criteria: FilterCriteria, context: FinderContext = Depends(get_context)) -> dict:
    return _dump(context.set_filters(criteria))


@router.patch("/api/filters")
async def patch_filters(
    payload: dict[str, Any] = Body(...), context: FinderContext = Depends(get_context)
) -> dict:
    """Apply one typed field update, e.g. `{"field": "minRating", "value": 3.5}`."""
    try:
        update = _FILTER_UPDATE_ADAPTER.validate_python(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"code": "VALIDATION_ERROR", "message": "Invalid filter update", "errors": e.errors(include_url=False, include_context=False)},
        ) from e
    return _dump(context.update_filters(update))


@router.get("/api/bathrooms/{bathroom_id}")
async def get_bathroom(bathroom_id: str, context: FinderContext = Depends(get_context)) -> dict:
    bathroom = context.get_bathroom(bathroom_id)
    if bathroom is None:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": f"Unknown bathroom '{bathroom_id}'"})
    return _dump(bathroom)


@router.post("/api/bathrooms", status_code=201)
async def post_bathroom(draft: BathroomDraft, context: FinderContext = Depends(get_context)) -> dict:
    """Submit a new bathroom; it shows up in `/api/view` once the feed echoes it back."""
    try:
        bathroom_id = await submit_bathroom(context.feed, draft, collection=context.collection)
    except SubmissionError as e:
        raise HTTPException(status_code=502, detail={"code": "FEED_WRITE_ERROR", "message": str(e)}) from e
    except Exception as e:
        logger.exception("Bathroom submission crashed")
        raise HTTPException(status_code=500, detail=_INTERNAL_ERROR) from e
    return {"id": bathroom_id}


@router.post("/api/bathrooms/{bathroom_id}/comments", status_code=201)
async def post_comment(
    bathroom_id: str, draft: CommentDraft, context: FinderContext = Depends(get_context)
) -> dict:
    if context.get_bathroom(bathroom_id) is None:
        raise HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": f"Unknown bathroom '{bathroom_id}'"})
    try:
        comment_key = await add_comment(context.feed, bathroom_id, draft, collection=context.collection)
    except SubmissionError as e:
        raise HTTPException(status_code=502, detail={"code": "FEED_WRITE_ERROR", "message": str(e)}) from e
    except Exception as e:
        logger.exception("Comment submission crashed")
        raise HTTPException(status_code=500, detail=_INTERNAL_ERROR) from e
    return {"id": comment_key}
