"""
Filter & ranking engine.

Turns the three inputs (feed snapshot, optional user location, filter criteria) into
the ordered list the UI displays. Everything here is pure: same inputs, same output,
and the input snapshot is never mutated (distances go on copies).
"""

from __future__ import annotations

import logging
import math
from typing import Iterable

from bathroomfinder.config.settings import SearchMode
from bathroomfinder.core.geo import haversine_miles
from bathroomfinder.domain.models import Bathroom, Coordinate, FilterCriteria

logger = logging.getLogger(__name__)


def attach_distances(snapshot: Iterable[Bathroom], location: Coordinate | None) -> list[Bathroom]:
    """Return copies of `snapshot` with `distance` set (or cleared when no location)."""
    if location is None:
        return [b.model_copy(update={"distance": None}) for b in snapshot]
    origin = location.to_point()
    return [b.model_copy(update={"distance": haversine_miles(origin, b.to_point())}) for b in snapshot]


def matches_search(bathroom: Bathroom, query: str) -> bool:
    """Case-insensitive substring match against name or description."""
    needle = query.casefold()
    return needle in bathroom.name.casefold() or needle in bathroom.description.casefold()


def passes_attribute_filters(bathroom: Bathroom, criteria: FilterCriteria) -> bool:
    if criteria.wheelchair_access and not bathroom.has_wheelchair_access:
        return False
    if criteria.changing_tables and not bathroom.has_changing_tables:
        return False
    if criteria.gender_neutral and not bathroom.is_gender_neutral:
        return False
    if bathroom.rating < criteria.min_rating:
        return False
    return True


def passes_filters(bathroom: Bathroom, criteria: FilterCriteria, *, search_mode: SearchMode = "all") -> bool:
    """Apply all criteria to one bathroom.

    search_mode:
    - "all": attribute, rating and search checks must all pass.
    - "search_overrides": with a non-empty query, a text match alone decides
      inclusion (attribute and rating checks are skipped).
    """
    if criteria.search_query:
        if search_mode == "search_overrides":
            return matches_search(bathroom, criteria.search_query)
        if not matches_search(bathroom, criteria.search_query):
            return False
    return passes_attribute_filters(bathroom, criteria)


def _distance_key(bathroom: Bathroom) -> float:
    return bathroom.distance if bathroom.distance is not None else math.inf


def rank_bathrooms(
    snapshot: Iterable[Bathroom],
    location: Coordinate | None,
    criteria: FilterCriteria,
    *,
    search_mode: SearchMode = "all",
) -> list[Bathroom]:
    """Attach distances, filter, then stable-sort nearest first (no distance sorts last)."""
    with_distance = attach_distances(snapshot, location)
    kept = [b for b in with_distance if passes_filters(b, criteria, search_mode=search_mode)]
    # `sorted` is stable, so equal distances (and all-missing) keep snapshot order.
    ranked = sorted(kept, key=_distance_key)
    logger.debug("Ranked %d of %d bathrooms (location=%s)", len(ranked), len(with_distance), location is not None)
    return ranked
