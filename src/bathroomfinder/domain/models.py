"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- feed records (`Bathroom`, `Comment`) as stored in the real-time datastore
- user input (`BathroomDraft`, `CommentDraft`, `FilterCriteria`, `FilterUpdate`)
- engine output (`BathroomView`)

All models share one wire format: camelCase keys (`hasWheelchairAccess`,
`ratingCount`, ...), which is what the datastore and the web client use. Python
code always uses the snake_case attribute names.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel, to_snake

from bathroomfinder.config.settings import SearchMode
from bathroomfinder.core.geo import GeoPoint as CoreGeoPoint
from bathroomfinder.core.time import epoch_ms_to_iso


class FeedModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coordinate(FeedModel):
    """A user position in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_point(self) -> CoreGeoPoint:
        return CoreGeoPoint(lat=self.lat, lng=self.lng)


def _coerce_id(value: Any) -> Any:
    # Ids written by other clients are sometimes bare numbers (e.g. `Date.now()`).
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value))
    return value


class Comment(FeedModel):
    """One append-only comment on a bathroom."""

    id: str
    text: str
    created_at: str
    user_id: str = "anonymous"
    user_name: str = "Anonymous User"

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _normalize_created_at(cls, value: Any) -> Any:
        # Server-filled timestamps arrive as epoch milliseconds.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return epoch_ms_to_iso(value)
        return value


class Bathroom(FeedModel):
    """A point of interest as delivered by the feed, plus the derived distance."""

    id: str
    name: str
    description: str = ""
    lat: float
    lng: float
    has_wheelchair_access: bool = False
    has_changing_tables: bool = False
    is_gender_neutral: bool = False
    rating_count: int = Field(default=0, ge=0)
    total_rating: float = Field(default=0, ge=0)
    last_reviewed: str | None = None
    # Miles from the user; only set by the ranking engine, never written to the feed.
    distance: float | None = None
    comments: list[Comment] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def rating(self) -> float:
        """Average rating, always derived from the running totals (0 when unrated)."""
        if self.rating_count > 0:
            return self.total_rating / self.rating_count
        return 0.0

    def to_point(self) -> CoreGeoPoint:
        return CoreGeoPoint(lat=self.lat, lng=self.lng)


class FilterCriteria(FeedModel):
    """User-configured predicate used to narrow the displayed bathrooms."""

    wheelchair_access: bool = False
    changing_tables: bool = False
    gender_neutral: bool = False
    min_rating: float = Field(default=0, ge=0, le=5, multiple_of=0.5)
    search_query: str = ""


class _FilterUpdateBase(FeedModel):
    # Tags use the same camelCase names as `FilterCriteria` on the wire.

    def apply(self, criteria: FilterCriteria) -> FilterCriteria:
        """Return a copy of `criteria` with this field replaced."""
        return criteria.model_copy(update={to_snake(self.field): self.value})  # type: ignore[attr-defined]


class WheelchairAccessUpdate(_FilterUpdateBase):
    field: Literal["wheelchairAccess"]
    value: bool


class ChangingTablesUpdate(_FilterUpdateBase):
    field: Literal["changingTables"]
    value: bool


class GenderNeutralUpdate(_FilterUpdateBase):
    field: Literal["genderNeutral"]
    value: bool


class MinRatingUpdate(_FilterUpdateBase):
    field: Literal["minRating"]
    value: float = Field(..., ge=0, le=5, multiple_of=0.5)


class SearchQueryUpdate(_FilterUpdateBase):
    field: Literal["searchQuery"]
    value: str


FilterUpdate = Annotated[
    Union[
        WheelchairAccessUpdate,
        ChangingTablesUpdate,
        GenderNeutralUpdate,
        MinRatingUpdate,
        SearchQueryUpdate,
    ],
    Field(discriminator="field"),
]


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class BathroomDraft(FeedModel):
    """A user-submitted bathroom before the feed assigns it an id."""

    name: str
    description: str
    lat: float = Field(..., allow_inf_nan=False)
    lng: float = Field(..., allow_inf_nan=False)
    has_wheelchair_access: bool = False
    has_changing_tables: bool = False
    is_gender_neutral: bool = False

    @field_validator("name", "description")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        return _require_text(value)


class CommentDraft(FeedModel):
    text: str

    @field_validator("text")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        return _require_text(value)


class BathroomView(FeedModel):
    """Ready-to-display engine output plus the inputs it was computed from."""

    loading: bool
    location: Coordinate | None
    filters: FilterCriteria
    search_mode: SearchMode
    results: list[Bathroom]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def count(self) -> int:
        return len(self.results)
