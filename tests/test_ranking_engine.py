import pytest

from bathroomfinder.domain.models import Bathroom, Coordinate, FilterCriteria
from bathroomfinder.ranking.engine import passes_filters, rank_bathrooms


def _bathroom(id, name, *, lat=40.75, lng=-73.98, rating=None, description="", **flags):
    count, total = (1, rating) if rating else (0, 0)
    return Bathroom(
        id=id,
        name=name,
        description=description,
        lat=lat,
        lng=lng,
        rating_count=count,
        total_rating=total,
        **flags,
    )


def _ids(results):
    return [b.id for b in results]


def test_wheelchair_filter_without_location_keeps_only_park():
    snapshot = [
        _bathroom("park", "Park", rating=4, has_wheelchair_access=True),
        _bathroom("station", "Station", rating=2, has_wheelchair_access=False),
    ]
    criteria = FilterCriteria(wheelchair_access=True, min_rating=0)

    results = rank_bathrooms(snapshot, None, criteria)

    assert _ids(results) == ["park"]
    assert results[0].distance is None
    assert results[0].name == "Park"


def test_unrated_bathroom_has_zero_rating_and_fails_any_min_rating():
    unrated = _bathroom("u", "Unrated")
    assert unrated.rating == 0

    assert _ids(rank_bathrooms([unrated], None, FilterCriteria(min_rating=0))) == ["u"]
    assert rank_bathrooms([unrated], None, FilterCriteria(min_rating=0.5)) == []


def test_sorted_nearest_first_when_location_known():
    here = Coordinate(lat=40.7500, lng=-73.9800)
    snapshot = [
        _bathroom("far", "Far", lat=40.8500, lng=-73.9800),
        _bathroom("near", "Near", lat=40.7510, lng=-73.9800),
        _bathroom("mid", "Mid", lat=40.7800, lng=-73.9800),
    ]

    results = rank_bathrooms(snapshot, here, FilterCriteria())

    assert _ids(results) == ["near", "mid", "far"]
    distances = [b.distance for b in results]
    assert all(d is not None for d in distances)
    assert distances == sorted(distances)


def test_zero_distance_sorts_first_not_last():
    here = Coordinate(lat=40.75, lng=-73.98)
    snapshot = [
        _bathroom("other", "Other", lat=40.76, lng=-73.98),
        _bathroom("here", "Right Here", lat=40.75, lng=-73.98),
    ]

    results = rank_bathrooms(snapshot, here, FilterCriteria())

    assert _ids(results) == ["here", "other"]
    assert results[0].distance == 0


def test_without_location_snapshot_order_is_preserved():
    snapshot = [_bathroom(str(i), f"B{i}") for i in range(6)]

    results = rank_bathrooms(snapshot, None, FilterCriteria())

    assert _ids(results) == ["0", "1", "2", "3", "4", "5"]
    assert all(b.distance is None for b in results)


def test_equal_distances_keep_snapshot_order():
    here = Coordinate(lat=40.75, lng=-73.98)
    snapshot = [
        _bathroom("b", "B", lat=40.76, lng=-73.98),
        _bathroom("a", "A", lat=40.76, lng=-73.98),
        _bathroom("c", "C", lat=40.75, lng=-73.98),
    ]

    assert _ids(rank_bathrooms(snapshot, here, FilterCriteria())) == ["c", "b", "a"]


def test_ranking_does_not_mutate_snapshot():
    snapshot = [_bathroom("a", "A")]

    rank_bathrooms(snapshot, Coordinate(lat=40.0, lng=-74.0), FilterCriteria())

    assert snapshot[0].distance is None


def test_search_is_case_insensitive_over_name_and_description():
    snapshot = [
        _bathroom("lib", "Public Library", description="Ground floor"),
        _bathroom("cafe", "Corner Cafe", description="Ask for the KEY at the counter"),
        _bathroom("gym", "Gym"),
    ]

    assert _ids(rank_bathrooms(snapshot, None, FilterCriteria(search_query="LIBRARY"))) == ["lib"]
    assert _ids(rank_bathrooms(snapshot, None, FilterCriteria(search_query="key"))) == ["cafe"]


def test_all_mode_combines_search_with_other_filters():
    snapshot = [
        _bathroom("match-no-access", "Park Restroom", has_wheelchair_access=False),
        _bathroom("match-access", "Park Pavilion", has_wheelchair_access=True),
    ]
    criteria = FilterCriteria(wheelchair_access=True, search_query="park")

    assert _ids(rank_bathrooms(snapshot, None, criteria, search_mode="all")) == ["match-access"]


def test_search_overrides_mode_lets_text_match_bypass_other_filters():
    snapshot = [
        _bathroom("match-no-access", "Park Restroom", has_wheelchair_access=False),
        _bathroom("no-match-access", "Station", has_wheelchair_access=True, rating=5),
    ]
    criteria = FilterCriteria(wheelchair_access=True, min_rating=3, search_query="park")

    assert _ids(rank_bathrooms(snapshot, None, criteria, search_mode="search_overrides")) == ["match-no-access"]
    # Without a query, the other filters still apply in this mode.
    no_query = criteria.model_copy(update={"search_query": ""})
    assert _ids(rank_bathrooms(snapshot, None, no_query, search_mode="search_overrides")) == ["no-match-access"]


def test_filtering_is_idempotent():
    here = Coordinate(lat=40.75, lng=-73.98)
    snapshot = [
        _bathroom("a", "Alpha", lat=40.80, rating=4, has_changing_tables=True),
        _bathroom("b", "Beta", lat=40.76, rating=3, has_changing_tables=True),
        _bathroom("c", "Gamma", lat=40.77, rating=5, has_changing_tables=False),
    ]
    criteria = FilterCriteria(changing_tables=True, min_rating=3)

    once = rank_bathrooms(snapshot, here, criteria)
    twice = rank_bathrooms(once, here, criteria)

    assert _ids(once) == _ids(twice) == ["b", "a"]


@pytest.mark.parametrize(
    "criteria",
    [
        FilterCriteria(wheelchair_access=True),
        FilterCriteria(changing_tables=True, gender_neutral=True),
        FilterCriteria(min_rating=3.5),
        FilterCriteria(search_query="station", min_rating=1),
    ],
)
def test_every_result_satisfies_active_criteria(criteria):
    snapshot = [
        _bathroom("1", "Station North", rating=4, has_wheelchair_access=True, is_gender_neutral=True),
        _bathroom("2", "Station South", rating=1, has_changing_tables=True, is_gender_neutral=True),
        _bathroom("3", "Museum", rating=5, has_wheelchair_access=True, has_changing_tables=True, is_gender_neutral=True),
        _bathroom("4", "Diner", description="near the station", rating=3.5),
        _bathroom("5", "Unrated Spot"),
    ]

    results = rank_bathrooms(snapshot, None, criteria)

    for b in results:
        assert passes_filters(b, criteria)
        if criteria.wheelchair_access:
            assert b.has_wheelchair_access
        if criteria.changing_tables:
            assert b.has_changing_tables
        if criteria.gender_neutral:
            assert b.is_gender_neutral
        assert b.rating >= criteria.min_rating
        if criteria.search_query:
            q = criteria.search_query.lower()
            assert q in b.name.lower() or q in b.description.lower()


def test_engine_module_is_documented():
    from bathroomfinder.ranking import engine

    assert engine.__doc__ and "pure" in engine.__doc__
