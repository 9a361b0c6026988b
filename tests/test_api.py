import time

import pytest
from starlette.testclient import TestClient

from bathroomfinder.api.app import app
from bathroomfinder.domain.models import Coordinate
from bathroomfinder.feed.base import FeedError
from bathroomfinder.feed.memory import MemoryFeed
from bathroomfinder.geolocation.providers import StaticLocationProvider
from bathroomfinder.ranking.context import FinderContext

SEED = {
    "bathrooms": {
        "park": {
            "name": "Park",
            "description": "By the pond",
            "lat": 40.751,
            "lng": -73.98,
            "hasWheelchairAccess": True,
            "ratingCount": 1,
            "totalRating": 4,
        },
        "station": {
            "name": "Station",
            "description": "Lower level",
            "lat": 40.76,
            "lng": -73.98,
            "ratingCount": 1,
            "totalRating": 2,
        },
    }
}


class ReadOnlyFeed(MemoryFeed):
    async def append(self, path, value):
        raise FeedError("write denied")


def _client(monkeypatch, feed):
    def fake_build_context(settings):
        return FinderContext(feed, StaticLocationProvider(Coordinate(lat=40.75, lng=-73.98)))

    monkeypatch.setattr("bathroomfinder.api.app.build_context", fake_build_context)
    return TestClient(app)


def _wait_for(client, predicate, attempts=50):
    body = None
    for _ in range(attempts):
        body = client.get("/api/view").json()
        if predicate(body):
            return body
        time.sleep(0.02)
    return body


def test_view_returns_ranked_results_in_camel_case(monkeypatch):
    with _client(monkeypatch, MemoryFeed(SEED)) as client:
        resp = client.get("/api/view")

    assert resp.status_code == 200
    body = resp.json()
    assert body["loading"] is False
    assert body["count"] == 2
    assert body["searchMode"] == "all"
    assert [b["id"] for b in body["results"]] == ["park", "station"]
    assert body["results"][0]["hasWheelchairAccess"] is True
    assert body["results"][0]["rating"] == 4
    assert body["results"][0]["distance"] == pytest.approx(0.069, abs=0.001)


def test_patch_filters_applies_one_typed_update(monkeypatch):
    with _client(monkeypatch, MemoryFeed(SEED)) as client:
        resp = client.patch("/api/filters", json={"field": "wheelchairAccess", "value": True})
        view = client.get("/api/view").json()

    assert resp.status_code == 200
    assert resp.json()["wheelchairAccess"] is True
    assert [b["id"] for b in view["results"]] == ["park"]


def test_patch_filters_rejects_unknown_field(monkeypatch):
    with _client(monkeypatch, MemoryFeed(SEED)) as client:
        resp = client.patch("/api/filters", json={"field": "stars", "value": 3})

    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_put_filters_replaces_criteria(monkeypatch):
    with _client(monkeypatch, MemoryFeed(SEED)) as client:
        client.put("/api/filters", json={"minRating": 3, "searchQuery": "POND"})
        filters = client.get("/api/filters").json()
        view = client.get("/api/view").json()

    assert filters["minRating"] == 3
    assert [b["id"] for b in view["results"]] == ["park"]


def test_submitted_bathroom_appears_through_the_feed(monkeypatch):
    draft = {"name": "Library", "description": "Second floor", "lat": "40.7532", "lng": "-73.9822", "isGenderNeutral": True}

    with _client(monkeypatch, MemoryFeed(SEED)) as client:
        resp = client.post("/api/bathrooms", json=draft)
        view = _wait_for(client, lambda body: body["count"] == 3)

    assert resp.status_code == 201
    new_id = resp.json()["id"]
    added = next(b for b in view["results"] if b["id"] == new_id)
    assert added["rating"] == 0
    assert added["ratingCount"] == 0
    assert added["comments"] == []


def test_invalid_bathroom_is_rejected_before_writing(monkeypatch):
    feed = MemoryFeed(SEED)
    with _client(monkeypatch, feed) as client:
        resp = client.post("/api/bathrooms", json={"name": " ", "description": "x", "lat": 1, "lng": 1})

    assert resp.status_code == 422
    assert feed.subscriber_count == 0
    assert len(feed._root["bathrooms"]) == 2


def test_comment_on_bathroom_is_listed_in_detail(monkeypatch):
    with _client(monkeypatch, MemoryFeed(SEED)) as client:
        resp = client.post("/api/bathrooms/park/comments", json={"text": "Clean and quiet"})
        for _ in range(50):
            detail = client.get("/api/bathrooms/park").json()
            if detail["comments"]:
                break
            time.sleep(0.02)

    assert resp.status_code == 201
    assert [c["text"] for c in detail["comments"]] == ["Clean and quiet"]
    assert detail["comments"][0]["userName"] == "Anonymous User"


def test_unknown_bathroom_is_404(monkeypatch):
    with _client(monkeypatch, MemoryFeed(SEED)) as client:
        detail = client.get("/api/bathrooms/nope")
        comment = client.post("/api/bathrooms/nope/comments", json={"text": "hello"})

    assert detail.status_code == 404
    assert comment.status_code == 404
    assert detail.json()["detail"]["code"] == "NOT_FOUND"


def test_feed_write_failure_is_reported_as_502(monkeypatch):
    draft = {"name": "Library", "description": "Second floor", "lat": 40.75, "lng": -73.98}

    with _client(monkeypatch, ReadOnlyFeed(SEED)) as client:
        resp = client.post("/api/bathrooms", json=draft)

    assert resp.status_code == 502
    assert resp.json()["detail"]["code"] == "FEED_WRITE_ERROR"
    assert "write denied" in resp.json()["detail"]["message"]


def test_health_reports_input_status(monkeypatch):
    with _client(monkeypatch, MemoryFeed(SEED)) as client:
        body = client.get("/api/health").json()

    assert body == {"status": "ok", "loading": False, "has_location": True, "bathroom_count": 2}
