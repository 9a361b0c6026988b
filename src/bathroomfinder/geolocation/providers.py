"""
Geolocation providers.

A provider answers one question, once per session: "where is the user?". Any
failure (denied, unknown, network) is raised as `GeolocationError`; the caller
degrades to "no location" and ranking continues without distances.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from bathroomfinder.config.settings import Settings
from bathroomfinder.core.http import get_json
from bathroomfinder.domain.models import Coordinate

logger = logging.getLogger(__name__)


class GeolocationError(RuntimeError):
    """The user's position could not be determined (or access was denied)."""


class LocationProvider(Protocol):
    async def get_current_position(self) -> Coordinate: ...


class StaticLocationProvider:
    """Always reports a fixed, configured coordinate."""

    def __init__(self, coordinate: Coordinate):
        self._coordinate = coordinate

    async def get_current_position(self) -> Coordinate:
        return self._coordinate


class DeniedLocationProvider:
    """Behaves like a user who declined the location prompt."""

    async def get_current_position(self) -> Coordinate:
        raise GeolocationError("Location access is disabled.")


class IpLocationProvider:
    """Approximates the position from the public IP (ip-api.com JSON shape)."""

    def __init__(self, url: str, *, timeout_seconds: float = 15):
        self._url = url
        self._timeout_seconds = timeout_seconds

    async def get_current_position(self) -> Coordinate:
        try:
            payload: Any = await get_json(self._url, timeout_seconds=self._timeout_seconds)
        except (httpx.HTTPError, ValueError) as exc:
            raise GeolocationError(f"IP lookup failed: {exc}") from exc

        if not isinstance(payload, dict) or payload.get("status", "success") != "success":
            message = payload.get("message") if isinstance(payload, dict) else None
            raise GeolocationError(f"IP lookup returned no position ({message or 'unexpected response'}).")
        try:
            return Coordinate(lat=float(payload["lat"]), lng=float(payload["lon"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GeolocationError(f"IP lookup returned an invalid position: {exc}") from exc


def build_location_provider(settings: Settings) -> LocationProvider:
    """Construct the configured provider."""
    geo = settings.geolocation
    if geo.provider == "static":
        if geo.lat is None or geo.lng is None:
            raise ValueError("geolocation.provider 'static' requires geolocation.lat and geolocation.lng.")
        return StaticLocationProvider(Coordinate(lat=geo.lat, lng=geo.lng))
    if geo.provider == "ip":
        return IpLocationProvider(geo.ip_lookup_url, timeout_seconds=settings.app.http_timeout_seconds)
    return DeniedLocationProvider()
