"""
HTTP helpers.

This module centralizes the minimal HTTP client logic used by the feed and geolocation
clients.

Design goals:
- Small surface area (GET JSON, POST JSON, server-sent event stream).
- Deterministic defaults (timeout + User-Agent).
- Raise on non-2xx so callers can decide how to fail.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator

import httpx


DEFAULT_USER_AGENT = "bathroomfinder/0.1.0 (+https://local)"


@dataclass(frozen=True)
class ServerSentEvent:
    event: str
    data: str


def _headers(extra: dict[str, str] | None) -> dict[str, str]:
    request_headers = {"User-Agent": DEFAULT_USER_AGENT}
    if extra:
        request_headers.update(extra)
    return request_headers


async def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float | None = 15,
) -> Any:
    """GET `url` and return the decoded JSON response.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as client:
        resp = await client.get(url, params=params, headers=_headers(headers))
        resp.raise_for_status()
        return resp.json()


async def post_json(
    url: str,
    *,
    payload: Any,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float | None = 15,
) -> Any:
    """POST `payload` as a JSON body and return the decoded JSON response.

    Raises:
        httpx.HTTPError: On transport errors or non-2xx status codes.
        ValueError: If the response body is not valid JSON.
    """
    async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as client:
        resp = await client.post(url, json=payload, params=params, headers=_headers(headers))
        resp.raise_for_status()
        return resp.json()


async def parse_sse_lines(lines: AsyncIterator[str]) -> AsyncIterator[ServerSentEvent]:
    """Group raw `text/event-stream` lines into events (blank line terminates an event)."""
    event = "message"
    data: list[str] = []
    async for line in lines:
        if not line:
            if data:
                yield ServerSentEvent(event=event, data="\n".join(data))
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    if data:
        yield ServerSentEvent(event=event, data="\n".join(data))


async def stream_events(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float | None = None,
) -> AsyncIterator[ServerSentEvent]:
    """Open a server-sent event stream and yield events until the server closes it.

    The default timeout is None: long-lived streams stay open for the lifetime of the
    consumer, and closing the iterator closes the connection.
    """
    request_headers = _headers({"Accept": "text/event-stream", **(headers or {})})
    async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as client:
        async with client.stream("GET", url, params=params, headers=request_headers) as resp:
            resp.raise_for_status()
            async for event in parse_sse_lines(resp.aiter_lines()):
                yield event
