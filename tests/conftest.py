"""
Shared fixtures: a fake clock and an in-process MkDocs site served through
httpx.MockTransport.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from docs_search.config import ClientOptions
from docs_search.site.client import DocsSiteClient

BASE_URL = "https://docs.example.com"


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSite:
    """
    Routes GET requests by path to canned JSON bodies or status codes and
    records every requested path.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Any] = {}
        self.requests: List[str] = []
        self.failures: Dict[str, int] = {}

    def json(self, path: str, body: Any, status: int = 200) -> None:
        self.routes[path] = (status, body)

    def fail(self, path: str, times: int) -> None:
        """Raise a connection error for the next ``times`` requests."""
        self.failures[path] = times

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)

        remaining = self.failures.get(path, 0)
        if remaining > 0:
            self.failures[path] = remaining - 1
            raise httpx.ConnectError("connection refused", request=request)

        if path not in self.routes:
            return httpx.Response(404, json={"detail": "not found"})

        status, body = self.routes[path]
        if isinstance(body, str):
            return httpx.Response(status, content=body.encode())
        return httpx.Response(status, content=json.dumps(body).encode())

    def count(self, path: str) -> int:
        return self.requests.count(path)


async def _no_sleep(_: float) -> None:
    return None


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def make_client(site: FakeSite) -> Callable[..., DocsSiteClient]:
    def _make(retry_attempts: int = 3, sleep: Optional[Callable] = None) -> DocsSiteClient:
        return DocsSiteClient(
            BASE_URL,
            options=ClientOptions(
                retry_attempts=retry_attempts,
                retry_base_delay_ms=1000,
                timeout_seconds=5,
            ),
            transport=httpx.MockTransport(site.handler),
            sleep=sleep or _no_sleep,
        )

    return _make


MANIFEST = [
    {"version": "v2.0", "title": "2.0", "aliases": ["latest"]},
    {"version": "v1.0", "title": "1.0", "aliases": []},
]

CORPUS = {
    "config": {"lang": ["en"], "separator": "[\\s\\-]+", "pipeline": ["stopWordFilter"]},
    "docs": [
        {
            "location": "install/",
            "title": "Installation",
            "text": "How to install the toolkit with pip and configure it.",
            "tags": ["setup"],
        },
        {
            "location": "install/#requirements",
            "title": "Requirements",
            "text": "Python and a working compiler are required before you install.",
        },
        {
            "location": "tracing/",
            "title": "Tracing",
            "text": "Tracing records spans for every request.",
        },
        {
            "location": "tracing/#exporters",
            "title": "Exporters",
            "text": "Exporters ship spans to a collector.",
        },
    ],
}


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def manifest() -> List[Dict[str, Any]]:
    return json.loads(json.dumps(MANIFEST))


@pytest.fixture
def corpus() -> Dict[str, Any]:
    return json.loads(json.dumps(CORPUS))
