"""Shared pytest fixtures: environment, a scripted remote backend and fakes."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from scraperis_agent.config.settings import get_settings
from scraperis_agent.jobs.client import ExtractionServiceClient, StorageSigner
from scraperis_agent.jobs.coordinator import JobCoordinator
from scraperis_agent.jobs.models import OutputKind, ResultPayload, SubmitResponse
from scraperis_agent.service import ScrapeService, get_scrape_service

API_BASE = "https://scraper.test/api"
STORAGE_URL = "https://storage.test/storage/v1"


@pytest.fixture(autouse=True)
def scraperis_env(monkeypatch: pytest.MonkeyPatch):
    """Every test starts with a known key and fresh cached singletons."""
    monkeypatch.setenv("SCRAPERIS_API_KEY", "test-key")
    monkeypatch.delenv("SCRAPERIS_STORAGE_URL", raising=False)
    get_settings.cache_clear()
    get_scrape_service.cache_clear()
    yield
    get_settings.cache_clear()
    get_scrape_service.cache_clear()


class ScriptedBackend:
    """MockTransport handler that answers by route and records every request.

    ``get_data`` routes are keyed with their ``format`` query parameter, e.g.
    ``/api/get_data?format=quick``. When a route has several scripted
    replies they are consumed in order; the last one repeats.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, route: str, *replies: Any) -> None:
        self.routes[(method, route)] = list(replies)

    def _route(self, request: httpx.Request) -> str:
        path = request.url.path
        if path.endswith("/get_data"):
            return f"{path}?format={request.url.params.get('format')}"
        return path

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, self._route(request)))
        if not replies:
            return httpx.Response(404, json={"error": "route not scripted"})
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return httpx.Response(
                reply.status_code, headers=reply.headers, content=reply.content
            )
        return httpx.Response(200, json=reply)

    def calls(self, method: str, route: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and self._route(request) == route
        ]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def make_service(backend: ScriptedBackend) -> Callable[..., ScrapeService]:
    def _make(storage_url: str = "", poll_interval_seconds: float = 0.01) -> ScrapeService:
        transport = backend.transport
        client = ExtractionServiceClient("test-key", API_BASE, transport=transport)
        signer = StorageSigner(
            storage_url=storage_url, storage_key="storage-key", transport=transport
        )
        coordinator = JobCoordinator(client, poll_interval_seconds=poll_interval_seconds)
        return ScrapeService(client, signer, coordinator)

    return _make


class FakeExtractionService:
    """In-memory stand-in for the extraction client used by the coordinator."""

    def __init__(self, submit_body: dict[str, Any], status_bodies: list[Any]) -> None:
        self.submit_body = submit_body
        self.status_bodies = status_bodies
        self.submitted: list[tuple[str, str]] = []
        self.status_sessions: list[str] = []

    async def submit(self, prompt: str, session_id: str) -> SubmitResponse:
        self.submitted.append((prompt, session_id))
        return SubmitResponse.from_remote(self.submit_body)

    async def status(
        self, session_id: str, kind_hint: OutputKind = OutputKind.COMPOSITE
    ) -> ResultPayload:
        self.status_sessions.append(session_id)
        index = min(len(self.status_sessions), len(self.status_bodies)) - 1
        body = self.status_bodies[index]
        if isinstance(body, Exception):
            raise body
        return ResultPayload.from_remote(body)


@pytest.fixture
def fake_service() -> Callable[..., FakeExtractionService]:
    def _make(
        submit_body: dict[str, Any], status_bodies: list[Any] | None = None
    ) -> FakeExtractionService:
        return FakeExtractionService(submit_body, status_bodies or [{"processing": True}])

    return _make
