"""Tests for the extraction client and storage signer against a mock transport."""

from __future__ import annotations

import json

import httpx
import pytest

from scraperis_agent.errors import (
    AuthenticationRejected,
    MissingConfiguration,
    TransportError,
)
from scraperis_agent.jobs.client import ExtractionServiceClient, StorageSigner
from scraperis_agent.jobs.models import StructuredCollection

from conftest import API_BASE, STORAGE_URL


@pytest.fixture
def client(backend) -> ExtractionServiceClient:
    return ExtractionServiceClient("test-key", API_BASE, transport=backend.transport)


class TestExtractionServiceClient:
    @pytest.mark.asyncio
    async def test_submit_request_shape(self, backend, client) -> None:
        backend.add("POST", "/api/extract_prompt", {"job_id": "j-1", "processing": True})

        submitted = await client.submit("Top stories on example.com", "sess-1")

        request = backend.requests[0]
        assert str(request.url) == f"{API_BASE}/extract_prompt"
        assert request.headers["x-api-key"] == "test-key"
        assert json.loads(request.content) == {
            "prompt": "Top stories on example.com",
            "chat_id": "sess-1",
            "html_only": False,
            "format": "quick",
        }
        assert submitted.handle.job_id == "j-1"
        assert submitted.payload.processing is True

    @pytest.mark.asyncio
    async def test_status_uses_quick_format(self, backend, client) -> None:
        backend.add(
            "GET",
            "/api/get_data?format=quick",
            {"status": "completed", "markdown": "# Ok"},
        )

        payload = await client.status("sess-1")

        request = backend.requests[0]
        assert request.url.params["chat_id"] == "sess-1"
        assert payload.prose_text == "# Ok"

    @pytest.mark.asyncio
    async def test_fetch_structured_unwraps_data_key(self, backend, client) -> None:
        backend.add("GET", "/api/get_data?format=json", {"data": [{"a": 1}]})

        data = await client.fetch_structured("sess-1")

        assert isinstance(data, StructuredCollection)
        assert data.items == ({"a": 1},)

    @pytest.mark.asyncio
    async def test_screenshot_submission(self, backend, client) -> None:
        backend.add("POST", "/api/screenshot", {"status": "queued"})

        acknowledgement = await client.screenshot("https://example.com", "sess-2")

        assert acknowledgement == {"status": "queued"}
        assert json.loads(backend.requests[0].content) == {
            "url": "https://example.com",
            "chat_id": "sess-2",
        }

    @pytest.mark.asyncio
    async def test_unauthorized_is_authentication_rejected(self, backend, client) -> None:
        backend.add("POST", "/api/extract_prompt", httpx.Response(401, json={}))

        with pytest.raises(AuthenticationRejected) as excinfo:
            await client.submit("p", "s")
        assert excinfo.value.error_code == "bad_credential"

    @pytest.mark.asyncio
    async def test_server_error_carries_status(self, backend, client) -> None:
        backend.add("GET", "/api/get_data?format=quick", httpx.Response(503, text="down"))

        with pytest.raises(TransportError) as excinfo:
            await client.status("s")
        assert excinfo.value.status_code == 503

    @pytest.mark.asyncio
    async def test_non_json_body_is_transport_error(self, backend, client) -> None:
        backend.add(
            "GET", "/api/get_data?format=quick", httpx.Response(200, text="<html>")
        )

        with pytest.raises(TransportError, match="non-JSON"):
            await client.status("s")

    @pytest.mark.asyncio
    async def test_network_failure_is_transport_error(self, backend, client) -> None:
        backend.add("POST", "/api/extract_prompt", httpx.ConnectError("refused"))

        with pytest.raises(TransportError, match="refused"):
            await client.submit("p", "s")

    @pytest.mark.asyncio
    async def test_fetch_bytes_does_not_send_api_key(self, backend, client) -> None:
        backend.add(
            "GET",
            "/shot.jpg",
            httpx.Response(200, content=b"jpeg", headers={"content-type": "image/jpeg"}),
        )

        content, content_type = await client.fetch_bytes("https://cdn.test/shot.jpg")

        assert (content, content_type) == (b"jpeg", "image/jpeg")
        assert "x-api-key" not in backend.requests[0].headers


class TestStorageSigner:
    @pytest.mark.asyncio
    async def test_absolute_urls_pass_through(self, backend) -> None:
        signer = StorageSigner(transport=backend.transport)

        assert await signer.sign("https://cdn.test/a.jpg") == "https://cdn.test/a.jpg"
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_signs_stored_paths(self, backend) -> None:
        backend.add(
            "POST",
            "/storage/v1/object/sign/screenshots/runs/a.jpg",
            {"signedURL": "/object/sign/screenshots/runs/a.jpg?token=t"},
        )
        signer = StorageSigner(STORAGE_URL, "secret", transport=backend.transport)

        signed = await signer.sign("runs/a.jpg")

        assert signed == f"{STORAGE_URL}/object/sign/screenshots/runs/a.jpg?token=t"
        request = backend.requests[0]
        assert json.loads(request.content) == {"expiresIn": 3600}
        assert request.headers["authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_missing_storage_url(self, backend) -> None:
        with pytest.raises(MissingConfiguration):
            await StorageSigner(transport=backend.transport).sign("runs/a.jpg")

    @pytest.mark.asyncio
    async def test_storage_rejection_is_transport_error(self, backend) -> None:
        backend.add(
            "POST",
            "/storage/v1/object/sign/screenshots/a.jpg",
            httpx.Response(401, json={"message": "bad jwt"}),
        )
        signer = StorageSigner(STORAGE_URL, "secret", transport=backend.transport)

        with pytest.raises(TransportError) as excinfo:
            await signer.sign("a.jpg")
        assert not isinstance(excinfo.value, AuthenticationRejected)
        assert excinfo.value.status_code == 401
