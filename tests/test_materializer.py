"""Tests for the status-coded materialization boundary."""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import STORAGE_URL

QUICK = "/api/get_data?format=quick"
STRUCTURED = "/api/get_data?format=json"


@pytest.fixture
def materializer(make_service):
    return make_service().materializer


class TestRequestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("session_id", [None, "", "   "])
    async def test_missing_session_is_400(self, materializer, session_id) -> None:
        outcome = await materializer.materialize(session_id, "markdown")
        assert outcome.status_code == 400
        assert outcome.error_code == "missing_session"

    @pytest.mark.asyncio
    async def test_unknown_format_is_400(self, materializer) -> None:
        outcome = await materializer.materialize("sess", "pdf")
        assert (outcome.status_code, outcome.error_code) == (400, "bad_format")


class TestRemoteOutcomes:
    @pytest.mark.asyncio
    async def test_rejected_credential_is_401(self, backend, materializer) -> None:
        backend.add("GET", QUICK, httpx.Response(401, json={}))
        outcome = await materializer.materialize("sess", "markdown")
        assert outcome.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_session_is_404(self, backend, materializer) -> None:
        backend.add("GET", QUICK, httpx.Response(404, json={}))
        outcome = await materializer.materialize("sess", "markdown")
        assert (outcome.status_code, outcome.error_code) == (404, "no_session")

    @pytest.mark.asyncio
    async def test_transport_failure_is_500(self, backend, materializer) -> None:
        backend.add("GET", QUICK, httpx.Response(502, text="bad gateway"))
        outcome = await materializer.materialize("sess", "markdown")
        assert outcome.status_code == 500

    @pytest.mark.asyncio
    async def test_failed_job_is_404(self, backend, materializer) -> None:
        backend.add("GET", QUICK, {"status": "failed", "error": "blocked by robots"})
        outcome = await materializer.materialize("sess", "markdown")
        assert (outcome.status_code, outcome.error_code) == (404, "job_failed")
        assert outcome.detail == "blocked by robots"

    @pytest.mark.asyncio
    async def test_error_on_running_job_is_not_ready(self, backend, materializer) -> None:
        backend.add(
            "GET",
            QUICK,
            {"status": "running", "markdown": "draft", "error": "retrying upstream fetch"},
        )
        outcome = await materializer.materialize("sess", "markdown")
        assert (outcome.status_code, outcome.error_code) == (404, "data_not_ready")

    @pytest.mark.asyncio
    async def test_processing_composite_is_200(self, backend, materializer) -> None:
        backend.add("GET", QUICK, {"processing": True, "status": "running"})
        outcome = await materializer.materialize("sess", "quick")
        assert outcome.status_code == 200
        document = json.loads(outcome.rendered.body)
        assert document["processing"] is True
        assert document["markdown"] is None

    @pytest.mark.asyncio
    async def test_processing_prose_is_404(self, backend, materializer) -> None:
        backend.add("GET", QUICK, {"processing": True})
        outcome = await materializer.materialize("sess", "markdown")
        assert (outcome.status_code, outcome.error_code) == (404, "data_not_ready")


class TestRendering:
    @pytest.mark.asyncio
    async def test_ready_prose(self, backend, materializer) -> None:
        backend.add("GET", QUICK, {"status": "completed", "markdown": "# Title"})
        outcome = await materializer.materialize("sess", "markdown")
        assert outcome.ok
        assert outcome.rendered.media_type == "text/markdown"
        assert outcome.rendered.body == "# Title"

    @pytest.mark.asyncio
    async def test_csv_triggers_lazy_structured_fetch(self, backend, materializer) -> None:
        backend.add("GET", QUICK, {"status": "completed", "markdown": "# Title"})
        backend.add("GET", STRUCTURED, {"data": [{"a": 1, "b": 2}]})

        outcome = await materializer.materialize("sess", "csv")

        assert outcome.ok
        assert outcome.rendered.body == "a,b\n1,2\n"
        assert len(backend.calls("GET", STRUCTURED)) == 1

    @pytest.mark.asyncio
    async def test_rejected_key_on_structured_fetch_is_401(
        self, backend, materializer
    ) -> None:
        backend.add("GET", QUICK, {"status": "completed", "markdown": "# Title"})
        backend.add("GET", STRUCTURED, httpx.Response(401, json={}))

        outcome = await materializer.materialize("sess", "json")

        assert (outcome.status_code, outcome.error_code) == (401, "bad_credential")

    @pytest.mark.asyncio
    async def test_structured_kind_without_data_is_404(self, backend, materializer) -> None:
        backend.add("GET", QUICK, {"status": "completed", "markdown": "# Title"})
        backend.add("GET", STRUCTURED, {"data": None})

        outcome = await materializer.materialize("sess", "xml")

        assert (outcome.status_code, outcome.error_code) == (404, "no_data")

    @pytest.mark.asyncio
    async def test_screenshot_bytes(self, backend, materializer) -> None:
        backend.add(
            "GET",
            QUICK,
            {"status": "completed", "screenshot": {"url": "https://cdn.test/shot.jpg"}},
        )
        backend.add(
            "GET",
            "/shot.jpg",
            httpx.Response(200, content=b"\xff\xd8jpeg", headers={"content-type": "image/jpeg"}),
        )

        outcome = await materializer.materialize("sess", "screenshot")

        assert outcome.ok
        assert outcome.rendered.media_type == "image/jpeg"
        assert outcome.rendered.body == b"\xff\xd8jpeg"

    @pytest.mark.asyncio
    async def test_missing_screenshot_is_404(self, backend, materializer) -> None:
        backend.add("GET", QUICK, {"status": "completed", "markdown": "# Title"})
        outcome = await materializer.materialize("sess", "screenshot")
        assert (outcome.status_code, outcome.error_code) == (404, "no_screenshot")

    @pytest.mark.asyncio
    async def test_unsigned_path_without_storage_is_500(self, backend, materializer) -> None:
        backend.add(
            "GET", QUICK, {"status": "completed", "screenshot": {"url": "runs/a.jpg"}}
        )
        outcome = await materializer.materialize("sess", "screenshot")
        assert (outcome.status_code, outcome.error_code) == (500, "missing_configuration")

    @pytest.mark.asyncio
    async def test_signed_screenshot_path(self, backend, make_service) -> None:
        materializer = make_service(storage_url=STORAGE_URL).materializer
        backend.add(
            "GET", QUICK, {"status": "completed", "screenshot": {"url": "runs/a.jpg"}}
        )
        backend.add(
            "POST",
            "/storage/v1/object/sign/screenshots/runs/a.jpg",
            {"signedURL": "/object/sign/screenshots/runs/a.jpg?token=t"},
        )
        backend.add(
            "GET",
            "/storage/v1/object/sign/screenshots/runs/a.jpg",
            httpx.Response(200, content=b"img", headers={"content-type": "image/jpeg"}),
        )

        outcome = await materializer.materialize("sess", "screenshot")

        assert outcome.ok
        assert outcome.rendered.body == b"img"
