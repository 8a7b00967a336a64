from __future__ import annotations

import base64
import json
import logging
from functools import lru_cache

import httpx

from scraperis_agent.config.settings import Settings, get_settings
from scraperis_agent.errors import ScraperError, UnsupportedFormatRequest
from scraperis_agent.jobs.cancellation import CancellationToken
from scraperis_agent.jobs.client import ExtractionServiceClient, StorageSigner
from scraperis_agent.jobs.coordinator import JobCoordinator
from scraperis_agent.jobs.models import (
    ExtractionRequest,
    OutputKind,
    ResultPayload,
    new_session_id,
)
from scraperis_agent.jobs.progress import ProgressSink
from scraperis_agent.rendering.formatter import composite_document
from scraperis_agent.rendering.materializer import ResultMaterializer
from scraperis_agent.tools.tool_models import ContentBlock, ToolResult

logger = logging.getLogger(__name__)

SCREENSHOT_URI_SCHEME = "scraperis_screenshot://"


def screenshot_uri(reference: str) -> str:
    return f"{SCREENSHOT_URI_SCHEME}{reference}"


def parse_screenshot_uri(uri: str) -> str:
    """Return the stored screenshot reference a resource URI points at."""
    if not uri.startswith(SCREENSHOT_URI_SCHEME):
        raise ValueError(f"Not a screenshot resource URI: {uri!r}")
    reference = uri[len(SCREENSHOT_URI_SCHEME):]
    if not reference:
        raise ValueError("Screenshot resource URI has no target")
    return reference


class ScrapeService:
    """Facade behind every caller surface: tools, HTTP API and CLI.

    Holds the shared client, signer, coordinator and materializer. Nothing
    here keeps per-request state, so one instance serves concurrent callers.
    """

    def __init__(
        self,
        client: ExtractionServiceClient,
        signer: StorageSigner,
        coordinator: JobCoordinator,
        materializer: ResultMaterializer | None = None,
    ) -> None:
        self.client = client
        self.signer = signer
        self.coordinator = coordinator
        self.materializer = materializer or ResultMaterializer(client, signer)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ScrapeService:
        settings = settings or get_settings()
        client = ExtractionServiceClient.from_settings(settings, transport=transport)
        signer = StorageSigner.from_settings(settings, transport=transport)
        coordinator = JobCoordinator(
            client,
            poll_interval_seconds=settings.poll_interval_seconds,
            default_deadline_seconds=settings.job_deadline_seconds,
        )
        return cls(client, signer, coordinator)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def scrape(
        self,
        prompt: str,
        output_format: str | OutputKind,
        *,
        progress: ProgressSink | None = None,
        cancel: CancellationToken | None = None,
    ) -> ToolResult:
        """Run one scrape to completion and shape it for the requested kind.

        Never raises: every failure becomes a ToolResult with ``is_error`` set.
        """
        try:
            request = ExtractionRequest.create(prompt, output_format)
        except ValueError as exc:
            return ToolResult.error(str(exc), "bad_format")

        try:
            payload = await self.coordinator.run(request, progress=progress, cancel=cancel)
            return await self._shape(payload, request)
        except ScraperError as exc:
            logger.error("Scrape session=%s failed: %s", request.session_id, exc)
            return ToolResult.error(
                exc.message, exc.error_code, session_id=request.session_id
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected failure in scrape session=%s", request.session_id)
            return ToolResult.error(
                str(exc), "internal_error", session_id=request.session_id
            )

    async def _shape(self, payload: ResultPayload, request: ExtractionRequest) -> ToolResult:
        kind = request.output_kind
        session_id = request.session_id

        if kind is OutputKind.SCREENSHOT:
            return await self._shape_screenshot(payload, session_id)

        try:
            rendered = await self.materializer.prepare(payload, kind, session_id)
        except UnsupportedFormatRequest:
            if kind is not OutputKind.STRUCTURED:
                raise
            rendered = None

        if kind is OutputKind.STRUCTURED:
            if rendered is None:
                # No structured data: fall back to the whole composite document.
                fallback = json.dumps(composite_document(payload), ensure_ascii=False)
                return ToolResult.text(
                    fallback, session_id=session_id, media_type="application/json"
                )
            text = f"JSON Data:\n```json\n{rendered.body}\n```"
            return ToolResult.text(text, session_id=session_id, media_type=rendered.media_type)

        return ToolResult.text(
            str(rendered.body), session_id=session_id, media_type=rendered.media_type
        )

    async def _shape_screenshot(
        self, payload: ResultPayload, session_id: str
    ) -> ToolResult:
        rendered = await self.materializer.prepare(
            payload, OutputKind.SCREENSHOT, session_id
        )
        if not rendered.available or payload.screenshot_ref is None:
            return ToolResult.text(
                str(rendered.body), session_id=session_id, media_type=rendered.media_type
            )

        reference = payload.screenshot_ref.url
        uri = screenshot_uri(reference)
        blocks: list[ContentBlock] = []
        if rendered.is_binary:
            blocks.append(
                ContentBlock(
                    type="image",
                    data=base64.b64encode(rendered.body).decode("ascii"),
                    mime_type=rendered.media_type,
                )
            )
        blocks.append(
            ContentBlock(
                type="text",
                text=f"Screenshot taken successfully. It is available as resource URI: {uri}",
            )
        )
        return ToolResult(
            content=blocks,
            session_id=session_id,
            media_type=rendered.media_type,
            resources={uri: reference},
        )

    async def screenshot(self, url: str) -> ToolResult:
        """Submit a standalone screenshot job and return its acknowledgement."""
        session_id = new_session_id()
        try:
            acknowledgement = await self.client.screenshot(url, session_id)
        except ScraperError as exc:
            logger.error("Screenshot of %s failed: %s", url, exc)
            return ToolResult.error(exc.message, exc.error_code, session_id=session_id)
        return ToolResult.text(
            json.dumps(acknowledgement, ensure_ascii=False),
            session_id=session_id,
            media_type="application/json",
        )

    async def read_screenshot_resource(self, uri: str) -> tuple[bytes, str]:
        """Fetch the image behind a ``scraperis_screenshot://`` URI.

        Raises:
            ValueError: ``uri`` is not a screenshot resource URI.
            TransportError: signing or downloading failed.
            MissingConfiguration: a stored path needs signing but storage is unset.
        """
        reference = parse_screenshot_uri(uri)
        content, content_type = await self.materializer.fetch_screenshot(reference)
        return content, content_type or "image/jpeg"


@lru_cache
def get_scrape_service() -> ScrapeService:
    return ScrapeService.from_settings(get_settings())
