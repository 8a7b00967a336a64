from __future__ import annotations

import logging
from dataclasses import dataclass

from scraperis_agent.errors import (
    AuthenticationRejected,
    MissingConfiguration,
    RemoteJobFailure,
    ScreenshotUnavailable,
    TransportError,
    UnsupportedFormatRequest,
)
from scraperis_agent.jobs.client import ExtractionServiceClient, StorageSigner
from scraperis_agent.jobs.models import (
    JobStatus,
    OutputKind,
    RenderedResult,
    ResultPayload,
)
from scraperis_agent.rendering.formatter import ResultFormatter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaterializedResult:
    """Status-coded outcome of turning one session into one representation."""

    status_code: int
    rendered: RenderedResult | None = None
    error_code: str | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class ResultMaterializer:
    """Does the I/O some output kinds need, then defers to ResultFormatter."""

    def __init__(
        self,
        client: ExtractionServiceClient,
        signer: StorageSigner,
        formatter: ResultFormatter | None = None,
    ) -> None:
        self.client = client
        self.signer = signer
        self.formatter = formatter or ResultFormatter()

    async def fetch_screenshot(self, reference: str) -> tuple[bytes, str | None]:
        signed_url = await self.signer.sign(reference)
        return await self.client.fetch_bytes(signed_url)

    async def prepare(
        self, payload: ResultPayload, kind: OutputKind | str, session_id: str
    ) -> RenderedResult:
        """Render a ready payload, fetching whatever the minimal payload left out."""
        kind = OutputKind.parse(kind)

        if kind.needs_structured_data and payload.structured_data is None:
            logger.info("Fetching structured data for session=%s", session_id)
            payload = payload.with_structured(
                await self.client.fetch_structured(session_id)
            )

        screenshot_bytes = None
        if kind is OutputKind.SCREENSHOT and payload.screenshot_ref is not None:
            screenshot_bytes, _ = await self.fetch_screenshot(payload.screenshot_ref.url)

        return self.formatter.render(payload, kind, screenshot_bytes=screenshot_bytes)

    async def materialize(
        self, session_id: str | None, kind: OutputKind | str
    ) -> MaterializedResult:
        if not session_id or not session_id.strip():
            return MaterializedResult(
                400, error_code="missing_session", detail="session_id is required"
            )
        try:
            kind = OutputKind.parse(kind)
        except ValueError as exc:
            return MaterializedResult(400, error_code="bad_format", detail=str(exc))

        try:
            payload = await self.client.status(session_id)
        except AuthenticationRejected as exc:
            return MaterializedResult(
                401, error_code=exc.error_code, detail=exc.message
            )
        except TransportError as exc:
            if exc.status_code == 404:
                return MaterializedResult(
                    404, error_code="no_session", detail=exc.message
                )
            return MaterializedResult(
                500, error_code=exc.error_code, detail=exc.message
            )

        if payload.reports_failure and not payload.processing:
            failure = RemoteJobFailure(payload.error_message or "Extraction job failed")
            return MaterializedResult(
                404, error_code=failure.error_code, detail=failure.message
            )

        settled = (
            payload.status is not JobStatus.RUNNING and payload.error_message is None
        )
        if payload.processing or not payload.is_ready or not settled:
            if kind is OutputKind.COMPOSITE:
                return MaterializedResult(
                    200, rendered=self.formatter.render(payload, kind)
                )
            return MaterializedResult(
                404, error_code="data_not_ready", detail="Result is still processing"
            )

        try:
            rendered = await self.prepare(payload, kind, session_id)
        except UnsupportedFormatRequest as exc:
            return MaterializedResult(
                404, error_code=exc.error_code, detail=exc.message
            )
        except AuthenticationRejected as exc:
            return MaterializedResult(
                401, error_code=exc.error_code, detail=exc.message
            )
        except (TransportError, MissingConfiguration) as exc:
            logger.error(
                "Materializing session=%s as %s failed: %s", session_id, kind.value, exc
            )
            return MaterializedResult(
                500, error_code=exc.error_code, detail=exc.message
            )

        if not rendered.available:
            missing = (
                ScreenshotUnavailable()
                if kind is OutputKind.SCREENSHOT
                else UnsupportedFormatRequest(str(rendered.body))
            )
            return MaterializedResult(
                404, error_code=missing.error_code, detail=missing.message
            )
        return MaterializedResult(200, rendered=rendered)
