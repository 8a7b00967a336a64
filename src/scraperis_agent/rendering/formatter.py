from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from scraperis_agent.errors import UnsupportedFormatRequest
from scraperis_agent.jobs.models import OutputKind, RenderedResult, ResultPayload
from scraperis_agent.rendering.flatten import render_csv, render_html, render_xml

MEDIA_TYPES: dict[OutputKind, str] = {
    OutputKind.PROSE: "text/markdown",
    OutputKind.STRUCTURED: "application/json",
    OutputKind.SCREENSHOT: "image/jpeg",
    OutputKind.COMPOSITE: "application/json",
    OutputKind.TABULAR: "text/csv",
    OutputKind.XML: "application/xml",
    OutputKind.MARKUP: "text/html",
}

SCREENSHOT_NOT_AVAILABLE = "Screenshot not available for this request."
PROSE_NOT_AVAILABLE = "No markdown content available for this request."


def composite_document(
    payload: ResultPayload, generated_at: datetime | None = None
) -> dict[str, Any]:
    """Bundle prose, screenshot URL and status metadata; absent fields are null."""
    stamp = generated_at or datetime.now(timezone.utc)
    return {
        "markdown": payload.prose_text,
        "screenshot_url": payload.screenshot_ref.url if payload.screenshot_ref else None,
        "status": payload.raw_status,
        "processing": payload.processing,
        "error": payload.error_message,
        "source_url": payload.source_url,
        "generated_at": stamp.isoformat(),
    }


class ResultFormatter:
    """Pure dispatch from (payload, kind) to a typed representation.

    No I/O happens here: screenshot bytes and lazily fetched structured data
    are handed in by the caller (see ResultMaterializer).
    """

    def render(
        self,
        payload: ResultPayload,
        kind: OutputKind | str,
        *,
        screenshot_bytes: bytes | None = None,
        generated_at: datetime | None = None,
    ) -> RenderedResult:
        kind = OutputKind.parse(kind)
        media_type = MEDIA_TYPES[kind]

        if kind is OutputKind.PROSE:
            if payload.prose_text is None:
                return RenderedResult("text/plain", PROSE_NOT_AVAILABLE, available=False)
            return RenderedResult(media_type, payload.prose_text)

        if kind is OutputKind.SCREENSHOT:
            return self._render_screenshot(payload, screenshot_bytes)

        if kind is OutputKind.COMPOSITE:
            document = composite_document(payload, generated_at)
            return RenderedResult(media_type, json.dumps(document, ensure_ascii=False))

        data = payload.structured_data
        if data is None:
            raise UnsupportedFormatRequest(
                f"No structured data available to render as {kind.value}"
            )

        if kind is OutputKind.STRUCTURED:
            body = json.dumps(data.to_json_value(), ensure_ascii=False, indent=2)
        elif kind is OutputKind.TABULAR:
            body = render_csv(data)
        elif kind is OutputKind.XML:
            body = render_xml(data)
        else:
            body = render_html(data)
        return RenderedResult(media_type, body)

    @staticmethod
    def _render_screenshot(
        payload: ResultPayload, screenshot_bytes: bytes | None
    ) -> RenderedResult:
        if payload.screenshot_ref is None:
            return RenderedResult("text/plain", SCREENSHOT_NOT_AVAILABLE, available=False)
        if screenshot_bytes is None:
            # Nothing was downloaded; hand back the reference instead.
            return RenderedResult("text/uri-list", payload.screenshot_ref.url)
        return RenderedResult(MEDIA_TYPES[OutputKind.SCREENSHOT], screenshot_bytes)
