from __future__ import annotations

import secrets
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union


class OutputKind(str, Enum):
    """Requested result representation. Values are the remote wire names."""

    PROSE = "markdown"
    MARKUP = "html"
    SCREENSHOT = "screenshot"
    STRUCTURED = "json"
    COMPOSITE = "quick"
    TABULAR = "csv"
    XML = "xml"

    @classmethod
    def parse(cls, value: str | OutputKind) -> OutputKind:
        if isinstance(value, OutputKind):
            return value
        normalized = (value or "").strip().lower()
        if normalized in _KIND_ALIASES:
            return _KIND_ALIASES[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unsupported output format: {value!r}") from None

    @property
    def needs_structured_data(self) -> bool:
        return self in _STRUCTURED_KINDS


_KIND_ALIASES: dict[str, OutputKind] = {
    "prose": OutputKind.PROSE,
    "markup": OutputKind.MARKUP,
    "structured": OutputKind.STRUCTURED,
    "composite": OutputKind.COMPOSITE,
    "tabular": OutputKind.TABULAR,
}

_STRUCTURED_KINDS = frozenset(
    {OutputKind.STRUCTURED, OutputKind.TABULAR, OutputKind.XML, OutputKind.MARKUP}
)


class JobStatus(str, Enum):
    UNKNOWN = "unknown"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_remote(cls, raw: Any) -> JobStatus:
        if raw is None:
            return cls.UNKNOWN
        value = str(raw).strip().lower()
        if not value or value == "unknown":
            return cls.UNKNOWN
        if value == "completed":
            return cls.COMPLETED
        if value == "failed":
            return cls.FAILED
        return cls.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def new_session_id() -> str:
    return secrets.token_urlsafe(16)


@dataclass(frozen=True)
class ExtractionRequest:
    """One caller invocation. A fresh session id is minted per request."""

    prompt: str
    output_kind: OutputKind
    session_id: str = field(default_factory=new_session_id)

    @classmethod
    def create(cls, prompt: str, output_kind: str | OutputKind) -> ExtractionRequest:
        return cls(prompt=prompt, output_kind=OutputKind.parse(output_kind))


@dataclass(frozen=True)
class JobHandle:
    job_id: str


@dataclass(frozen=True)
class ScreenshotRef:
    url: str


@dataclass(frozen=True)
class StructuredRecord:
    """A single structured object returned by the service."""

    fields: dict[str, Any]

    def as_collection(self) -> StructuredCollection:
        return StructuredCollection(items=(self.fields,))

    def to_json_value(self) -> Any:
        return self.fields


@dataclass(frozen=True)
class StructuredCollection:
    """An array of structured items returned by the service."""

    items: tuple[Any, ...]

    def as_collection(self) -> StructuredCollection:
        return self

    def to_json_value(self) -> Any:
        return list(self.items)


StructuredData = Union[StructuredRecord, StructuredCollection]


def parse_structured(raw: Any) -> StructuredData | None:
    """Tag raw structured data once, at the response boundary."""
    if raw is None:
        return None
    if isinstance(raw, dict):
        return StructuredRecord(fields=dict(raw))
    if isinstance(raw, (list, tuple)):
        return StructuredCollection(items=tuple(raw))
    # Scalars still count as data; wrap them so renderers see a collection.
    return StructuredCollection(items=(raw,))


def _parse_screenshot(raw: Any) -> ScreenshotRef | None:
    if isinstance(raw, dict):
        url = raw.get("url")
        if isinstance(url, str) and url:
            return ScreenshotRef(url=url)
    return None


def _text_or_none(raw: Any) -> str | None:
    if raw is None:
        return None
    text = raw if isinstance(raw, str) else str(raw)
    return text or None


@dataclass(frozen=True)
class ResultPayload:
    """Normalized view of a submit or status response."""

    status: JobStatus = JobStatus.UNKNOWN
    raw_status: str | None = None
    processing: bool = False
    prose_text: str | None = None
    screenshot_ref: ScreenshotRef | None = None
    structured_data: StructuredData | None = None
    error_message: str | None = None
    source_url: str | None = None

    @classmethod
    def from_remote(cls, body: dict[str, Any]) -> ResultPayload:
        raw_status = body.get("status")
        return cls(
            status=JobStatus.from_remote(raw_status),
            raw_status=None if raw_status is None else str(raw_status),
            processing=body.get("processing") is True,
            prose_text=_text_or_none(body.get("markdown")),
            screenshot_ref=_parse_screenshot(body.get("screenshot")),
            structured_data=parse_structured(body.get("data")),
            error_message=_text_or_none(body.get("error")),
            source_url=_text_or_none(body.get("url")),
        )

    @property
    def is_ready(self) -> bool:
        """A payload only counts as finished once it carries prose or a screenshot."""
        return self.prose_text is not None or self.screenshot_ref is not None

    @property
    def reports_failure(self) -> bool:
        """Failure counts only on a terminal status; an error on a running job is transient."""
        if self.status is JobStatus.FAILED:
            return True
        return self.status is JobStatus.COMPLETED and self.error_message is not None

    def with_structured(self, data: StructuredData | None) -> ResultPayload:
        return replace(self, structured_data=data)


@dataclass(frozen=True)
class SubmitResponse:
    handle: JobHandle | None
    payload: ResultPayload

    @classmethod
    def from_remote(cls, body: dict[str, Any]) -> SubmitResponse:
        job_id = body.get("job_id")
        handle = JobHandle(job_id=str(job_id)) if job_id else None
        return cls(handle=handle, payload=ResultPayload.from_remote(body))


@dataclass(frozen=True)
class RenderedResult:
    media_type: str
    body: str | bytes
    available: bool = True

    @property
    def is_binary(self) -> bool:
        return isinstance(self.body, bytes)
