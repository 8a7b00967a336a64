"""Scrape job lifecycle: remote client, coordinator, progress and cancellation."""

from scraperis_agent.jobs.cancellation import CancellationToken
from scraperis_agent.jobs.coordinator import JobCoordinator
from scraperis_agent.jobs.models import (
    ExtractionRequest,
    JobHandle,
    JobStatus,
    OutputKind,
    RenderedResult,
    ResultPayload,
)

__all__ = [
    "CancellationToken",
    "ExtractionRequest",
    "JobCoordinator",
    "JobHandle",
    "JobStatus",
    "OutputKind",
    "RenderedResult",
    "ResultPayload",
]
