from __future__ import annotations

import logging
from typing import Protocol

from scraperis_agent.errors import DataNotReadyInconsistency, RemoteJobFailure
from scraperis_agent.jobs.cancellation import CancellationToken
from scraperis_agent.jobs.models import (
    ExtractionRequest,
    JobStatus,
    OutputKind,
    ResultPayload,
    SubmitResponse,
)
from scraperis_agent.jobs.progress import MonotonicProgress, ProgressSink

logger = logging.getLogger(__name__)


class ExtractionService(Protocol):
    async def submit(self, prompt: str, session_id: str) -> SubmitResponse:
        ...

    async def status(self, session_id: str, kind_hint: OutputKind = ...) -> ResultPayload:
        ...


class JobCoordinator:
    """Owns submit -> poll -> finalize for one scraping request at a time.

    The coordinator keeps no state between calls; each ``run`` has its own
    loop, progress guard and cancellation token, so one instance may serve
    concurrent requests.

    Reconciliation of a poll response, in order:
      1. ``processing`` true: not terminal, whatever ``status`` says.
      2. ``failed``, or ``completed`` with an error message: raise
         RemoteJobFailure, stop polling. An error on a running job is ignored.
      3. ``completed`` without prose or screenshot: not actually ready, poll again.
      4. ``completed`` with prose or screenshot: done.
      5. status absent, prose or screenshot present, no error: implicit success.
      6. anything else: poll again.
    """

    def __init__(
        self,
        service: ExtractionService,
        poll_interval_seconds: float = 5.0,
        default_deadline_seconds: float | None = None,
    ) -> None:
        self.service = service
        self.poll_interval_seconds = poll_interval_seconds
        self.default_deadline_seconds = default_deadline_seconds

    async def run(
        self,
        request: ExtractionRequest,
        progress: ProgressSink | None = None,
        cancel: CancellationToken | None = None,
    ) -> ResultPayload:
        """Submit ``request`` and return a payload that is actually ready.

        Raises:
            TransportError: a remote call failed (single attempt per tick).
            RemoteJobFailure: the service reported the job as failed.
            JobCancelled: ``cancel`` tripped before a ready payload arrived.
        """
        token = cancel or CancellationToken(self.default_deadline_seconds)
        tracker = MonotonicProgress(progress)

        token.raise_if_cancelled()
        submitted = await self.service.submit(request.prompt, request.session_id)
        logger.info(
            "Submitted scrape session=%s job=%s",
            request.session_id,
            submitted.handle.job_id if submitted.handle else None,
        )

        if submitted.handle is None:
            try:
                if self._is_finished(submitted.payload):
                    tracker.complete()
                    return submitted.payload
            except DataNotReadyInconsistency:
                pass
            logger.info(
                "Immediate response for session=%s is not ready; polling",
                request.session_id,
            )

        return await self._poll(request, tracker, token)

    async def _poll(
        self,
        request: ExtractionRequest,
        tracker: MonotonicProgress,
        token: CancellationToken,
    ) -> ResultPayload:
        attempts = 0
        while True:
            token.raise_if_cancelled()
            payload = await self.service.status(request.session_id)
            attempts += 1

            try:
                finished = self._is_finished(payload)
            except DataNotReadyInconsistency:
                logger.info(
                    "Session %s reports %s without data; continuing to poll",
                    request.session_id,
                    payload.raw_status,
                )
                finished = False

            if finished:
                logger.info(
                    "Session %s ready after %d poll(s)", request.session_id, attempts
                )
                tracker.complete()
                return payload

            tracker.advance(attempts)
            await token.sleep(self.poll_interval_seconds)

    @staticmethod
    def _is_finished(payload: ResultPayload) -> bool:
        if payload.processing:
            return False

        if payload.reports_failure:
            raise RemoteJobFailure(payload.error_message or "Extraction job failed")

        if payload.status is JobStatus.COMPLETED:
            if not payload.is_ready:
                raise DataNotReadyInconsistency(
                    "Terminal status without prose or screenshot"
                )
            return True

        return (
            payload.status is JobStatus.UNKNOWN
            and payload.is_ready
            and payload.error_message is None
        )
