"""Error taxonomy for the scraping job lifecycle.

Every error carries a stable ``error_code`` so the tool layer and the HTTP
API can map failures to result objects and status codes without inspecting
messages.
"""

from __future__ import annotations


class ScraperError(Exception):
    """Base class for scraping domain errors."""

    error_code = "scraper_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class TransportError(ScraperError):
    """Network failure or non-success reply from a remote collaborator."""

    error_code = "transport_error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationRejected(TransportError):
    error_code = "bad_credential"

    def __init__(self, message: str = "API key rejected by the extraction service") -> None:
        super().__init__(message, status_code=401)


class RemoteJobFailure(ScraperError):
    """The extraction service reported a failed job or an error message."""

    error_code = "job_failed"


class DataNotReadyInconsistency(ScraperError):
    """Terminal status without prose or screenshot. Never leaves the coordinator."""

    error_code = "data_not_ready"


class UnsupportedFormatRequest(ScraperError):
    error_code = "no_data"

    def __init__(self, message: str = "No structured data available for this request") -> None:
        super().__init__(message)


class ScreenshotUnavailable(ScraperError):
    error_code = "no_screenshot"

    def __init__(self, message: str = "No screenshot available for this request") -> None:
        super().__init__(message)


class JobCancelled(ScraperError):
    error_code = "cancelled"

    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(f"Job polling abandoned ({reason})")
        self.reason = reason


class MissingCredential(ScraperError):
    error_code = "missing_credential"


class MissingConfiguration(ScraperError):
    error_code = "missing_configuration"
