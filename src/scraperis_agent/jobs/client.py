from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from scraperis_agent.config.settings import Settings
from scraperis_agent.errors import (
    AuthenticationRejected,
    MissingConfiguration,
    TransportError,
)
from scraperis_agent.jobs.models import (
    OutputKind,
    ResultPayload,
    StructuredData,
    SubmitResponse,
    parse_structured,
)

logger = logging.getLogger(__name__)


def _decode_json(response: httpx.Response) -> Any:
    if response.status_code == 401:
        raise AuthenticationRejected()
    if response.is_error:
        raise TransportError(
            f"{response.request.method} {response.request.url.path} "
            f"returned HTTP {response.status_code}",
            status_code=response.status_code,
        )
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError(
            f"{response.request.url.path} returned a non-JSON body",
            status_code=response.status_code,
        ) from exc


class ExtractionServiceClient:
    """Thin async client for the Scraper.is extraction API.

    Holds no per-request state, so one instance can be shared by any number
    of concurrent coordinators. Every call is a single attempt; retrying is
    the poll loop's business.
    """

    def __init__(
        self,
        api_key: str,
        api_base: str = "https://scraper.is/api",
        timeout_seconds: float = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport
        self._client = httpx.AsyncClient(
            base_url=self.api_base,
            headers={"x-api-key": api_key},
            timeout=timeout_seconds,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> ExtractionServiceClient:
        return cls(
            api_key=settings.scraperis_api_key,
            api_base=settings.scraperis_api_base,
            timeout_seconds=settings.default_api_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        logger.debug("Extraction service call: %s %s", method, path)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        return _decode_json(response)

    async def submit(self, prompt: str, session_id: str) -> SubmitResponse:
        """Start an extraction job, asking only for the quick payload."""
        body = await self._request(
            "POST",
            "/extract_prompt",
            json={
                "prompt": prompt,
                "chat_id": session_id,
                "html_only": False,
                "format": OutputKind.COMPOSITE.value,
            },
        )
        if not isinstance(body, dict):
            raise TransportError("extract_prompt returned an unexpected body")
        return SubmitResponse.from_remote(body)

    async def status(
        self, session_id: str, kind_hint: OutputKind = OutputKind.COMPOSITE
    ) -> ResultPayload:
        body = await self._request(
            "GET",
            "/get_data",
            params={"chat_id": session_id, "format": kind_hint.value},
        )
        if not isinstance(body, dict):
            raise TransportError("get_data returned an unexpected body")
        return ResultPayload.from_remote(body)

    async def fetch_structured(self, session_id: str) -> StructuredData | None:
        """Fetch the structured representation the quick payload leaves out."""
        body = await self._request(
            "GET",
            "/get_data",
            params={"chat_id": session_id, "format": OutputKind.STRUCTURED.value},
        )
        if isinstance(body, dict) and "data" in body:
            return parse_structured(body["data"])
        return parse_structured(body)

    async def screenshot(self, url: str, session_id: str) -> dict[str, Any]:
        """Fire-and-forget screenshot submission; returns the raw acknowledgement."""
        body = await self._request(
            "POST", "/screenshot", json={"url": url, "chat_id": session_id}
        )
        return body if isinstance(body, dict) else {"response": body}

    async def fetch_bytes(self, url: str) -> tuple[bytes, str | None]:
        """Download a binary asset such as a signed screenshot URL."""
        try:
            # Absolute URL, so base_url and the API key header do not leak in.
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            raise TransportError(f"Downloading {url} failed: {exc}") from exc
        if response.is_error:
            raise TransportError(
                f"Downloading {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.content, response.headers.get("content-type")


class StorageSigner:
    """Turns stored screenshot paths into time-limited fetchable URLs."""

    def __init__(
        self,
        storage_url: str = "",
        storage_key: str = "",
        bucket: str = "screenshots",
        ttl_seconds: int = 3600,
        timeout_seconds: float = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.storage_url = storage_url.rstrip("/")
        self.bucket = bucket
        self.ttl_seconds = ttl_seconds
        headers: dict[str, str] = {}
        if storage_key:
            headers["Authorization"] = f"Bearer {storage_key}"
            headers["apikey"] = storage_key
        self._headers = headers
        self._timeout = timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> StorageSigner:
        return cls(
            storage_url=settings.storage_url,
            storage_key=settings.storage_key,
            bucket=settings.storage_bucket,
            ttl_seconds=settings.signed_url_ttl_seconds,
            timeout_seconds=settings.default_api_timeout_seconds,
            transport=transport,
        )

    async def sign(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if not self.storage_url:
            raise MissingConfiguration(
                "SCRAPERIS_STORAGE_URL is required to sign screenshot paths"
            )

        object_path = quote(path.lstrip("/"))
        endpoint = f"{self.storage_url}/object/sign/{self.bucket}/{object_path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, headers=self._headers, transport=self._transport
            ) as client:
                response = await client.post(
                    endpoint, json={"expiresIn": self.ttl_seconds}
                )
        except httpx.HTTPError as exc:
            raise TransportError(f"Signing {path} failed: {exc}") from exc

        if response.is_error:
            raise TransportError(
                f"Signing {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        body = _decode_json(response)
        signed = body.get("signedURL") if isinstance(body, dict) else None
        if not signed:
            raise TransportError(f"Storage returned no signed URL for {path}")
        if signed.startswith(("http://", "https://")):
            return signed
        return f"{self.storage_url}/{signed.lstrip('/')}"
