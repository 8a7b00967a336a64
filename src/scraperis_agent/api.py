import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import RedirectResponse, Response, StreamingResponse
from pydantic import BaseModel, Field

from scraperis_agent.config.settings import get_settings
from scraperis_agent.errors import MissingConfiguration, TransportError
from scraperis_agent.jobs.cancellation import CancellationToken
from scraperis_agent.jobs.progress import QueueProgressSink
from scraperis_agent.service import ScrapeService, get_scrape_service
from scraperis_agent.tools.registry import ToolRegistry
from scraperis_agent.tools.tool_models import ToolResult

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    if get_scrape_service.cache_info().currsize:
        await get_scrape_service().aclose()


app = FastAPI(
    title="Scraper.is Agent API",
    version=get_settings().server_version,
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)
router = APIRouter(prefix="/api")


@app.get("/", include_in_schema=False)
async def root_redirect():
    return RedirectResponse(url="/api/docs")


@router.get("/docs", include_in_schema=False)
async def custom_swagger_ui_html():
    return get_swagger_ui_html(
        openapi_url=app.openapi_url,
        title=app.title + " - Swagger UI",
        swagger_js_url="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui-bundle.js",
        swagger_css_url="https://cdn.jsdelivr.net/npm/swagger-ui-dist@5/swagger-ui.css",
    )


class ScrapeRequest(BaseModel):
    prompt: str
    format: str = "markdown"
    stream: bool = False
    deadline_seconds: float | None = Field(default=None, gt=0)


class ScreenshotRequest(BaseModel):
    url: str


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


@router.get("/health")
def health_check():
    return {"status": "ok", "version": get_settings().server_version}


@router.get("/tools")
def list_tools():
    return {"tools": ToolRegistry.describe(), "groups": ToolRegistry.list_groups()}


@router.post("/tools/scrape", response_model=ToolResult)
async def scrape(
    request: ScrapeRequest,
    http_request: Request,
    service: ScrapeService = Depends(get_scrape_service),
):
    token = CancellationToken(
        request.deadline_seconds or service.coordinator.default_deadline_seconds
    )

    if not request.stream:
        return await service.scrape(request.prompt, request.format, cancel=token)

    async def _event_stream():
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        task = asyncio.create_task(
            service.scrape(
                request.prompt,
                request.format,
                progress=QueueProgressSink(queue),
                cancel=token,
            )
        )
        try:
            while not task.done() or not queue.empty():
                if await http_request.is_disconnected():
                    token.cancel("client disconnected")
                    return
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=0.5)
                except asyncio.TimeoutError:
                    continue
                yield _sse(event)
            result = await task
            yield _sse({"type": "result", "result": result.model_dump()})
            yield _sse({"type": "done"})
        finally:
            if not task.done():
                if not token.cancelled:
                    token.cancel("stream closed")
                await task

    return StreamingResponse(
        _event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/tools/screenshot", response_model=ToolResult)
async def screenshot(
    request: ScreenshotRequest,
    service: ScrapeService = Depends(get_scrape_service),
):
    return await service.screenshot(request.url)


@router.get("/results")
async def get_result(
    session_id: str | None = Query(default=None),
    format: str = Query(default="quick"),
    service: ScrapeService = Depends(get_scrape_service),
):
    """Materialize one session in one representation, with HTTP status semantics."""
    outcome = await service.materializer.materialize(session_id, format)
    if not outcome.ok or outcome.rendered is None:
        raise HTTPException(
            status_code=outcome.status_code,
            detail={"error_code": outcome.error_code, "message": outcome.detail},
        )
    return Response(
        content=outcome.rendered.body, media_type=outcome.rendered.media_type
    )


@router.get("/resources")
async def read_resource(
    uri: str = Query(...),
    service: ScrapeService = Depends(get_scrape_service),
):
    try:
        content, media_type = await service.read_screenshot_resource(uri)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except (TransportError, MissingConfiguration) as exc:
        logger.error("Reading resource %s failed: %s", uri, exc)
        raise HTTPException(status_code=500, detail=exc.message)
    return Response(content=content, media_type=media_type)


app.include_router(router)
