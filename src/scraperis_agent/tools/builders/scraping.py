from __future__ import annotations

from typing import Literal

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field

from scraperis_agent.jobs.progress import LoggingProgressSink
from scraperis_agent.service import get_scrape_service

SCRAPE_DESCRIPTION = (
    "Scrape a single webpage with advanced options for content extraction.\n"
    "Supports markdown, HTML, screenshot, JSON, quick, CSV and XML formats.\n"
    "The prompt should include the website URL and what data you want to extract.\n"
    "For example: 'Get me the top 10 products from producthunt.com' or\n"
    "'Extract all article titles and authors from techcrunch.com/news'"
)


class ScrapeInput(BaseModel):
    prompt: str = Field(
        description="The prompt describing what to scrape, including the URL"
    )
    format: Literal["markdown", "html", "screenshot", "json", "quick", "csv", "xml"] = (
        Field(description="The format to return the content in")
    )


class ScreenshotInput(BaseModel):
    url: str = Field(description="The URL to take a screenshot of")


def build_scrape_tool() -> StructuredTool:
    """Create the scrape tool. The service is resolved on first call, not at build."""

    async def _run(prompt: str, format: str) -> dict:
        result = await get_scrape_service().scrape(
            prompt, format, progress=LoggingProgressSink("scrape")
        )
        return result.model_dump()

    return StructuredTool.from_function(
        name="scrape",
        description=SCRAPE_DESCRIPTION,
        coroutine=_run,
        args_schema=ScrapeInput,
    )


def build_screenshot_tool() -> StructuredTool:
    async def _run(url: str) -> dict:
        result = await get_scrape_service().screenshot(url)
        return result.model_dump()

    return StructuredTool.from_function(
        name="screenshot",
        description="Take a screenshot of a webpage",
        coroutine=_run,
        args_schema=ScreenshotInput,
    )
