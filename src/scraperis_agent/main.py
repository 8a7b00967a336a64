from __future__ import annotations

import argparse
import asyncio
import base64
import sys

from scraperis_agent.config import configure_logging, get_settings
from scraperis_agent.errors import MissingConfiguration, MissingCredential
from scraperis_agent.jobs.cancellation import CancellationToken
from scraperis_agent.jobs.progress import CallbackProgressSink
from scraperis_agent.tools.tool_models import ToolResult


def _print_progress(value: int, maximum: int) -> None:
    print(f"[progress] {value}/{maximum}", file=sys.stderr, flush=True)


def _emit(result: ToolResult, save_path: str | None) -> int:
    for block in result.content:
        if block.type == "text":
            print(block.text)
        elif block.type == "image" and block.data:
            if save_path:
                with open(save_path, "wb") as file_handle:
                    file_handle.write(base64.b64decode(block.data))
                print(f"Saved {block.mime_type} image to {save_path}")
            else:
                print(f"[image] {block.mime_type}, {len(block.data)} base64 chars")
    if result.session_id:
        print(f"\n[session_id] {result.session_id}", file=sys.stderr)
    for uri in result.resources:
        print(f"[resource] {uri}", file=sys.stderr)
    return 1 if result.is_error else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Scrape web pages through Scraper.is")
    parser.add_argument(
        "prompt", nargs="?", help="What to scrape, including the page URL"
    )
    parser.add_argument(
        "--format",
        default="markdown",
        help="Output format: markdown, html, screenshot, json, quick, csv or xml",
    )
    parser.add_argument("--list-tools", action="store_true", help="List available tools")
    parser.add_argument(
        "--list-tool-groups", action="store_true", help="List available tool groups"
    )
    parser.add_argument("--screenshot", metavar="URL", help="Request a screenshot of URL")
    parser.add_argument(
        "--deadline",
        type=float,
        help="Give up polling after this many seconds",
    )
    parser.add_argument("--save", help="Write a screenshot image to this file path")
    parser.add_argument("--server", action="store_true", help="Start the API server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind the server to")
    parser.add_argument(
        "--port", type=int, default=8000, help="Port to run the server on"
    )
    parser.add_argument("--reload", action="store_true", help="Enable hot reloading")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)

    if args.list_tools:
        from scraperis_agent.tools.registry import ToolRegistry

        for entry in ToolRegistry.describe():
            print(f"- {entry['name']}: {entry['intent']}")
        return

    if args.list_tool_groups:
        from scraperis_agent.tools.registry import ToolRegistry

        for group_name, tools in ToolRegistry.list_groups().items():
            print(f"- {group_name}: {', '.join(tools)}")
        return

    try:
        settings.validate_startup()
    except (MissingCredential, MissingConfiguration) as exc:
        raise SystemExit(f"Configuration error: {exc.message}")

    if args.server:
        import uvicorn

        print(
            f"Starting server on {args.host}:{args.port} (reload={'on' if args.reload else 'off'})"
        )
        if args.reload:
            # When reloading, pass the import string instead of the app object
            uvicorn.run(
                "scraperis_agent.api:app", host=args.host, port=args.port, reload=True
            )
        else:
            from scraperis_agent.api import app

            uvicorn.run(app, host=args.host, port=args.port)
        return

    if not args.prompt and not args.screenshot:
        raise SystemExit(
            "Provide a prompt or use --screenshot / --list-tools / --list-tool-groups"
        )

    from scraperis_agent.service import ScrapeService

    async def _run() -> ToolResult:
        service = ScrapeService.from_settings(settings)
        try:
            if args.screenshot:
                return await service.screenshot(args.screenshot)
            return await service.scrape(
                args.prompt,
                args.format,
                progress=CallbackProgressSink(_print_progress),
                cancel=CancellationToken(args.deadline or settings.job_deadline_seconds),
            )
        finally:
            await service.aclose()

    raise SystemExit(_emit(asyncio.run(_run()), args.save))


if __name__ == "__main__":
    main()
