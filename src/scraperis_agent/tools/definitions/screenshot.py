from scraperis_agent.tools.builders.scraping import build_screenshot_tool
from scraperis_agent.tools.tool_models import ToolSpec

tool = ToolSpec(
    name="screenshot",
    builder=build_screenshot_tool,
    intent="Request a standalone screenshot of a URL.",
    schema_notes="Takes 'url' string. Returns the service acknowledgement as JSON text.",
    groups=["capture"],
)
