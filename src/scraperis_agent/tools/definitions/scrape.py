from scraperis_agent.tools.builders.scraping import build_scrape_tool
from scraperis_agent.tools.tool_models import ToolSpec

tool = ToolSpec(
    name="scrape",
    builder=build_scrape_tool,
    intent="Extract content from a web page described in natural language.",
    schema_notes="Takes 'prompt' (with the URL) and 'format'. Returns a ToolResult dict.",
    groups=["core", "capture"],
)
