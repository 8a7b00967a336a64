# Central registry of tool groups.
# Map group names to the internal names of the tools they contain.
TOOL_GROUPS: dict[str, list[str]] = {
    "core": ["scrape"],
    "capture": ["scrape", "screenshot"],
}
