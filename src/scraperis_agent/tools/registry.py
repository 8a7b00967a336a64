import importlib
import pkgutil
from typing import Any

from scraperis_agent.tools import definitions
from scraperis_agent.tools.groups import TOOL_GROUPS
from scraperis_agent.tools.tool_models import ToolSpec


class ToolRegistry:
    """Central tool registry that dynamically discovers tools in the 'definitions' package."""

    _cached_tools: dict[str, ToolSpec] | None = None

    @classmethod
    def _discover_tools(cls) -> dict[str, ToolSpec]:
        if cls._cached_tools is not None:
            return cls._cached_tools

        tools: dict[str, ToolSpec] = {}
        for _, module_name, is_pkg in pkgutil.walk_packages(
            definitions.__path__, prefix="scraperis_agent.tools.definitions."
        ):
            if is_pkg:
                continue

            module = importlib.import_module(module_name)

            # Look for a 'tool' attribute that is a ToolSpec.
            tool_spec = getattr(module, "tool", None)
            if isinstance(tool_spec, ToolSpec):
                if tool_spec.name in tools:
                    raise ValueError(
                        f"Duplicate tool name detected: {tool_spec.name} "
                        f"(module {module_name})"
                    )
                tools[tool_spec.name] = tool_spec

        cls._cached_tools = tools
        return tools

    @classmethod
    def resolve_tool_names(
        cls, tool_names: list[str], group_names: list[str]
    ) -> list[str]:
        merged: list[str] = []
        for group_name in group_names:
            if group_name not in TOOL_GROUPS:
                raise ValueError(f"Unknown tool group: {group_name}")
            merged.extend(TOOL_GROUPS[group_name])
        merged.extend(tool_names)
        # Keep deterministic order while de-duplicating.
        return list(dict.fromkeys(merged))

    @classmethod
    def get_tools(
        cls, tool_names: list[str], group_names: list[str] | None = None
    ) -> list[Any]:
        groups = group_names or []
        resolved = cls.resolve_tool_names(tool_names, groups)
        tools_map = cls._discover_tools()
        missing = [name for name in resolved if name not in tools_map]
        if missing:
            raise ValueError(f"Unknown tool(s): {', '.join(missing)}")
        return [tools_map[name].builder() for name in resolved]

    @classmethod
    def get_tool(cls, name: str) -> Any:
        return cls.get_tools([name])[0]

    @classmethod
    def describe(cls) -> list[dict[str, Any]]:
        """Descriptor table: name, description and JSON input schema per tool."""
        table: list[dict[str, Any]] = []
        for name, spec in cls._discover_tools().items():
            built = spec.builder()
            table.append(
                {
                    "name": name,
                    "description": built.description,
                    "intent": spec.intent,
                    "schema_notes": spec.schema_notes,
                    "groups": list(spec.groups),
                    "input_schema": built.args_schema.model_json_schema(),
                }
            )
        return table

    @classmethod
    def list_groups(cls) -> dict[str, list[str]]:
        return dict(TOOL_GROUPS)

    @classmethod
    def list_all_tools(cls) -> list[str]:
        return list(cls._discover_tools().keys())
