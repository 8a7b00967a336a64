"""Tool definitions discovered by ToolRegistry; one ToolSpec per module."""
