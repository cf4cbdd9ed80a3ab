from contextgate.mcp.server import (
    mcp,
    mcp_tool,
    registered_tool_names,
    get_current_context,
)

__all__ = [
    "mcp",
    "mcp_tool",
    "registered_tool_names",
    "get_current_context",
]
