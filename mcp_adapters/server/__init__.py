"""
MCP adapter layer: assemble servers from registry abilities and serve them.

  _handlers.py: error-log and null observability handlers
  _server.py: ServerManifest, McpServer dispatch, stdio/HTTP wiring
  _adapter.py: McpAdapter (create_server, init listeners)
  all_abilities.py: AllAbilitiesServer over the whole registry
"""

from mcp_adapters.server._handlers import ErrorLogErrorHandler, NullObservabilityHandler
from mcp_adapters.server._server import (
    HTTP_TRANSPORT,
    RESOURCE_SCHEME,
    STDIO_TRANSPORT,
    TRANSPORTS,
    McpServer,
    ServerManifest,
    tool_name,
)
from mcp_adapters.server._adapter import McpAdapter
from mcp_adapters.server.all_abilities import AllAbilitiesServer

__all__ = [
    "AllAbilitiesServer",
    "ErrorLogErrorHandler",
    "HTTP_TRANSPORT",
    "McpAdapter",
    "McpServer",
    "NullObservabilityHandler",
    "RESOURCE_SCHEME",
    "STDIO_TRANSPORT",
    "ServerManifest",
    "TRANSPORTS",
    "tool_name",
]
