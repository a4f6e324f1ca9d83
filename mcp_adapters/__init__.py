"""mcp-adapters: publish native abilities and bridged MCP servers as MCP servers."""

from mcp_adapters.abilities import Ability, AbilityRegistry
from mcp_adapters.config import VERSION
from mcp_adapters.exceptions import (
    AbilityNotFoundError,
    AbilityPermissionError,
    AdapterError,
    SetupError,
)
from mcp_adapters.manager import McpClientManager
from mcp_adapters.mcp_client import ListResult, McpClient
from mcp_adapters.plugin import Plugin
from mcp_adapters.transport import RemoteError
from mcp_adapters.types import (
    AuthSpec,
    ClientConfig,
    ClientStatus,
    ErrorResponse,
    ServerSummary,
    SuccessResponse,
)

__all__ = [
    "VERSION",
    "Ability",
    "AbilityNotFoundError",
    "AbilityPermissionError",
    "AbilityRegistry",
    "AdapterError",
    "AuthSpec",
    "ClientConfig",
    "ClientStatus",
    "ErrorResponse",
    "ListResult",
    "McpClient",
    "McpClientManager",
    "Plugin",
    "RemoteError",
    "ServerSummary",
    "SetupError",
    "SuccessResponse",
]
