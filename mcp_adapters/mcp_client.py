"""
McpClient: bridge one external MCP server into the local ability registry.

Construction connects eagerly: it sends ``initialize``, then discovers the
remote tools, resources and prompts and registers a proxy ability for each.
Proxies are named ``mcp_{client_id}/{tool}``,
``mcp_{client_id}/resource/{uri}`` and ``mcp_{client_id}/prompt/{name}``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from mcp_adapters import config as settings
from mcp_adapters._utils import _log_error, _log_warning
from mcp_adapters.abilities import (
    AbilityRegistry,
    RemotePromptCall,
    RemoteResourceCall,
    RemoteToolCall,
)
from mcp_adapters.transport import JsonRpcTransport, RemoteError

PermissionFilter = Callable[[bool, str], bool]


@dataclass
class ListResult:
    """Items from a ``*/list`` call, plus the error if the call failed.

    Iterates and sizes like the item list, so an empty failed listing still
    reads as empty; check ``ok``/``error`` to tell the two apart.
    """

    items: list[dict] = field(default_factory=list)
    error: RemoteError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __iter__(self) -> Iterator[dict]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)


def apply_permission_filters(filters, client_id) -> bool:
    """Run the permission filter chain seeded with ``True``."""
    allowed = True
    for permission_filter in filters:
        allowed = permission_filter(allowed, client_id)
    return bool(allowed)


class McpClient:
    """JSON-RPC bridge to a single remote MCP server.

    Args:
        client_id: Unique bridge id; namespaces every proxy ability.
        server_url: Remote MCP endpoint (HTTP POST).
        config: ``{"timeout": seconds, "auth": AuthSpec}``.
        registry: Ability registry proxies are registered into.
        permission_filters: Shared ``(allowed, client_id) -> bool`` chain
            consulted by every proxy's permission check at call time.
        post: Optional HTTP poster, forwarded to JsonRpcTransport.
    """

    def __init__(
        self,
        client_id: str,
        server_url: str,
        config: dict | None = None,
        *,
        registry: AbilityRegistry,
        permission_filters: list[PermissionFilter] | None = None,
        post: Callable | None = None,
    ):
        self.client_id = client_id
        self.server_url = server_url
        self.config = {"timeout": settings.HTTP_TIMEOUT_SECONDS, "auth": {}}
        self.config.update(config or {})
        self.registry = registry
        self.permission_filters = permission_filters if permission_filters is not None else []
        self.transport = JsonRpcTransport(
            server_url,
            timeout=self.config["timeout"],
            auth=self.config["auth"],
            post=post,
        )
        self.connected = False
        self.capabilities: dict[str, Any] = {}
        self.session_id: str | None = None
        self.last_error: RemoteError | None = None
        self.registered: list[str] = []
        # Blocks on network I/O; there is no construct-without-connect mode.
        self.connect()

    # -- accessors -----------------------------------------------------------

    def is_connected(self) -> bool:
        return self.connected

    def get_id(self) -> str:
        return self.client_id

    def get_server_url(self) -> str:
        return self.server_url

    def get_capabilities(self) -> dict[str, Any]:
        return self.capabilities

    def get_session_id(self) -> str | None:
        return self.session_id

    # -- connection ----------------------------------------------------------

    def connect(self) -> bool:
        """Initialize the session and register remote capabilities.

        Never raises; failures are logged and reported as ``False``.
        """
        try:
            response = self.transport.send("initialize", {})
            if isinstance(response, RemoteError):
                self.last_error = response
                _log_warning(
                    f"McpClient ({self.client_id}) initialize failed: {response.message}"
                )
                return False
            if not isinstance(response, dict):
                response = {}
            capabilities = response.get("capabilities") or {}
            self.capabilities = capabilities if isinstance(capabilities, dict) else {}
            self.session_id = response.get("sessionId")
            self.connected = True
            self._register_remote_capabilities()
            return True
        except Exception as e:
            _log_error(f"McpClient ({self.client_id}) connection failed: {e}")
            return False

    def permission_check(self, args=None) -> bool:
        """Permission callback shared by every proxy of this bridge."""
        return apply_permission_filters(self.permission_filters, self.client_id)

    # -- remote invocation ---------------------------------------------------

    def call_tool(self, tool_name: str, args: dict | None = None):
        return self.transport.send("tools/call", {"name": tool_name, "arguments": args or {}})

    def read_resource(self, uri: str):
        return self.transport.send("resources/read", {"uri": uri})

    def get_prompt(self, prompt_name: str, args: dict | None = None):
        return self.transport.send("prompts/get", {"name": prompt_name, "arguments": args or {}})

    def list_tools(self) -> ListResult:
        return self._list("tools/list", "tools")

    def list_resources(self) -> ListResult:
        return self._list("resources/list", "resources")

    def list_prompts(self) -> ListResult:
        return self._list("prompts/list", "prompts")

    def _list(self, method, key) -> ListResult:
        response = self.transport.send(method, {})
        if isinstance(response, RemoteError):
            return ListResult(error=response)
        items = response.get(key) if isinstance(response, dict) else None
        items = items or []
        if not isinstance(items, list):
            return ListResult()
        return ListResult(items=[item for item in items if isinstance(item, dict)])

    # -- proxy registration --------------------------------------------------

    def _register_remote_capabilities(self):
        """Discover each capability class independently and register proxies."""
        tools = self.list_tools()
        if tools.error:
            _log_warning(f"McpClient ({self.client_id}) tools/list failed: {tools.error.message}")
        for tool in tools:
            self._register_tool(tool)

        resources = self.list_resources()
        if resources.error:
            _log_warning(
                f"McpClient ({self.client_id}) resources/list failed: {resources.error.message}"
            )
        for resource in resources:
            self._register_resource(resource)

        prompts = self.list_prompts()
        if prompts.error:
            _log_warning(
                f"McpClient ({self.client_id}) prompts/list failed: {prompts.error.message}"
            )
        for prompt in prompts:
            self._register_prompt(prompt)

    def _meta(self, item_type):
        return {"source": "mcp_client", "client_id": self.client_id, "type": item_type}

    def _register(self, name, description, input_schema, kind, item_type):
        ability = self.registry.register(
            name,
            description=description or "",
            input_schema=input_schema if isinstance(input_schema, dict) else {},
            permission_callback=self.permission_check,
            kind=kind,
            meta=self._meta(item_type),
        )
        if ability is not None:
            self.registered.append(name)
        return ability

    def _register_tool(self, tool):
        name = tool.get("name")
        if not name:
            return None
        return self._register(
            f"{settings.PROXY_PREFIX}{self.client_id}/{name}",
            tool.get("description"),
            tool.get("inputSchema") or {},
            RemoteToolCall(self, name),
            "tool",
        )

    def _register_resource(self, resource):
        uri = resource.get("uri")
        if not uri:
            return None
        return self._register(
            f"{settings.PROXY_PREFIX}{self.client_id}/resource/{uri}",
            resource.get("description"),
            {},
            RemoteResourceCall(self, uri),
            "resource",
        )

    def _register_prompt(self, prompt):
        name = prompt.get("name")
        if not name:
            return None
        # MCP prompts announce arguments as a list; keep whatever was sent.
        arguments = prompt.get("arguments") or {}
        schema = arguments if isinstance(arguments, dict) else {"arguments": arguments}
        return self._register(
            f"{settings.PROXY_PREFIX}{self.client_id}/prompt/{name}",
            prompt.get("description"),
            schema,
            RemotePromptCall(self, name),
            "prompt",
        )

    def __repr__(self):
        state = "connected" if self.connected else "disconnected"
        return f"<McpClient {self.client_id} {self.server_url} {state}>"
