"""
McpClientManager: directory of connected McpClient bridges.

One manager is built at boot and handed to whoever needs lookups. External
code registers bridges from ``on_init`` callbacks, which ``init()`` fires
exactly once.
"""

from __future__ import annotations

from collections.abc import Callable

from mcp_adapters._utils import _log_error
from mcp_adapters.abilities import AbilityRegistry
from mcp_adapters.mcp_client import McpClient, PermissionFilter


class McpClientManager:
    """Create, store and report on McpClient instances keyed by id.

    Only connected clients are stored. A refused or failed ``create_client``
    returns None and logs one line; nothing here raises.
    """

    def __init__(
        self,
        registry: AbilityRegistry,
        *,
        permission_filters: list[PermissionFilter] | None = None,
        post: Callable | None = None,
    ):
        self.registry = registry
        self.permission_filters: list[PermissionFilter] = list(permission_filters or [])
        self._post = post
        self._clients: dict[str, McpClient] = {}
        self._init_callbacks: list[Callable[[McpClientManager], None]] = []
        self._initialized = False

    # -- extension points ----------------------------------------------------

    def on_init(self, callback: Callable[[McpClientManager], None]):
        """Queue a bridge-registration callback; returns it for decorator use."""
        self._init_callbacks.append(callback)
        return callback

    def add_permission_filter(self, permission_filter: PermissionFilter):
        """Append to the ``(allowed, client_id) -> bool`` chain; returns it."""
        self.permission_filters.append(permission_filter)
        return permission_filter

    def init(self):
        """Fire init callbacks once, in registration order."""
        if self._initialized:
            return
        self._initialized = True
        for callback in self._init_callbacks:
            try:
                callback(self)
            except Exception as e:
                _log_error(f"McpClient init callback {callback!r} failed: {e}")

    @property
    def initialized(self) -> bool:
        return self._initialized

    # -- directory -----------------------------------------------------------

    def create_client(self, client_id: str, server_url: str, config: dict | None = None):
        """Construct and connect a bridge; store it only if it connected."""
        if client_id in self._clients:
            _log_error(f"McpClient with ID '{client_id}' is already registered.")
            return None
        try:
            client = McpClient(
                client_id,
                server_url,
                config,
                registry=self.registry,
                permission_filters=self.permission_filters,
                post=self._post,
            )
        except Exception as e:
            _log_error(f"McpClient '{client_id}' creation failed: {e}")
            return None
        if client.is_connected():
            self._clients[client_id] = client
            return client
        _log_error(f"McpClient '{client_id}' failed to connect to '{server_url}'.")
        return None

    def get_client(self, client_id: str) -> McpClient | None:
        return self._clients.get(client_id)

    def get_clients(self) -> dict[str, McpClient]:
        return dict(self._clients)

    def has_client(self, client_id: str) -> bool:
        return client_id in self._clients

    def get_client_status(self) -> dict[str, dict]:
        """Live status per stored bridge; counts come from fresh list calls."""
        status = {}
        for client_id, client in self._clients.items():
            status[client_id] = {
                "id": client_id,
                "url": client.get_server_url(),
                "connected": client.is_connected(),
                "capabilities": client.get_capabilities(),
                "tools": len(client.list_tools()),
                "resources": len(client.list_resources()),
                "prompts": len(client.list_prompts()),
            }
        return status
