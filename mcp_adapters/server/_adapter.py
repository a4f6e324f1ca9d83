"""
McpAdapter: assembles MCP servers from registry abilities.

Server assemblers queue themselves with ``on_init``; ``init()`` fires the
queue once, after every ability is registered.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from mcp_adapters._utils import _log_error
from mcp_adapters.abilities import AbilityRegistry
from mcp_adapters.server._handlers import (
    ErrorLogErrorHandler,
    NullObservabilityHandler,
    resolve_handler,
)
from mcp_adapters.server._server import TRANSPORTS, McpServer, ServerManifest


class McpAdapter:
    def __init__(self, registry: AbilityRegistry):
        self.registry = registry
        self._servers: dict[str, McpServer] = {}
        self._init_callbacks: list[Callable[[McpAdapter], None]] = []
        self._initialized = False

    def on_init(self, callback: Callable[[McpAdapter], None]):
        """Queue a server-assembly callback; returns it for decorator use."""
        self._init_callbacks.append(callback)
        return callback

    def init(self):
        """Fire init callbacks once, in registration order."""
        if self._initialized:
            return
        self._initialized = True
        for callback in self._init_callbacks:
            try:
                callback(self)
            except Exception as e:
                _log_error(f"MCP adapter init callback {callback!r} failed: {e}")

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _known(self, names: Iterable[str], what: str, server_id: str, error_handler) -> tuple:
        kept = []
        for name in names:
            if name in kept:
                continue
            if not self.registry.has(name):
                error_handler.log(
                    f"{what} '{name}' is not registered; leaving it out.",
                    {"server_id": server_id},
                )
                continue
            kept.append(name)
        return tuple(kept)

    def create_server(
        self,
        server_id: str,
        route_namespace: str,
        route: str,
        name: str,
        description: str,
        version: str,
        transports: Iterable[str],
        error_handler=None,
        observability_handler=None,
        ability_names: Iterable[str] = (),
        resources: Iterable[str] = (),
        prompts: Iterable[str] = (),
    ) -> McpServer | None:
        """Assemble and store a server. Returns None when refused."""
        if not server_id:
            _log_error("Refusing to create an MCP server with an empty id.")
            return None
        if server_id in self._servers:
            _log_error(f"MCP server with ID '{server_id}' already exists.")
            return None
        transports = tuple(transports)
        unknown = [t for t in transports if t not in TRANSPORTS]
        if not transports or unknown:
            _log_error(f"MCP server '{server_id}' has invalid transports: {unknown or 'none'}.")
            return None

        error_handler = resolve_handler(error_handler, ErrorLogErrorHandler)
        manifest = ServerManifest(
            server_id=server_id,
            route_namespace=route_namespace,
            route=route,
            name=name,
            description=description,
            version=version,
            transports=transports,
            error_handler=error_handler,
            observability_handler=resolve_handler(observability_handler, NullObservabilityHandler),
            ability_names=self._known(ability_names, "Ability", server_id, error_handler),
            resources=self._known(resources, "Resource", server_id, error_handler),
            prompts=self._known(prompts, "Prompt", server_id, error_handler),
        )
        server = McpServer(manifest, self.registry)
        self._servers[server_id] = server
        return server

    def get_server(self, server_id: str) -> McpServer | None:
        return self._servers.get(server_id)

    def get_servers(self) -> dict[str, McpServer]:
        return dict(self._servers)
