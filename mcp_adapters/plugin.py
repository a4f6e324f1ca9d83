"""
Boot sequence: build the registry, bridges and servers in a fixed order.

  1. adapters register native abilities (FluentBoards, then listeners)
  2. configured bridges connect and register proxy abilities
  3. server assemblers publish what the registry now holds
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable

from mcp_adapters import config
from mcp_adapters._utils import _log_error
from mcp_adapters.abilities import AbilityRegistry
from mcp_adapters.exceptions import SetupError
from mcp_adapters.fluentboards import FluentBoardsAdapter, load_backend
from mcp_adapters.manager import McpClientManager
from mcp_adapters.server import AllAbilitiesServer, McpAdapter


def load_client_definitions(path):
    """Read ``{"clients": [{"id", "url", "timeout"?, "auth"?}]}`` from a JSON file.

    Raises:
        SetupError: If the file is missing, unreadable, or malformed.
    """
    if not os.path.exists(path):
        raise SetupError(f"[ERROR] Clients file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SetupError(f"[ERROR] Cannot read clients file {path}: {e}") from e
    clients = data.get("clients") if isinstance(data, dict) else None
    if not isinstance(clients, list):
        raise SetupError(f"[ERROR] Clients file {path} must hold a 'clients' list.")
    definitions = []
    for i, entry in enumerate(clients):
        if not isinstance(entry, dict) or not entry.get("id") or not entry.get("url"):
            raise SetupError(f"[ERROR] Client #{i} in {path} needs an 'id' and a 'url'.")
        auth = entry.get("auth")
        if auth is not None and not isinstance(auth, dict):
            raise SetupError(f"[ERROR] Client '{entry['id']}' auth must be an object.")
        definitions.append(entry)
    return definitions


def _client_config(definition):
    client_config = {}
    if "timeout" in definition:
        client_config["timeout"] = definition["timeout"]
    if definition.get("auth"):
        client_config["auth"] = definition["auth"]
    return client_config


class Plugin:
    """Owns one registry, one bridge manager and one MCP adapter.

    Args:
        backend: FluentBoards store, or None to skip FluentBoards.
        client_definitions: Bridge definitions as loaded from the clients file.
        post: Transport override handed to every bridge (tests inject fakes).
    """

    def __init__(self, backend=None, *, client_definitions=None, post=None):
        self.backend = backend
        self.client_definitions = list(client_definitions or [])
        self.registry = AbilityRegistry()
        self.manager = McpClientManager(self.registry, post=post)
        self.mcp_adapter = McpAdapter(self.registry)
        self.fluentboards: FluentBoardsAdapter | None = None
        self.adapter_initializers: list[Callable[[Plugin], None]] = []
        self.ability_providers: list[Callable] = []
        self._booted = False

    @classmethod
    def from_config(cls, **kwargs):
        """Build from ``config.BACKEND`` and ``config.CLIENTS_FILE``."""
        backend = load_backend(config.BACKEND) if config.BACKEND else None
        definitions = load_client_definitions(config.CLIENTS_FILE) if config.CLIENTS_FILE else []
        return cls(backend, client_definitions=definitions, **kwargs)

    def on_initialize(self, callback):
        """Queue an adapter initializer run after FluentBoards registers."""
        self.adapter_initializers.append(callback)
        return callback

    def boot(self):
        """Run the boot sequence once; later calls are no-ops."""
        if self._booted:
            return self
        self._booted = True
        self.initialize_adapters()
        self.initialize_clients()
        self.initialize_servers()
        return self

    def initialize_adapters(self):
        fluentboards = FluentBoardsAdapter(self.registry, self.backend)
        if fluentboards.active:
            fluentboards.register_abilities()
            fluentboards.register_prompts()
            self.fluentboards = fluentboards
        for callback in self.adapter_initializers:
            try:
                callback(self)
            except Exception as e:
                _log_error(f"Adapter initializer {callback!r} failed: {e}")

    def initialize_clients(self):
        definitions = self.client_definitions

        def create_configured(manager):
            for definition in definitions:
                manager.create_client(
                    definition["id"], definition["url"], _client_config(definition)
                )

        if definitions:
            self.manager.on_init(create_configured)
        self.manager.init()

    def initialize_servers(self):
        if self.fluentboards is not None:
            self.fluentboards.register_all_servers(self.mcp_adapter)
        all_abilities = AllAbilitiesServer(self.registry, providers=self.ability_providers)
        self.mcp_adapter.on_init(all_abilities.register_with_adapter)
        self.mcp_adapter.init()

    @property
    def booted(self) -> bool:
        return self._booted
