"""
AllAbilitiesServer: one server over everything the registry holds.

FluentBoards abilities come first when they are registered, then names added
by provider callables, then every bridged remote capability.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from mcp_adapters import config
from mcp_adapters.server._handlers import ErrorLogErrorHandler, NullObservabilityHandler
from mcp_adapters.server._server import HTTP_TRANSPORT, STDIO_TRANSPORT

# (names) -> names; lets other adapters add ability names to the list.
AbilityProvider = Callable[[list[str]], Iterable[str]]


def _dedupe(names):
    return list(dict.fromkeys(names))


class AllAbilitiesServer:
    server_id = "all-abilities"

    def __init__(self, registry, *, providers: Iterable[AbilityProvider] = ()):
        self.registry = registry
        self.providers = list(providers)

    def register_with_adapter(self, adapter):
        return adapter.create_server(
            self.server_id,
            "mcp-all",
            "abilities",
            "All Abilities",
            "Universal server exposing all registered abilities from all active adapters",
            config.VERSION,
            (HTTP_TRANSPORT, STDIO_TRANSPORT),
            ErrorLogErrorHandler,
            NullObservabilityHandler,
            self.get_all_abilities(),
            resources=self.get_all_resources(),
            prompts=self.get_all_prompts(),
        )

    def _bridged(self, item_type):
        return [
            a.name
            for a in self.registry.all()
            if a.meta.get("source") == "mcp_client" and a.meta.get("type") == item_type
        ]

    def _fluentboards(self, attr):
        from mcp_adapters.fluentboards.servers import FullFluentBoardsServer

        return [n for n in getattr(FullFluentBoardsServer(), attr)() if self.registry.has(n)]

    def get_all_abilities(self) -> list[str]:
        names = self._fluentboards("get_all_abilities")
        for provider in self.providers:
            names = list(provider(names))
        return _dedupe(names + self._bridged("tool"))

    def get_all_prompts(self) -> list[str]:
        names = self._fluentboards("get_all_prompts")
        return _dedupe(names + self._bridged("prompt"))

    def get_all_resources(self) -> list[str]:
        return _dedupe(self._bridged("resource"))
