"""
FluentBoardsAdapter: registers the FluentBoards ability groups, prompts and
servers against one registry and backend.
"""

from __future__ import annotations

from mcp_adapters.fluentboards._base import backend_available
from mcp_adapters.fluentboards.attachments import Attachments
from mcp_adapters.fluentboards.boards import Boards
from mcp_adapters.fluentboards.comments import Comments
from mcp_adapters.fluentboards.labels import Labels
from mcp_adapters.fluentboards.prompts import Prompts
from mcp_adapters.fluentboards.reporting import Reporting
from mcp_adapters.fluentboards.servers import BoardCrudServer, FullFluentBoardsServer
from mcp_adapters.fluentboards.stages import Stages
from mcp_adapters.fluentboards.tasks import Tasks
from mcp_adapters.fluentboards.users import Users

ABILITY_GROUPS = (Boards, Tasks, Stages, Comments, Users, Attachments, Reporting, Labels)
SERVERS = (BoardCrudServer, FullFluentBoardsServer)


class FluentBoardsAdapter:
    """Wire FluentBoards into the registry; does nothing without an active backend.

    Args:
        registry: AbilityRegistry the groups register into.
        backend: FluentBoards store.
        mcp_adapter: Optional McpAdapter; when given, the servers are queued
            on its init listeners right away.
    """

    def __init__(self, registry, backend, *, mcp_adapter=None):
        self.registry = registry
        self.backend = backend
        self.groups = []
        self.active = backend_available(backend)
        if self.active and mcp_adapter is not None:
            self.register_all_servers(mcp_adapter)

    def register_abilities(self):
        if not self.active:
            return []
        groups = [group(self.registry, self.backend) for group in ABILITY_GROUPS]
        self.groups.extend(groups)
        return groups

    def register_prompts(self):
        if not self.active:
            return None
        prompts = Prompts(self.registry, self.backend)
        self.groups.append(prompts)
        return prompts

    def register_all_servers(self, mcp_adapter):
        """Queue both FluentBoards servers on ``mcp_adapter`` init."""
        if not self.active:
            return
        for server_cls in SERVERS:
            mcp_adapter.on_init(lambda adapter, cls=server_cls: cls().register_with_adapter(adapter))

    @property
    def registered(self) -> list[str]:
        return [name for group in self.groups for name in group.registered]
