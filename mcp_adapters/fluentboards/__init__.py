"""
FluentBoards project-management abilities.

  backend.py: store interface and CurrentUser
  memory.py: dict-backed store for tests and demos
  _base.py: BaseAbility contract shared by every group
  boards.py .. reporting.py: ability groups
  prompts.py: prompt templates registered as abilities
  servers.py: BoardCrudServer and FullFluentBoardsServer
  adapter.py: FluentBoardsAdapter wiring it all together
"""

from mcp_adapters.fluentboards.adapter import FluentBoardsAdapter
from mcp_adapters.fluentboards.backend import CurrentUser, FluentBoardsBackend, load_backend
from mcp_adapters.fluentboards.memory import InMemoryBackend
from mcp_adapters.fluentboards.servers import BoardCrudServer, FullFluentBoardsServer

__all__ = [
    "BoardCrudServer",
    "CurrentUser",
    "FluentBoardsAdapter",
    "FluentBoardsBackend",
    "FullFluentBoardsServer",
    "InMemoryBackend",
    "load_backend",
]
