"""
Backend interface the FluentBoards ability groups delegate to.

The project-management store is external; ability groups only validate,
authorize, call these methods and format the results. Every method works on
plain dicts and returns ``None`` where a lookup finds nothing.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from mcp_adapters.exceptions import SetupError


@dataclass(frozen=True)
class CurrentUser:
    """The user on whose behalf abilities run."""

    id: int = 0
    logged_in: bool = False
    capabilities: frozenset[str] = field(default_factory=frozenset)

    def can(self, capability: str) -> bool:
        return capability in self.capabilities


@runtime_checkable
class FluentBoardsBackend(Protocol):
    # -- environment ---------------------------------------------------------

    def is_active(self) -> bool: ...

    def current_user(self) -> CurrentUser: ...

    # -- users ---------------------------------------------------------------

    def get_user(self, user_id: int) -> dict | None: ...

    # ``limit=0`` means no limit.
    def list_users(self, *, search: str = "", offset: int = 0, limit: int = 20) -> list[dict]: ...

    # -- boards --------------------------------------------------------------

    # ``user_id`` keeps boards the user created or is a member of; ``limit=0``
    # means no limit.
    def list_boards(
        self,
        *,
        user_id: int | None = None,
        board_type: str | None = None,
        search: str = "",
        archived: bool = False,
        offset: int = 0,
        limit: int = 20,
    ) -> list[dict]: ...

    def get_board(self, board_id: int) -> dict | None: ...

    def create_board(self, data: dict) -> dict: ...

    def update_board(self, board_id: int, data: dict) -> dict: ...

    def delete_board(self, board_id: int) -> None: ...

    def duplicate_board(self, board_id: int, title: str, user_id: int) -> dict: ...

    def is_pinned(self, board_id: int, user_id: int) -> bool: ...

    def pin_board(self, board_id: int, user_id: int) -> None: ...

    def unpin_board(self, board_id: int, user_id: int) -> bool: ...

    def board_members(self, board_id: int) -> list[dict]: ...

    def add_board_member(self, board_id: int, user_id: int, role: str) -> dict: ...

    def remove_board_member(self, board_id: int, user_id: int) -> None: ...

    def update_board_member(self, board_id: int, user_id: int, data: dict) -> dict: ...

    # -- stages --------------------------------------------------------------

    def list_stages(self, board_id: int, *, archived: bool = False) -> list[dict]: ...

    def get_stage(self, stage_id: int) -> dict | None: ...

    def create_stage(self, board_id: int, data: dict) -> dict: ...

    def update_stage(self, stage_id: int, data: dict) -> dict: ...

    # -- tasks ---------------------------------------------------------------

    def list_tasks(
        self,
        *,
        board_id: int | None = None,
        stage_id: int | None = None,
        assignee_id: int | None = None,
        archived: bool = False,
    ) -> list[dict]: ...

    def get_task(self, task_id: int) -> dict | None: ...

    def create_task(self, board_id: int, data: dict) -> dict: ...

    def update_task(self, task_id: int, data: dict) -> dict: ...

    def delete_task(self, task_id: int) -> None: ...

    # -- comments ------------------------------------------------------------

    def list_comments(self, task_id: int) -> list[dict]: ...

    def get_comment(self, comment_id: int) -> dict | None: ...

    def create_comment(self, task_id: int, data: dict) -> dict: ...

    def update_comment(self, comment_id: int, data: dict) -> dict: ...

    def delete_comment(self, comment_id: int) -> int: ...

    # -- labels --------------------------------------------------------------

    def list_labels(self, board_id: int) -> list[dict]: ...

    def get_label(self, label_id: int) -> dict | None: ...

    def create_label(self, board_id: int, data: dict) -> dict: ...

    def update_label(self, label_id: int, data: dict) -> dict: ...

    def delete_label(self, label_id: int) -> None: ...

    def task_labels(self, task_id: int) -> list[dict]: ...

    def attach_label(self, task_id: int, label_id: int) -> bool: ...

    def detach_label(self, task_id: int, label_id: int) -> bool: ...

    # -- attachments ---------------------------------------------------------

    def list_attachments(self, task_id: int) -> list[dict]: ...

    def get_attachment(self, attachment_id: int) -> dict | None: ...

    def create_attachment(self, task_id: int, data: dict) -> dict: ...

    def update_attachment(self, attachment_id: int, data: dict) -> dict: ...

    def delete_attachment(self, attachment_id: int) -> None: ...

    # -- activity ------------------------------------------------------------

    # Dates compare as ``YYYY-MM-DD HH:MM:SS`` strings; ``limit=0`` means no limit.

    def list_activities(
        self,
        *,
        board_ids: list[int] | None = None,
        user_id: int | None = None,
        date_from: str | None = None,
        date_to: str | None = None,
        limit: int = 50,
    ) -> list[dict]: ...


def load_backend(path: str) -> Any:
    """Import a backend from ``module:attribute``; call it when callable."""
    if ":" not in path:
        raise SetupError(f"[ERROR] Backend path must look like 'module:attribute', got {path!r}.")
    module_name, attr = path.split(":", 1)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise SetupError(f"[ERROR] Cannot import backend module '{module_name}': {e}") from e
    target = getattr(module, attr, None)
    if target is None:
        raise SetupError(f"[ERROR] Backend '{attr}' not found in module '{module_name}'.")
    return target() if callable(target) else target
