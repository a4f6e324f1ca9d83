"""
BaseAbility: shared contract and helpers for FluentBoards ability groups.

A group registers nothing unless its backend is present and active. Every
execute method returns the result envelope and never raises: ``register``
wraps each one so unexpected exceptions become an error response carrying
the operation's own code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from functools import wraps

from mcp_adapters._utils import _log_error, _positive_int
from mcp_adapters.abilities import AbilityRegistry
from mcp_adapters.fluentboards.backend import CurrentUser

CATEGORY = "fluentboards"
NAME_PREFIX = "fluentboards/"

ADMIN_CAPABILITIES = ("manage_options", "fluent_boards_admin")
VIEW_CAPABILITY = "fluent_boards_view"


def now():
    """Current UTC time in the store's ``YYYY-MM-DD HH:MM:SS`` format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def integer(description, **extra):
    return {"type": "integer", "description": description, **extra}


def string(description, **extra):
    return {"type": "string", "description": description, **extra}


def boolean(description, **extra):
    return {"type": "boolean", "description": description, **extra}


def object_schema(properties=None, required=()):
    """Build a JSON-Schema object for an ability's input."""
    schema = {"type": "object", "properties": dict(properties or {})}
    if required:
        schema["required"] = list(required)
    return schema


def backend_available(backend) -> bool:
    """True when a backend is present and reports itself active."""
    if backend is None:
        return False
    try:
        return bool(backend.is_active())
    except Exception as e:
        _log_error(f"FluentBoards backend check failed: {e}")
        return False


class BaseAbility(ABC):
    """Base class for a cohesive group of FluentBoards abilities.

    Args:
        registry: Ability registry to register into.
        backend: FluentBoards store; ``None`` or inactive means the group
            stays empty.
    """

    subcategory = ""

    def __init__(self, registry: AbilityRegistry, backend):
        self.registry = registry
        self.backend = backend
        self.registered: list[str] = []
        if not self.is_available():
            return
        self.register_abilities()

    @abstractmethod
    def register_abilities(self) -> None:
        """Register every ability of this group."""

    # ---------------------------------------------------------------------------
    # Guard and identity
    # ---------------------------------------------------------------------------

    def is_available(self) -> bool:
        return backend_available(self.backend)

    def current_user(self) -> CurrentUser:
        return self.backend.current_user()

    # ---------------------------------------------------------------------------
    # Permission predicates
    # ---------------------------------------------------------------------------

    def _user_can(self, action, board_id) -> bool:
        refine = getattr(self.backend, "user_can", None)
        if board_id and callable(refine):
            return bool(refine(action, board_id))
        return False

    def can_manage_boards(self, board_id: int | None = None) -> bool:
        user = self.current_user()
        if not user.logged_in:
            return False
        if any(user.can(cap) for cap in ADMIN_CAPABILITIES):
            return True
        return self._user_can("manage_board", board_id)

    def can_view_boards(self, board_id: int | None = None) -> bool:
        user = self.current_user()
        if not user.logged_in:
            return False
        if self.can_manage_boards(board_id):
            return True
        if user.can(VIEW_CAPABILITY):
            return True
        return self._user_can("view_board", board_id)

    def view_permission(self, args=None) -> bool:
        """Permission callback: view access, refined by ``board_id`` if given."""
        return self.can_view_boards(_positive_int((args or {}).get("board_id")))

    def manage_permission(self, args=None) -> bool:
        """Permission callback: manage access, refined by ``board_id`` if given."""
        return self.can_manage_boards(_positive_int((args or {}).get("board_id")))

    def can_access_board(self, board) -> bool:
        """Board-level check: admin, board owner, or board member."""
        user = self.current_user()
        if not board or not user.id:
            return False
        if user.can("manage_options"):
            return True
        if board.get("created_by") == user.id:
            return True
        return any(member.get("id") == user.id for member in self.backend.board_members(board["id"]))

    # ---------------------------------------------------------------------------
    # Existence checks
    # ---------------------------------------------------------------------------

    def board_exists(self, board_id) -> bool:
        try:
            return bool(self.backend.get_board(board_id))
        except Exception:
            return False

    def task_exists(self, task_id) -> bool:
        try:
            return bool(self.backend.get_task(task_id))
        except Exception:
            return False

    # ---------------------------------------------------------------------------
    # Result envelope
    # ---------------------------------------------------------------------------

    @staticmethod
    def get_error_response(message: str, code: str = "error") -> dict:
        return {"success": False, "error": {"code": code, "message": message}}

    @staticmethod
    def get_success_response(data=None, message: str = "Success") -> dict:
        return {"success": True, "message": message, "data": data if data is not None else {}}

    # ---------------------------------------------------------------------------
    # Registration
    # ---------------------------------------------------------------------------

    def guarded(self, fn, code, action):
        """Wrap an execute method so exceptions become ``code`` error responses."""

        @wraps(fn)
        def wrapper(args=None):
            try:
                return fn(dict(args or {}))
            except Exception as e:
                return self.get_error_response(f"Failed to {action}: {e}", code)

        return wrapper

    def register(
        self,
        action,
        execute,
        *,
        label,
        description,
        input_schema=None,
        permission=None,
        error_code="error",
        failure=None,
        meta=None,
    ):
        """Register ``fluentboards/<action>`` with a guarded execute callback.

        ``failure`` phrases the error message (``"Failed to <failure>: ..."``);
        it defaults to the action with dashes turned into spaces.
        """
        name = NAME_PREFIX + action
        ability_meta = {"category": CATEGORY, "subcategory": self.subcategory}
        ability_meta.update(meta or {})
        ability = self.registry.register(
            name,
            label=label,
            description=description,
            input_schema=input_schema or object_schema(),
            permission_callback=permission or self.view_permission,
            execute_callback=self.guarded(execute, error_code, failure or action.replace("-", " ")),
            meta=ability_meta,
        )
        if ability is not None:
            self.registered.append(name)
        return ability

    # ---------------------------------------------------------------------------
    # Shared lookups returning (entity, error_response)
    # ---------------------------------------------------------------------------

    def _accessible_board(self, board_id, *, missing_code="board_not_found"):
        """Fetch a board the current user can access, or an error response."""
        board = self.backend.get_board(board_id)
        if not board:
            return None, self.get_error_response("Board not found", missing_code)
        if not self.can_access_board(board):
            return None, self.get_error_response("Access denied to board", "access_denied")
        return board, None

    def _task_in_board(self, task_id, board_id):
        """Fetch a task and check it belongs to ``board_id``."""
        task = self.backend.get_task(task_id)
        if not task:
            return None, self.get_error_response("Task not found", "task_not_found")
        if task.get("board_id") != board_id:
            return None, self.get_error_response(
                "Task not found in specified board", "task_not_found"
            )
        return task, None
