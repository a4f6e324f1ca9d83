"""
Ability registry: named, schema-described, permission-gated callables.

An ``Ability`` carries an ``AbilityKind`` that says how to run it. Native
abilities hold a local function; bridged abilities hold a reference to the
owning McpClient plus the remote item they forward to. The kind is resolved
at call time, so nothing is captured from a registration loop.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from mcp_adapters._utils import _log_warning
from mcp_adapters.exceptions import AbilityNotFoundError, AbilityPermissionError

# ---------------------------------------------------------------------------
# Ability kinds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NativeCall:
    """Run a local function with the call arguments."""

    fn: Callable[[dict], Any]


@dataclass(frozen=True)
class RemoteToolCall:
    """Forward to ``client.call_tool(tool_name, args)``."""

    client: Any
    tool_name: str


@dataclass(frozen=True)
class RemoteResourceCall:
    """Forward to ``client.read_resource(uri)``. Call arguments are ignored."""

    client: Any
    uri: str


@dataclass(frozen=True)
class RemotePromptCall:
    """Forward to ``client.get_prompt(prompt_name, args)``."""

    client: Any
    prompt_name: str


AbilityKind = NativeCall | RemoteToolCall | RemoteResourceCall | RemotePromptCall


def invoke(kind: AbilityKind, args: dict) -> Any:
    """Dispatch an ability kind with the given arguments."""
    if isinstance(kind, NativeCall):
        return kind.fn(args)
    if isinstance(kind, RemoteToolCall):
        return kind.client.call_tool(kind.tool_name, args)
    if isinstance(kind, RemoteResourceCall):
        return kind.client.read_resource(kind.uri)
    if isinstance(kind, RemotePromptCall):
        return kind.client.get_prompt(kind.prompt_name, args)
    raise TypeError(f"Unsupported ability kind: {type(kind).__name__}")


def _allow(args=None) -> bool:
    return True


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Ability:
    """A registered ability. Immutable once created."""

    name: str
    kind: AbilityKind
    label: str = ""
    description: str = ""
    input_schema: dict = field(default_factory=dict)
    permission_callback: Callable[..., bool] = _allow
    meta: dict = field(default_factory=dict)

    @property
    def category(self) -> str:
        return str(self.meta.get("category", ""))

    def has_permission(self, args: dict | None = None) -> bool:
        return bool(self.permission_callback(args or {}))

    def execute(self, args: dict | None = None) -> Any:
        """Check permission, then run. Raises AbilityPermissionError if denied."""
        args = dict(args or {})
        if not self.has_permission(args):
            raise AbilityPermissionError(self.name)
        return invoke(self.kind, args)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class AbilityRegistry:
    """In-process directory of abilities keyed by name.

    Registration is append-only: the first ability registered under a name
    wins and later attempts are refused with a warning.
    """

    def __init__(self):
        self._abilities: dict[str, Ability] = {}

    def register(
        self,
        name: str,
        *,
        label: str = "",
        description: str = "",
        input_schema: dict | None = None,
        permission_callback: Callable[..., bool] | None = None,
        execute_callback: Callable[[dict], Any] | None = None,
        kind: AbilityKind | None = None,
        meta: dict | None = None,
    ) -> Ability | None:
        """Register an ability. Returns the Ability, or None if refused."""
        if not name:
            _log_warning("Refusing to register an ability with an empty name.")
            return None
        if name in self._abilities:
            _log_warning(f"Ability '{name}' is already registered.")
            return None
        if kind is None:
            if execute_callback is None:
                _log_warning(f"Ability '{name}' has no execute callback.")
                return None
            kind = NativeCall(execute_callback)
        ability = Ability(
            name=name,
            kind=kind,
            label=label or name,
            description=description or "",
            input_schema=dict(input_schema or {}),
            permission_callback=permission_callback or _allow,
            meta=dict(meta or {}),
        )
        self._abilities[name] = ability
        return ability

    def get(self, name: str) -> Ability | None:
        return self._abilities.get(name)

    def has(self, name: str) -> bool:
        return name in self._abilities

    def names(self) -> list[str]:
        return list(self._abilities)

    def all(self) -> list[Ability]:
        return list(self._abilities.values())

    def execute(self, name: str, args: dict | None = None) -> Any:
        """Look up ``name`` and execute it with ``args``."""
        ability = self._abilities.get(name)
        if ability is None:
            raise AbilityNotFoundError(name)
        return ability.execute(args)

    def __contains__(self, name) -> bool:
        return name in self._abilities

    def __len__(self) -> int:
        return len(self._abilities)
