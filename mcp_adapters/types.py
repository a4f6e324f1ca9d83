"""Typed response definitions for abilities, bridges and servers.

These TypedDicts document the shape of dicts passed around the package.
They are optional; runtime behavior is unchanged (plain dicts).
"""

from __future__ import annotations

from typing import Any, TypedDict

# ---------------------------------------------------------------------------
# Result envelope
# ---------------------------------------------------------------------------


class ErrorDetail(TypedDict):
    code: str
    message: str


class SuccessResponse(TypedDict):
    """Returned by every native ability on success."""

    success: bool
    message: str
    data: Any


class ErrorResponse(TypedDict):
    """Returned by every native ability (and remote errors) on failure."""

    success: bool
    error: ErrorDetail


class PromptResponse(TypedDict):
    success: bool
    prompt: str
    parameters: dict[str, Any]


# ---------------------------------------------------------------------------
# Bridge types
# ---------------------------------------------------------------------------


class AuthSpec(TypedDict, total=False):
    """Bridge auth config; ``type`` is bearer, api_key or basic."""

    type: str
    token: str
    key: str
    username: str
    password: str


class ClientConfig(TypedDict, total=False):
    timeout: float
    auth: AuthSpec


class ClientStatus(TypedDict):
    """One entry of McpClientManager.get_client_status()."""

    id: str
    url: str
    connected: bool
    capabilities: dict[str, Any]
    tools: int
    resources: int
    prompts: int


# ---------------------------------------------------------------------------
# Server types
# ---------------------------------------------------------------------------


class ToolListing(TypedDict):
    name: str
    description: str
    inputSchema: dict[str, Any]


class ServerSummary(TypedDict):
    id: str
    name: str
    path: str
    version: str
    transports: list[str]
    tools: int
    resources: int
    prompts: int
