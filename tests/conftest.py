"""
Shared test fixtures for mcp-adapters tests.
Patches config so no test reads the real .env, logs HTTP traffic, or
touches the network; remote MCP servers are faked at the ``post`` seam.
"""

import json

import pytest

from mcp_adapters import config
from mcp_adapters.abilities import AbilityRegistry
from mcp_adapters.exceptions import AdapterError, HTTPError
from mcp_adapters.fluentboards.memory import InMemoryBackend


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    """Ensure every test starts with a clean config state."""
    monkeypatch.setattr(config, "env", {})
    monkeypatch.setattr(config, "HTTP_LOG_ENABLED", False)
    monkeypatch.setattr(config, "HTTP_LOG_SAMPLE_RATE", 1.0)
    monkeypatch.setattr(config, "RUNTIME_QUIET", False)
    monkeypatch.setattr(config, "BACKEND", "")
    monkeypatch.setattr(config, "CLIENTS_FILE", "")


# ---------------------------------------------------------------------------
# Fake remote MCP server
# ---------------------------------------------------------------------------


class FakeMcpServer:
    """Callable standing in for ``transport._http_post``.

    ``results`` maps a JSON-RPC method to its ``result`` (or a callable of
    the request params); ``errors`` maps a method to a JSON-RPC error
    object; ``raises`` maps a method to an exception to raise.
    """

    def __init__(self, *, tools=(), resources=(), prompts=(), capabilities=None):
        self.tools = list(tools)
        self.resources = list(resources)
        self.prompts = list(prompts)
        self.results = {
            "initialize": {
                "capabilities": capabilities if capabilities is not None else {"tools": {}},
                "sessionId": "sess-1",
            },
            "tools/list": lambda params: {"tools": self.tools},
            "resources/list": lambda params: {"resources": self.resources},
            "prompts/list": lambda params: {"prompts": self.prompts},
        }
        self.errors = {}
        self.raises = {}
        self.requests = []

    def __call__(self, url, body, headers, timeout):
        request = json.loads(body)
        self.requests.append({"url": url, "headers": headers, "timeout": timeout, **request})
        method = request["method"]
        if method in self.raises:
            raise self.raises[method]
        if method in self.errors:
            payload = {"jsonrpc": "2.0", "id": request["id"], "error": self.errors[method]}
        else:
            result = self.results.get(method, {})
            if callable(result):
                result = result(request["params"])
            payload = {"jsonrpc": "2.0", "id": request["id"], "result": result}
        return json.dumps(payload).encode("utf-8")

    @property
    def methods(self):
        return [r["method"] for r in self.requests]

    def requests_for(self, method):
        return [r for r in self.requests if r["method"] == method]


@pytest.fixture
def fake_server():
    return FakeMcpServer(tools=[{"name": "ping", "description": "", "inputSchema": {}}])


@pytest.fixture
def network_down():
    def post(url, body, headers, timeout):
        raise AdapterError("Connection failed: [Errno 111] Connection refused")

    return post


@pytest.fixture
def http_500():
    def post(url, body, headers, timeout):
        raise HTTPError(500, "Internal Server Error", "oops")

    return post


# ---------------------------------------------------------------------------
# FluentBoards
# ---------------------------------------------------------------------------

ADMIN_ID = 1
MEMBER_ID = 2
OUTSIDER_ID = 3


@pytest.fixture
def registry():
    return AbilityRegistry()


@pytest.fixture
def backend():
    """Store with an admin (acting), a member and an outsider."""
    store = InMemoryBackend(
        users=[
            {"login": "admin", "display_name": "Ada Admin", "email": "ada@example.com"},
            {"login": "member", "display_name": "Max Member", "first_name": "Max"},
            {"login": "outsider", "display_name": "Olu Outsider"},
        ]
    )
    store.act_as(ADMIN_ID, "manage_options")
    return store


@pytest.fixture
def board(backend):
    """A to-do board with three stages and MEMBER_ID as a member."""
    created = backend.create_board({"title": "Roadmap", "type": "to-do", "created_by": ADMIN_ID})
    backend.add_board_member(created["id"], MEMBER_ID, "member")
    for position, title in enumerate(("Open", "Doing", "Done"), start=1):
        backend.create_stage(created["id"], {"title": title, "position": position})
    return backend.get_board(created["id"])


@pytest.fixture
def stages(backend, board):
    return backend.list_stages(board["id"])


def run(registry, action, **args):
    """Execute ``fluentboards/<action>`` and return its envelope."""
    return registry.execute("fluentboards/" + action, args)
