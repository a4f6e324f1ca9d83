"""Tests for McpAdapter, McpServer dispatch and the all-abilities server."""

from pathlib import Path

import pytest
from conftest import FakeMcpServer

from mcp_adapters import config
from mcp_adapters.abilities import AbilityRegistry
from mcp_adapters.exceptions import AdapterError
from mcp_adapters.manager import McpClientManager
from mcp_adapters.server import (
    HTTP_TRANSPORT,
    STDIO_TRANSPORT,
    AllAbilitiesServer,
    ErrorLogErrorHandler,
    McpAdapter,
    NullObservabilityHandler,
    tool_name,
)
from mcp_adapters.server._handlers import resolve_handler
from mcp_adapters.transport import RemoteError


class RecordingObservability:
    def __init__(self):
        self.events = []
        self.timings = []

    def record_event(self, event, **tags):
        self.events.append((event, tags))

    def record_timing(self, metric, duration_ms, **tags):
        self.timings.append((metric, duration_ms, tags))


class RecordingErrors:
    def __init__(self):
        self.lines = []

    def log(self, message, context=None, error_type="error"):
        self.lines.append((message, context))


@pytest.fixture
def populated(registry):
    registry.register(
        "demo/echo",
        label="Echo",
        description="Echo arguments back",
        input_schema={"type": "object", "properties": {"text": {"type": "string"}}},
        execute_callback=lambda args: {"success": True, "data": args},
    )
    registry.register("demo/boom", execute_callback=lambda args: 1 / 0)
    registry.register(
        "demo/locked", execute_callback=lambda args: "never", permission_callback=lambda args: False
    )
    registry.register("demo/remote-fail", execute_callback=lambda args: RemoteError("upstream down"))
    registry.register(
        "demo/greet",
        label="Greeting",
        description="Say hello",
        input_schema={
            "type": "object",
            "properties": {"who": {"type": "string", "description": "Name"}},
            "required": ["who"],
        },
        execute_callback=lambda args: {"success": True, "prompt": f"Hello {args.get('who')}"},
    )
    registry.register("demo/raw", execute_callback=lambda args: "plain text")
    registry.register(
        "demo/messages",
        execute_callback=lambda args: {"messages": [{"role": "assistant", "content": "hi"}]},
    )
    registry.register("demo/status", label="Status", execute_callback=lambda args: {"ok": True})
    return registry


def _server(adapter, **overrides):
    options = dict(
        server_id="demo",
        route_namespace="demo-ns",
        route="mcp",
        name="Demo",
        description="Demo server",
        version="1.2.3",
        transports=[STDIO_TRANSPORT],
        ability_names=["demo/echo", "demo/boom", "demo/locked", "demo/remote-fail"],
        prompts=["demo/greet", "demo/raw", "demo/messages"],
        resources=["demo/status"],
    )
    options.update(overrides)
    return adapter.create_server(**options)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


class TestHandlers:
    def test_error_handler_line(self, capsys):
        ErrorLogErrorHandler().log("went wrong", {"server_id": "x", "a": 1}, error_type="tool")
        assert capsys.readouterr().err.strip() == "[ERROR] [tool] went wrong a=1, server_id=x"

    def test_null_observability(self):
        handler = NullObservabilityHandler()
        assert handler.record_event("e", a=1) is None
        assert handler.record_timing("t", 1.0) is None

    def test_resolve_handler(self):
        assert isinstance(resolve_handler(None, NullObservabilityHandler), NullObservabilityHandler)
        assert isinstance(resolve_handler(ErrorLogErrorHandler, None), ErrorLogErrorHandler)
        instance = RecordingErrors()
        assert resolve_handler(instance, ErrorLogErrorHandler) is instance


# ---------------------------------------------------------------------------
# McpAdapter
# ---------------------------------------------------------------------------


class TestMcpAdapter:
    def test_create_and_lookup(self, populated):
        adapter = McpAdapter(populated)
        server = _server(adapter)
        assert adapter.get_server("demo") is server
        assert server.path == "/demo-ns/mcp"
        assert server.summary() == {
            "id": "demo",
            "name": "Demo",
            "path": "/demo-ns/mcp",
            "version": "1.2.3",
            "transports": [STDIO_TRANSPORT],
            "tools": 4,
            "resources": 1,
            "prompts": 3,
        }

    def test_duplicate_id_refused(self, populated, capsys):
        adapter = McpAdapter(populated)
        first = _server(adapter)
        assert _server(adapter, name="Other") is None
        assert adapter.get_server("demo") is first
        assert "already exists" in capsys.readouterr().err

    @pytest.mark.parametrize("transports", [[], ["websocket"], [STDIO_TRANSPORT, "sse"]])
    def test_invalid_transports_refused(self, populated, transports, capsys):
        adapter = McpAdapter(populated)
        assert _server(adapter, transports=transports) is None
        assert "invalid transports" in capsys.readouterr().err

    def test_empty_id_refused(self, populated):
        assert _server(McpAdapter(populated), server_id="") is None

    def test_unregistered_names_dropped_and_reported(self, populated):
        errors = RecordingErrors()
        server = _server(
            McpAdapter(populated),
            ability_names=["demo/echo", "demo/ghost", "demo/echo"],
            error_handler=errors,
        )
        assert server.manifest.ability_names == ("demo/echo",)
        assert errors.lines == [
            ("Ability 'demo/ghost' is not registered; leaving it out.", {"server_id": "demo"})
        ]

    def test_get_servers_is_a_copy(self, populated):
        adapter = McpAdapter(populated)
        _server(adapter)
        adapter.get_servers().clear()
        assert "demo" in adapter.get_servers()

    def test_init_fires_once_and_survives_errors(self, populated, capsys):
        adapter = McpAdapter(populated)
        calls = []

        @adapter.on_init
        def broken(a):
            raise RuntimeError("bad assembler")

        adapter.on_init(lambda a: calls.append(a))
        adapter.init()
        adapter.init()
        assert calls == [adapter]
        assert adapter.initialized is True
        assert "bad assembler" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# McpServer dispatch
# ---------------------------------------------------------------------------


class TestTools:
    def test_tool_names_replace_slashes(self):
        assert tool_name("mcp_docs/search") == "mcp_docs-search"

    def test_list_tools(self, populated):
        server = _server(McpAdapter(populated))
        tools = {t["name"]: t for t in server.list_tools()}
        assert set(tools) == {"demo-echo", "demo-boom", "demo-locked", "demo-remote-fail"}
        assert tools["demo-echo"]["description"] == "Echo arguments back"
        assert tools["demo-boom"]["inputSchema"] == {"type": "object", "properties": {}}

    def test_call_tool(self, populated):
        server = _server(McpAdapter(populated))
        assert server.call_tool("demo-echo", {"text": "hi"}) == {"success": True, "data": {"text": "hi"}}

    def test_unknown_tool(self, populated):
        result = _server(McpAdapter(populated)).call_tool("nope")
        assert result["error"]["code"] == "tool_not_found"

    def test_permission_denied(self, populated):
        result = _server(McpAdapter(populated)).call_tool("demo-locked")
        assert result["error"]["code"] == "permission_denied"

    def test_remote_error_becomes_envelope(self, populated):
        result = _server(McpAdapter(populated)).call_tool("demo-remote-fail")
        assert result == {
            "success": False,
            "error": {"code": config.REMOTE_ERROR_CODE, "message": "upstream down"},
        }

    def test_exception_logged_and_enveloped(self, populated):
        errors = RecordingErrors()
        server = _server(McpAdapter(populated), error_handler=errors)
        result = server.call_tool("demo-boom")
        assert result["error"]["code"] == "execution_failed"
        assert "division by zero" in result["error"]["message"]
        assert errors.lines[0][1] == {"server_id": "demo"}

    def test_observability_events(self, populated):
        obs = RecordingObservability()
        server = _server(McpAdapter(populated), observability_handler=obs)
        server.call_tool("demo-echo")
        server.call_tool("demo-locked")
        server.call_tool("missing")
        assert [(e, t["status"]) for e, t in obs.events] == [
            ("mcp.tool.call", "success"),
            ("mcp.tool.call", "permission_denied"),
            ("mcp.tool.call", "not_found"),
        ]
        assert obs.timings[0][0] == "mcp.tool.duration"
        assert obs.timings[0][2] == {"server_id": "demo", "tool": "demo/echo"}

    def test_clashing_tool_names_reported(self, registry):
        registry.register("mcp_a/b-c", execute_callback=lambda args: "first")
        registry.register("mcp_a-b/c", execute_callback=lambda args: "second")
        errors = RecordingErrors()
        server = _server(
            McpAdapter(registry),
            ability_names=["mcp_a/b-c", "mcp_a-b/c"],
            prompts=[],
            resources=[],
            error_handler=errors,
        )
        assert [t["name"] for t in server.list_tools()] == ["mcp_a-b-c"]
        assert server.call_tool("mcp_a-b-c") == "first"
        assert server.summary()["tools"] == 1
        assert errors.lines == [
            (
                "Tool name 'mcp_a-b-c' of 'mcp_a-b/c' clashes with 'mcp_a/b-c'; leaving it out.",
                {"server_id": "demo"},
            )
        ]

    def test_ability_removed_after_assembly(self, populated):
        server = _server(McpAdapter(populated))
        populated._abilities.pop("demo/echo")
        assert "demo-echo" not in {t["name"] for t in server.list_tools()}
        assert server.call_tool("demo-echo")["error"]["code"] == "ability_not_found"


class TestPrompts:
    def test_list_prompts_arguments(self, populated):
        prompts = {p["name"]: p for p in _server(McpAdapter(populated)).list_prompts()}
        assert prompts["demo-greet"]["arguments"] == [
            {"name": "who", "description": "Name", "required": True}
        ]
        assert prompts["demo-greet"]["description"] == "Say hello"

    def test_get_prompt_wraps_text(self, populated):
        result = _server(McpAdapter(populated)).get_prompt("demo-greet", {"who": "Ada"})
        assert result == {
            "description": "Say hello",
            "messages": [{"role": "user", "content": {"type": "text", "text": "Hello Ada"}}],
        }

    def test_get_prompt_non_dict(self, populated):
        result = _server(McpAdapter(populated)).get_prompt("demo-raw")
        assert result["messages"][0]["content"]["text"] == "plain text"

    def test_get_prompt_passes_messages_through(self, populated):
        result = _server(McpAdapter(populated)).get_prompt("demo-messages")
        assert result == {"messages": [{"role": "assistant", "content": "hi"}]}

    def test_unknown_prompt(self, populated):
        result = _server(McpAdapter(populated)).get_prompt("demo-echo")
        assert result["error"]["code"] == "prompt_not_found"


class TestResources:
    def test_list_and_read(self, populated):
        server = _server(McpAdapter(populated))
        assert server.list_resources() == [
            {
                "uri": "ability://demo/status",
                "name": "Status",
                "description": "",
                "mimeType": "application/json",
            }
        ]
        assert server.read_resource("ability://demo/status") == {"ok": True}

    @pytest.mark.parametrize("uri", ["ability://demo/echo", "demo/status", "file:///x"])
    def test_unknown_resource(self, populated, uri):
        result = _server(McpAdapter(populated)).read_resource(uri)
        assert result["error"]["code"] == "resource_not_found"


class TestTransportWiring:
    def test_run_rejects_unlisted_transport(self, populated):
        server = _server(McpAdapter(populated))
        with pytest.raises(AdapterError, match="does not support transport"):
            server.run(HTTP_TRANSPORT)

    def test_lowlevel_server_decorators_available(self):
        server_module = pytest.importorskip("mcp.server")
        for decorator in (
            "list_tools",
            "call_tool",
            "list_prompts",
            "get_prompt",
            "list_resources",
            "read_resource",
        ):
            assert callable(getattr(server_module.Server, decorator, None))

    def test_mcp_pinned_below_2(self):
        tomllib = pytest.importorskip("tomllib")
        with open(Path(__file__).resolve().parents[1] / "pyproject.toml", "rb") as f:
            dependencies = tomllib.load(f)["project"]["dependencies"]
        assert "mcp>=1.8,<2" in dependencies

    def test_build_registers_handlers(self, populated):
        types = pytest.importorskip("mcp.types")
        built = _server(McpAdapter(populated)).build()
        assert built.name == "Demo"
        for request in (
            types.ListToolsRequest,
            types.CallToolRequest,
            types.ListPromptsRequest,
            types.GetPromptRequest,
            types.ListResourcesRequest,
            types.ReadResourceRequest,
        ):
            assert request in built.request_handlers

    def test_http_app_routes_manifest_path(self, populated):
        pytest.importorskip("starlette")
        app = _server(McpAdapter(populated), transports=[HTTP_TRANSPORT]).http_app()
        assert [route.path for route in app.routes] == ["/demo-ns/mcp"]

    def test_run_http_uses_uvicorn(self, populated, monkeypatch):
        pytest.importorskip("mcp")
        pytest.importorskip("starlette")
        uvicorn = pytest.importorskip("uvicorn")
        calls = []
        monkeypatch.setattr(uvicorn, "run", lambda app, **kw: calls.append(kw))
        server = _server(McpAdapter(populated), transports=[HTTP_TRANSPORT])
        server.run(HTTP_TRANSPORT, port=9001)
        assert calls == [{"host": config.MCP_HTTP_HOST, "port": 9001, "log_level": "warning"}]


# ---------------------------------------------------------------------------
# AllAbilitiesServer
# ---------------------------------------------------------------------------


class TestAllAbilitiesServer:
    def _bridged_registry(self):
        registry = AbilityRegistry()
        fake = FakeMcpServer(
            tools=[{"name": "search", "inputSchema": {"type": "object"}}],
            resources=[{"uri": "docs://readme", "description": "Readme"}],
            prompts=[{"name": "summarize", "arguments": [{"name": "topic"}]}],
        )
        McpClientManager(registry, post=fake).create_client("docs", "https://docs.test/mcp")
        return registry

    def test_bridged_only(self):
        registry = self._bridged_registry()
        server = AllAbilitiesServer(registry)
        assert server.get_all_abilities() == ["mcp_docs/search"]
        assert server.get_all_resources() == ["mcp_docs/resource/docs://readme"]
        assert server.get_all_prompts() == ["mcp_docs/prompt/summarize"]

    def test_registers_server(self):
        registry = self._bridged_registry()
        adapter = McpAdapter(registry)
        server = AllAbilitiesServer(registry).register_with_adapter(adapter)
        assert server.path == "/mcp-all/abilities"
        assert server.manifest.name == "All Abilities"
        assert server.manifest.version == config.VERSION
        assert set(server.manifest.transports) == {HTTP_TRANSPORT, STDIO_TRANSPORT}
        assert [t["name"] for t in server.list_tools()] == ["mcp_docs-search"]

    def test_providers_extend_list(self, registry):
        registry.register("extra/thing", execute_callback=lambda args: None)
        server = AllAbilitiesServer(registry, providers=[lambda names: names + ["extra/thing"]])
        assert server.get_all_abilities() == ["extra/thing"]

    def test_includes_registered_fluentboards(self, registry, backend):
        from mcp_adapters.fluentboards import FluentBoardsAdapter

        fluentboards = FluentBoardsAdapter(registry, backend)
        fluentboards.register_abilities()
        fluentboards.register_prompts()
        server = AllAbilitiesServer(registry)
        names = server.get_all_abilities()
        assert names[0] == "fluentboards/create-board"
        assert "fluentboards/get-board-activities" in names
        assert server.get_all_prompts() == [
            "fluentboards/project-overview",
            "fluentboards/analyze-workflow",
            "fluentboards/status-checkin",
            "fluentboards/team-productivity",
        ]
