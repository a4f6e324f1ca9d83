"""Tests for the ability registry, descriptors and kind dispatch."""

from unittest.mock import MagicMock

import pytest

from mcp_adapters.abilities import (
    Ability,
    AbilityRegistry,
    NativeCall,
    RemotePromptCall,
    RemoteResourceCall,
    RemoteToolCall,
    invoke,
)
from mcp_adapters.exceptions import AbilityNotFoundError, AbilityPermissionError

# ---------------------------------------------------------------------------
# Kind dispatch
# ---------------------------------------------------------------------------


class TestInvoke:
    def test_native_call_gets_args(self):
        fn = MagicMock(return_value={"success": True})
        assert invoke(NativeCall(fn), {"a": 1}) == {"success": True}
        fn.assert_called_once_with({"a": 1})

    def test_remote_tool_forwards_name_and_args(self):
        client = MagicMock()
        invoke(RemoteToolCall(client, "ping"), {"x": 1})
        client.call_tool.assert_called_once_with("ping", {"x": 1})

    def test_remote_resource_ignores_args(self):
        client = MagicMock()
        invoke(RemoteResourceCall(client, "file:///a.txt"), {"uri": "file:///other"})
        client.read_resource.assert_called_once_with("file:///a.txt")

    def test_remote_prompt_forwards_name_and_args(self):
        client = MagicMock()
        invoke(RemotePromptCall(client, "greet"), {"who": "you"})
        client.get_prompt.assert_called_once_with("greet", {"who": "you"})

    def test_unknown_kind_raises(self):
        with pytest.raises(TypeError):
            invoke(object(), {})

    def test_kinds_bound_per_instance_in_loop(self):
        """Each kind keeps its own target; nothing is captured from the loop."""
        client = MagicMock()
        kinds = [RemoteToolCall(client, name) for name in ("a", "b", "c")]
        for kind in kinds:
            invoke(kind, {})
        called = [c.args[0] for c in client.call_tool.call_args_list]
        assert called == ["a", "b", "c"]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegister:
    def test_register_with_execute_callback(self):
        registry = AbilityRegistry()
        ability = registry.register("demo/echo", execute_callback=lambda args: args)
        assert isinstance(ability, Ability)
        assert isinstance(ability.kind, NativeCall)
        assert registry.has("demo/echo")
        assert "demo/echo" in registry
        assert len(registry) == 1

    def test_defaults(self):
        registry = AbilityRegistry()
        ability = registry.register("demo/echo", execute_callback=lambda args: args)
        assert ability.label == "demo/echo"
        assert ability.description == ""
        assert ability.input_schema == {}
        assert ability.has_permission() is True
        assert ability.meta == {}

    def test_register_with_explicit_kind(self):
        registry = AbilityRegistry()
        kind = RemoteToolCall(MagicMock(), "ping")
        ability = registry.register("mcp_svc/ping", kind=kind)
        assert ability.kind is kind

    def test_empty_name_refused(self, capsys):
        registry = AbilityRegistry()
        assert registry.register("", execute_callback=lambda a: a) is None
        assert "[WARN]" in capsys.readouterr().err
        assert len(registry) == 0

    def test_missing_executor_refused(self, capsys):
        registry = AbilityRegistry()
        assert registry.register("demo/none") is None
        assert "no execute callback" in capsys.readouterr().err

    def test_duplicate_first_wins(self, capsys):
        registry = AbilityRegistry()
        first = registry.register("demo/x", execute_callback=lambda a: "first")
        assert registry.register("demo/x", execute_callback=lambda a: "second") is None
        assert registry.get("demo/x") is first
        assert registry.execute("demo/x") == "first"
        assert "already registered" in capsys.readouterr().err

    def test_names_and_all_keep_registration_order(self):
        registry = AbilityRegistry()
        for name in ("b/1", "a/2", "c/3"):
            registry.register(name, execute_callback=lambda a: None)
        assert registry.names() == ["b/1", "a/2", "c/3"]
        assert [a.name for a in registry.all()] == ["b/1", "a/2", "c/3"]

    def test_input_schema_copied(self):
        registry = AbilityRegistry()
        schema = {"type": "object"}
        ability = registry.register("demo/s", execute_callback=lambda a: a, input_schema=schema)
        schema["type"] = "changed"
        assert ability.input_schema == {"type": "object"}

    def test_get_missing_returns_none(self):
        assert AbilityRegistry().get("nope") is None


class TestExecute:
    def test_execute_unknown_raises(self):
        with pytest.raises(AbilityNotFoundError):
            AbilityRegistry().execute("missing/ability")

    def test_permission_denied_raises(self):
        registry = AbilityRegistry()
        fn = MagicMock()
        registry.register("demo/locked", execute_callback=fn, permission_callback=lambda a: False)
        with pytest.raises(AbilityPermissionError):
            registry.execute("demo/locked", {})
        fn.assert_not_called()

    def test_permission_callback_sees_args(self):
        registry = AbilityRegistry()
        seen = []
        registry.register(
            "demo/p",
            execute_callback=lambda a: "ran",
            permission_callback=lambda a: seen.append(a) or a.get("ok", False),
        )
        assert registry.execute("demo/p", {"ok": True}) == "ran"
        assert seen == [{"ok": True}]

    def test_execute_passes_copy_of_args(self):
        registry = AbilityRegistry()
        registry.register("demo/mut", execute_callback=lambda a: a.update(x=1) or a)
        args = {}
        registry.execute("demo/mut", args)
        assert args == {}

    def test_category_from_meta(self):
        registry = AbilityRegistry()
        ability = registry.register(
            "demo/c", execute_callback=lambda a: a, meta={"category": "demo"}
        )
        assert ability.category == "demo"
