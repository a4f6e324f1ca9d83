"""Tests for BaseAbility: availability guard, permissions, envelopes, guarding."""

from unittest.mock import MagicMock

import pytest
from conftest import ADMIN_ID, MEMBER_ID, OUTSIDER_ID

from mcp_adapters.abilities import AbilityRegistry
from mcp_adapters.fluentboards import _base
from mcp_adapters.fluentboards._base import BaseAbility, backend_available, object_schema
from mcp_adapters.fluentboards.adapter import ABILITY_GROUPS
from mcp_adapters.fluentboards.backend import CurrentUser
from mcp_adapters.fluentboards.prompts import Prompts


class _Probe(BaseAbility):
    subcategory = "probe"

    def register_abilities(self):
        self.register("probe-ok", lambda args: self.get_success_response({"args": args}),
                      label="OK", description="Always works")
        self.register("probe-boom", self._boom, label="Boom", description="Always raises",
                      error_code="boom_failed", failure="explode")

    def _boom(self, args):
        raise RuntimeError("wires crossed")


# ---------------------------------------------------------------------------
# Availability guard
# ---------------------------------------------------------------------------


class TestAvailability:
    def test_no_backend_registers_nothing(self):
        registry = AbilityRegistry()
        probe = _Probe(registry, None)
        assert probe.registered == []
        assert len(registry) == 0

    def test_inactive_backend_registers_nothing(self, backend):
        backend.active = False
        registry = AbilityRegistry()
        for group in (*ABILITY_GROUPS, Prompts):
            group(registry, backend)
        assert len(registry) == 0

    def test_is_active_raising_is_unavailable(self, capsys):
        broken = MagicMock()
        broken.is_active.side_effect = RuntimeError("db offline")
        assert backend_available(broken) is False
        assert "db offline" in capsys.readouterr().err

    def test_active_backend_registers(self, backend):
        registry = AbilityRegistry()
        probe = _Probe(registry, backend)
        assert probe.registered == ["fluentboards/probe-ok", "fluentboards/probe-boom"]


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegister:
    def test_meta_and_defaults(self, backend):
        registry = AbilityRegistry()
        _Probe(registry, backend)
        ability = registry.get("fluentboards/probe-ok")
        assert ability.meta == {"category": "fluentboards", "subcategory": "probe"}
        assert ability.category == "fluentboards"
        assert ability.input_schema == {"type": "object", "properties": {}}
        assert ability.label == "OK"

    def test_exception_becomes_error_envelope(self, backend):
        registry = AbilityRegistry()
        _Probe(registry, backend)
        result = registry.execute("fluentboards/probe-boom", {})
        assert result == {
            "success": False,
            "error": {"code": "boom_failed", "message": "Failed to explode: wires crossed"},
        }

    def test_second_group_instance_refused(self, backend, capsys):
        registry = AbilityRegistry()
        _Probe(registry, backend)
        again = _Probe(registry, backend)
        assert again.registered == []
        assert "already registered" in capsys.readouterr().err

    def test_every_group_raising_backend_yields_envelope(self, backend, board):
        """Every registered callback turns a backend exception into an envelope."""

        class Exploding:
            def __getattr__(self, name):
                if name in ("is_active", "current_user", "user_can"):
                    return getattr(backend, name)
                return MagicMock(side_effect=RuntimeError("store exploded"))

        registry = AbilityRegistry()
        for group in ABILITY_GROUPS:
            group(registry, Exploding())
        assert len(registry) > 0
        args = {"board_id": board["id"], "task_id": 1, "user_id": MEMBER_ID, "confirm_delete": True}
        exploded = 0
        for ability in registry.all():
            result = ability.execute(args)
            assert isinstance(result, dict), ability.name
            if result["success"] is False:
                assert result["error"]["code"], ability.name
                assert result["error"]["message"], ability.name
                exploded += "store exploded" in result["error"]["message"]
        assert exploded > 0


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


class TestPermissions:
    def test_logged_out_denied(self, backend):
        backend.act_as(0)
        probe = _Probe(AbilityRegistry(), backend)
        assert probe.can_view_boards() is False
        assert probe.can_manage_boards() is False

    @pytest.mark.parametrize("cap", ["manage_options", "fluent_boards_admin"])
    def test_admin_capabilities_manage(self, backend, cap):
        backend.act_as(OUTSIDER_ID, cap)
        probe = _Probe(AbilityRegistry(), backend)
        assert probe.can_manage_boards() is True
        assert probe.can_view_boards() is True

    def test_view_capability_views_only(self, backend):
        backend.act_as(OUTSIDER_ID, "fluent_boards_view")
        probe = _Probe(AbilityRegistry(), backend)
        assert probe.can_view_boards() is True
        assert probe.can_manage_boards() is False

    def test_board_refinement(self, backend, board):
        backend.add_board_member(board["id"], OUTSIDER_ID, "viewer")
        backend.act_as(OUTSIDER_ID)
        probe = _Probe(AbilityRegistry(), backend)
        assert probe.can_view_boards(board["id"]) is True
        assert probe.can_manage_boards(board["id"]) is False
        assert probe.can_view_boards() is False
        backend.act_as(MEMBER_ID)
        assert probe.can_manage_boards(board["id"]) is True

    def test_permission_callbacks_read_board_id(self, backend, board):
        backend.act_as(MEMBER_ID)
        probe = _Probe(AbilityRegistry(), backend)
        assert probe.manage_permission({"board_id": board["id"]}) is True
        assert probe.manage_permission({"board_id": "junk"}) is False
        assert probe.view_permission({}) is False

    def test_can_access_board(self, backend, board):
        probe = _Probe(AbilityRegistry(), backend)
        assert probe.can_access_board(board) is True
        backend.act_as(MEMBER_ID)
        assert probe.can_access_board(board) is True
        backend.act_as(OUTSIDER_ID)
        assert probe.can_access_board(board) is False
        assert probe.can_access_board(None) is False

    def test_current_user(self, backend):
        probe = _Probe(AbilityRegistry(), backend)
        assert probe.current_user() == CurrentUser(
            id=ADMIN_ID, logged_in=True, capabilities=frozenset({"manage_options"})
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_envelopes(self):
        assert BaseAbility.get_error_response("nope", "bad") == {
            "success": False,
            "error": {"code": "bad", "message": "nope"},
        }
        assert BaseAbility.get_success_response() == {
            "success": True,
            "message": "Success",
            "data": {},
        }
        assert BaseAbility.get_success_response([1], "Done")["data"] == [1]

    def test_exists_checks_swallow_errors(self, backend, board):
        probe = _Probe(AbilityRegistry(), backend)
        assert probe.board_exists(board["id"]) is True
        assert probe.board_exists(999) is False
        assert probe.task_exists(999) is False
        probe.backend = MagicMock()
        probe.backend.get_board.side_effect = RuntimeError("down")
        assert probe.board_exists(board["id"]) is False

    def test_accessible_board_codes(self, backend, board):
        probe = _Probe(AbilityRegistry(), backend)
        assert probe._accessible_board(999)[1]["error"]["code"] == "board_not_found"
        backend.act_as(OUTSIDER_ID)
        assert probe._accessible_board(board["id"])[1]["error"]["code"] == "access_denied"

    def test_object_schema(self):
        assert object_schema({"a": {"type": "string"}}, required=["a"]) == {
            "type": "object",
            "properties": {"a": {"type": "string"}},
            "required": ["a"],
        }

    def test_now_format(self):
        stamp = _base.now()
        assert len(stamp) == 19
        assert stamp[4] == "-" and stamp[10] == " "
