"""Tests for transport.py: JSON-RPC framing, auth headers, errors, HTTP logs."""

import base64
import json
from unittest.mock import MagicMock, patch

import pytest

from mcp_adapters import config
from mcp_adapters.exceptions import AdapterError, HTTPError
from mcp_adapters.transport import (
    JsonRpcTransport,
    RemoteError,
    _http_post,
    _is_sampled_request,
    auth_headers,
    build_request,
    is_remote_error,
    parse_response,
)

# ---------------------------------------------------------------------------
# Request framing
# ---------------------------------------------------------------------------


class TestBuildRequest:
    def test_shape(self):
        req = build_request("tools/list")
        assert req["jsonrpc"] == "2.0"
        assert req["method"] == "tools/list"
        assert req["params"] == {}
        assert 1 <= req["id"] <= 999999

    def test_params_kept(self):
        assert build_request("tools/call", {"name": "x"})["params"] == {"name": "x"}


# ---------------------------------------------------------------------------
# Auth headers
# ---------------------------------------------------------------------------


class TestAuthHeaders:
    def test_bearer(self):
        assert auth_headers({"type": "bearer", "token": "T"}) == {"Authorization": "Bearer T"}

    def test_api_key(self):
        assert auth_headers({"type": "api_key", "key": "K"}) == {"X-API-Key": "K"}

    def test_basic(self):
        expected = base64.b64encode(b"u:p").decode("ascii")
        assert auth_headers({"type": "basic", "username": "u", "password": "p"}) == {
            "Authorization": f"Basic {expected}"
        }

    def test_missing_type_is_bearer(self):
        assert auth_headers({"token": "T"}) == {"Authorization": "Bearer T"}

    def test_unknown_type_adds_nothing(self):
        assert auth_headers({"type": "oauth2", "token": "T"}) == {}

    def test_empty_auth(self):
        assert auth_headers({}) == {}
        assert auth_headers(None) == {}


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


class TestParseResponse:
    def test_result_returned(self):
        assert parse_response(b'{"jsonrpc":"2.0","id":1,"result":{"a":1}}') == {"a": 1}

    def test_missing_result_is_empty(self):
        assert parse_response(b'{"jsonrpc":"2.0","id":1}') == {}

    def test_null_result_is_empty(self):
        assert parse_response(b'{"jsonrpc":"2.0","id":1,"result":null}') == {}

    def test_non_dict_result_returned_as_is(self):
        assert parse_response(b'{"jsonrpc":"2.0","id":1,"result":[1,2]}') == [1, 2]
        assert parse_response(b'{"jsonrpc":"2.0","id":1,"result":"ok"}') == "ok"

    def test_error_member(self):
        err = parse_response(b'{"jsonrpc":"2.0","id":1,"error":{"code":-32601,"message":"nope"}}')
        assert isinstance(err, RemoteError)
        assert err.message == "nope"
        assert err.data == {"code": -32601, "message": "nope"}
        assert err.code == "mcp_client_error"

    def test_error_without_message(self):
        err = parse_response(b'{"error":{"code":1}}')
        assert err.message == "Unknown error"

    def test_invalid_json(self):
        err = parse_response(b"<html>")
        assert is_remote_error(err)
        assert err.message.startswith("Invalid JSON response")

    def test_non_object_body(self):
        err = parse_response(b"[1,2,3]")
        assert is_remote_error(err)
        assert "list" in err.message

    def test_to_response_envelope(self):
        assert RemoteError("boom").to_response() == {
            "success": False,
            "error": {"code": "mcp_client_error", "message": "boom"},
        }


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


def _ok(result):
    def post(url, body, headers, timeout):
        req = json.loads(body)
        return json.dumps({"jsonrpc": "2.0", "id": req["id"], "result": result}).encode()

    return post


class TestSend:
    def test_posts_jsonrpc_body_with_headers(self):
        post = MagicMock(side_effect=_ok({"tools": []}))
        transport = JsonRpcTransport(
            "https://mcp.example.com/rpc", timeout=5, auth={"type": "bearer", "token": "T"}, post=post
        )
        assert transport.send("tools/list") == {"tools": []}
        url, body, headers, timeout = post.call_args.args
        assert url == "https://mcp.example.com/rpc"
        assert json.loads(body)["method"] == "tools/list"
        assert headers["Content-Type"] == "application/json"
        assert headers["Accept"] == "application/json"
        assert headers["Authorization"] == "Bearer T"
        assert timeout == 5

    def test_default_timeout_from_config(self, monkeypatch):
        monkeypatch.setattr(config, "HTTP_TIMEOUT_SECONDS", 12)
        assert JsonRpcTransport("http://x").timeout == 12

    def test_network_error_becomes_remote_error(self, network_down):
        err = JsonRpcTransport("http://x", post=network_down).send("initialize")
        assert isinstance(err, RemoteError)
        assert "Connection failed" in err.message

    def test_http_error_plain_body(self, http_500):
        err = JsonRpcTransport("http://x", post=http_500).send("initialize")
        assert err.message == "HTTP 500: Internal Server Error"
        assert err.data == {"status": 500, "body": "oops"}

    def test_http_error_with_jsonrpc_body(self):
        def post(url, body, headers, timeout):
            raise HTTPError(401, "Unauthorized", '{"error":{"message":"bad auth"}}')

        err = JsonRpcTransport("http://x", post=post).send("initialize")
        assert err.message == "bad auth"


class TestHttpPost:
    def test_returns_body(self):
        resp = MagicMock()
        resp.read.return_value = b"{}"
        resp.__enter__ = MagicMock(return_value=resp)
        resp.__exit__ = MagicMock(return_value=False)
        with patch("mcp_adapters.transport.urllib.request.urlopen", return_value=resp):
            assert _http_post("http://x", b"{}", {}, 5) == b"{}"

    def test_oversized_body_raises(self, monkeypatch):
        monkeypatch.setattr(config, "HTTP_MAX_RESPONSE_BYTES", 4)
        resp = MagicMock()
        resp.read.return_value = b"0123456789"
        resp.__enter__ = MagicMock(return_value=resp)
        resp.__exit__ = MagicMock(return_value=False)
        with patch("mcp_adapters.transport.urllib.request.urlopen", return_value=resp):
            with pytest.raises(AdapterError, match="too large"):
                _http_post("http://x", b"{}", {}, 5)

    def test_timeout_raises_adapter_error(self):
        with patch(
            "mcp_adapters.transport.urllib.request.urlopen", side_effect=TimeoutError()
        ):
            with pytest.raises(AdapterError, match="timed out"):
                _http_post("http://x", b"{}", {}, 5)


# ---------------------------------------------------------------------------
# HTTP logging
# ---------------------------------------------------------------------------


class TestHttpLogging:
    def test_disabled_by_default(self, capsys):
        JsonRpcTransport("http://x", post=_ok({})).send("initialize")
        assert "[HTTP]" not in capsys.readouterr().err

    def test_request_and_response_logged(self, capsys, monkeypatch):
        monkeypatch.setattr(config, "HTTP_LOG_ENABLED", True)
        JsonRpcTransport("http://x/rpc?token=secret", post=_ok({})).send("tools/list")
        lines = [l for l in capsys.readouterr().err.splitlines() if l.startswith("[HTTP] ")]
        events = [json.loads(l[len("[HTTP] "):]) for l in lines]
        assert [e["phase"] for e in events] == ["request", "response"]
        assert events[0]["rpc_method"] == "tools/list"
        assert "secret" not in events[0]["url"]
        assert "token=%2A%2A%2A" in events[0]["url"] or "token=***" in events[0]["url"]
        assert events[1]["status"] == 200

    def test_auth_credentials_never_logged(self, capsys, monkeypatch):
        monkeypatch.setattr(config, "HTTP_LOG_ENABLED", True)
        for auth in (
            {"type": "bearer", "token": "bearer-secret-123"},
            {"type": "api_key", "key": "bearer-secret-123"},
            {"type": "basic", "username": "bob", "password": "bearer-secret-123"},
        ):
            JsonRpcTransport("http://x", auth=auth, post=_ok({})).send("initialize")
        err = capsys.readouterr().err
        assert err.count("[HTTP] ") == 6
        assert "bearer-secret" not in err
        assert "Authorization" not in err

    def test_network_error_phase(self, capsys, monkeypatch, network_down):
        monkeypatch.setattr(config, "HTTP_LOG_ENABLED", True)
        JsonRpcTransport("http://x", post=network_down).send("initialize")
        err = capsys.readouterr().err
        assert '"phase": "network_error"' in err

    def test_sampling_bounds(self, monkeypatch):
        monkeypatch.setattr(config, "HTTP_LOG_SAMPLE_RATE", 0.0)
        assert _is_sampled_request(123) is False
        monkeypatch.setattr(config, "HTTP_LOG_SAMPLE_RATE", 1.0)
        assert _is_sampled_request(123) is True

    def test_sampling_is_deterministic(self, monkeypatch):
        monkeypatch.setattr(config, "HTTP_LOG_SAMPLE_RATE", 0.5)
        assert _is_sampled_request(4242) == _is_sampled_request(4242)
