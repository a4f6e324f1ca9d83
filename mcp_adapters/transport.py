"""
JSON-RPC 2.0 over HTTP POST, auth header construction, and remote errors.

Every failure on this path becomes a ``RemoteError`` value; ``send`` never
raises for network, HTTP or decoding problems.
"""

from __future__ import annotations

import base64
import hashlib
import json
import random
import time
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

from mcp_adapters import config
from mcp_adapters._utils import _log_http_event, _sanitize_url_for_log
from mcp_adapters.exceptions import AdapterError, HTTPError


@dataclass(frozen=True)
class RemoteError:
    """Failure returned by a bridge call instead of raising."""

    message: str
    data: Any = None
    code: str = config.REMOTE_ERROR_CODE

    def to_response(self) -> dict:
        return {"success": False, "error": {"code": self.code, "message": self.message}}


def is_remote_error(value) -> bool:
    return isinstance(value, RemoteError)


# ---------------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------------


def build_request(method, params=None):
    """Build a JSON-RPC 2.0 request object with a random id."""
    return {
        "jsonrpc": config.JSONRPC_VERSION,
        "id": random.randint(1, 999999),
        "method": method,
        "params": params if params is not None else {},
    }


def auth_headers(auth):
    """Map an auth spec to extra HTTP headers.

    A spec without ``type`` is treated as bearer; unknown types add nothing.
    """
    if not auth:
        return {}
    kind = auth.get("type", "bearer")
    if kind == "bearer":
        return {"Authorization": f"Bearer {auth.get('token', '')}"}
    if kind == "api_key":
        return {"X-API-Key": str(auth.get("key", ""))}
    if kind == "basic":
        raw = f"{auth.get('username', '')}:{auth.get('password', '')}"
        encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {encoded}"}
    return {}


def _is_sampled_request(request_id):
    """Decide if a request should be logged based on sample rate."""
    rate = config.HTTP_LOG_SAMPLE_RATE
    if rate <= 0:
        return False
    if rate >= 1:
        return True
    if request_id is None:
        return False
    digest = hashlib.sha256(str(request_id).encode("utf-8")).digest()
    bucket = int.from_bytes(digest[:4], "big") / 4294967295.0
    return bucket < rate


def _http_post(url, body, headers, timeout):
    """POST ``body`` and return the raw response bytes.

    Raises HTTPError for non-2xx responses and AdapterError for network,
    timeout and oversized-body failures.
    """
    req = urllib.request.Request(url, data=body, headers=headers, method="POST")
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read(config.HTTP_MAX_RESPONSE_BYTES + 1)
    except urllib.error.HTTPError as e:
        error_body = (
            e.read(config.HTTP_MAX_RESPONSE_BYTES).decode("utf-8", errors="replace")
            if e.fp
            else ""
        )
        raise HTTPError(e.code, e.reason, error_body, headers=e.headers) from e
    except TimeoutError as e:
        raise AdapterError(f"Request timed out after {timeout} seconds.") from e
    except urllib.error.URLError as e:
        raise AdapterError(f"Connection failed: {e.reason}") from e
    except OSError as e:
        raise AdapterError(f"Connection failed: {e}") from e
    if len(raw) > config.HTTP_MAX_RESPONSE_BYTES:
        raise AdapterError(f"Response too large (>{config.HTTP_MAX_RESPONSE_BYTES} bytes).")
    return raw


def _decode_error(payload):
    """Turn a JSON-RPC ``error`` member into a RemoteError."""
    if isinstance(payload, dict):
        message = payload.get("message") or "Unknown error"
    else:
        message = str(payload) if payload else "Unknown error"
    return RemoteError(message=str(message), data=payload)


def parse_response(raw):
    """Decode a JSON-RPC response body into its ``result`` or a RemoteError."""
    try:
        decoded = json.loads(raw.decode("utf-8") if isinstance(raw, bytes) else raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return RemoteError(message=f"Invalid JSON response from MCP server: {e}")
    if not isinstance(decoded, dict):
        return RemoteError(
            message=f"Unexpected JSON-RPC response shape: {type(decoded).__name__}",
            data=decoded,
        )
    if "error" in decoded:
        return _decode_error(decoded["error"])
    result = decoded.get("result", {})
    return {} if result is None else result


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class JsonRpcTransport:
    """Send JSON-RPC requests to one MCP server URL.

    ``post`` may be injected for tests; it receives
    ``(url, body_bytes, headers, timeout)`` and returns response bytes.
    """

    def __init__(self, server_url, *, timeout=None, auth=None, post=None):
        self.server_url = server_url
        self.timeout = timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS
        self.auth = auth or {}
        self._post = post or _http_post

    def headers(self):
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        headers.update(auth_headers(self.auth))
        return headers

    def send(self, method, params=None):
        """Send ``method`` and return the ``result`` dict or a RemoteError."""
        request = build_request(method, params)
        body = json.dumps(request).encode("utf-8")
        safe_url = _sanitize_url_for_log(self.server_url)
        sampled = _is_sampled_request(request["id"])
        start = time.perf_counter()
        if sampled:
            _log_http_event(
                phase="request",
                method="POST",
                rpc_method=method,
                url=safe_url,
                request_id=request["id"],
                timeout_seconds=self.timeout,
            )
        try:
            raw = self._post(self.server_url, body, self.headers(), self.timeout)
        except HTTPError as e:
            if sampled:
                _log_http_event(
                    phase="response",
                    method="POST",
                    rpc_method=method,
                    url=safe_url,
                    status=e.code,
                    latency_ms=round((time.perf_counter() - start) * 1000, 2),
                    request_id=request["id"],
                )
            return self._http_error(e)
        except AdapterError as e:
            if sampled:
                _log_http_event(
                    phase="network_error",
                    method="POST",
                    rpc_method=method,
                    url=safe_url,
                    error=str(e),
                    request_id=request["id"],
                )
            return RemoteError(message=str(e))
        if sampled:
            _log_http_event(
                phase="response",
                method="POST",
                rpc_method=method,
                url=safe_url,
                status=200,
                bytes=len(raw),
                latency_ms=round((time.perf_counter() - start) * 1000, 2),
                request_id=request["id"],
            )
        return parse_response(raw)

    @staticmethod
    def _http_error(error):
        """Prefer a JSON-RPC error carried in the body of an HTTP error."""
        try:
            decoded = json.loads(error.body) if error.body else None
        except (json.JSONDecodeError, TypeError):
            decoded = None
        if isinstance(decoded, dict) and "error" in decoded:
            return _decode_error(decoded["error"])
        return RemoteError(
            message=f"HTTP {error.code}: {error.reason}",
            data={"status": error.code, "body": error.body},
        )
