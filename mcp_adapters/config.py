"""
mcp-adapters shared configuration, constants, and module-level state.
Standalone module: no imports from other project files.
"""

import os

# ---------------------------------------------------------------------------
# .env path and helpers
# ---------------------------------------------------------------------------

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_PACKAGE_DIR)

ENV_PATH = os.path.join(_PROJECT_ROOT, ".env")
ENV_PREFIX = "MCP_ADAPTERS_"


def load_env(path=None):
    """Read KEY=VALUE lines from .env, then overlay prefixed process env vars."""
    path = path or ENV_PATH
    env = {}
    if os.path.exists(path):
        with open(path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, val = line.split("=", 1)
                    env[key.strip()] = val.strip()
    for key, val in os.environ.items():
        if key.startswith(ENV_PREFIX) or key.startswith("MCP_HTTP_"):
            env[key] = val
    return env


def _env_bool(key, default=False):
    """Parse common boolean env formats."""
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(key, default):
    """Parse integer env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(key, default):
    """Parse float env values with fallback."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VERSION = "0.1.0"

JSONRPC_VERSION = "2.0"
REMOTE_ERROR_CODE = "mcp_client_error"
PROXY_PREFIX = "mcp_"

STDIO_TRANSPORT = "stdio"
HTTP_TRANSPORT = "streamable-http"
VALID_TRANSPORTS = {STDIO_TRANSPORT, HTTP_TRANSPORT}

# ---------------------------------------------------------------------------
# Module-level state (loaded from .env and MCP_ADAPTERS_* env vars)
# ---------------------------------------------------------------------------

env = load_env()

HTTP_TIMEOUT_SECONDS = _env_int("MCP_ADAPTERS_HTTP_TIMEOUT_SECONDS", 30)
HTTP_MAX_RESPONSE_BYTES = _env_int("MCP_ADAPTERS_HTTP_MAX_RESPONSE_BYTES", 5_000_000)
HTTP_LOG_ENABLED = _env_bool("MCP_ADAPTERS_HTTP_LOG", False)
HTTP_LOG_SAMPLE_RATE = min(1.0, max(0.0, _env_float("MCP_ADAPTERS_HTTP_LOG_SAMPLE_RATE", 1.0)))

CLIENTS_FILE = env.get("MCP_ADAPTERS_CLIENTS_FILE", "")
BACKEND = env.get("MCP_ADAPTERS_BACKEND", "")

MCP_HTTP_HOST = env.get("MCP_HTTP_HOST", "127.0.0.1")
MCP_HTTP_PORT = _env_int("MCP_HTTP_PORT", 8808)

# ---------------------------------------------------------------------------
# Runtime flags (set by the CLI)
# ---------------------------------------------------------------------------

RUNTIME_QUIET = False
