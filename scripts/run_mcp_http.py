"""Run one assembled MCP server in streamable-http mode."""

import os
import sys

from mcp_adapters import config
from mcp_adapters.exceptions import AdapterError
from mcp_adapters.plugin import Plugin

if __name__ == "__main__":
    server_id = sys.argv[1] if len(sys.argv) > 1 else "all-abilities"
    try:
        plugin = Plugin.from_config().boot()
        server = plugin.mcp_adapter.get_server(server_id)
        if server is None:
            raise AdapterError(f"[ERROR] Unknown server '{server_id}'.")
        server.run(
            config.HTTP_TRANSPORT,
            host=os.environ.get("MCP_HTTP_HOST", config.MCP_HTTP_HOST),
            port=int(os.environ.get("MCP_HTTP_PORT", config.MCP_HTTP_PORT)),
        )
    except AdapterError as e:
        print(e, file=sys.stderr)
        sys.exit(e.exit_code)
