"""
mcp-adapters command-line entry point.

Boots the plugin from configuration, then lists what got registered or
serves one assembled MCP server.
"""

import argparse
import json
import sys

from mcp_adapters import config
from mcp_adapters.exceptions import AdapterError
from mcp_adapters.plugin import Plugin
from mcp_adapters.transport import RemoteError

HELP_TEXT = f"""\
mcp-adapters {config.VERSION}: expose abilities and bridged MCP servers over MCP

Usage: mcp-adapters <command> [options]

Commands:
  version                         Show version
  abilities [--prefix P]          List registered ability names
  clients                         Show bridged MCP client status
  servers                         List assembled MCP servers
  call <ability> [--args JSON]    Execute one ability and print the result
  serve <server_id> [--transport stdio|streamable-http] [--host H] [--port N]
                                  Serve one MCP server until interrupted

Global flags:
  --quiet, -q      Suppress [ERROR]/[WARN] diagnostics
  --verbose, -v    Log outbound JSON-RPC traffic as [HTTP] lines

Configuration (.env or environment):
  MCP_ADAPTERS_BACKEND        module:attribute of the FluentBoards backend
  MCP_ADAPTERS_CLIENTS_FILE   JSON file of remote MCP servers to bridge
"""

# ---------------------------------------------------------------------------
# Global flag extraction (before argparse, so -q/-v work after the subcommand)
# ---------------------------------------------------------------------------


def _extract_global_flags(argv):
    """Return (quiet, verbose, remaining_argv). Handles --version directly."""
    quiet = False
    verbose = False
    remaining = []
    for arg in argv:
        if arg == "--version":
            print(f"mcp-adapters {config.VERSION}")
            sys.exit(0)
        elif arg in ("--quiet", "-q"):
            quiet = True
        elif arg in ("--verbose", "-v"):
            verbose = True
        else:
            remaining.append(arg)
    if quiet and verbose:
        raise AdapterError("[ERROR] --quiet and --verbose are mutually exclusive.")
    return quiet, verbose, remaining


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


class _SubcommandParser(argparse.ArgumentParser):
    """Subparser that raises AdapterError instead of printing full help text."""

    def error(self, message):
        raise AdapterError(f"[ERROR] {message}")


def _port(value):
    try:
        port = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer port") from exc
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError("must be between 1 and 65535")
    return port


def build_parser():
    parser = _SubcommandParser(prog="mcp-adapters", add_help=False)
    parser.add_argument("--help", "-h", action="store_true", dest="show_help")
    sub = parser.add_subparsers(dest="command", parser_class=_SubcommandParser)

    sub.add_parser("version").set_defaults(func=None)

    p = sub.add_parser("abilities")
    p.add_argument("--prefix", default="")
    p.set_defaults(func=cmd_abilities)

    sub.add_parser("clients").set_defaults(func=cmd_clients)
    sub.add_parser("servers").set_defaults(func=cmd_servers)

    p = sub.add_parser("call")
    p.add_argument("ability")
    p.add_argument("--args", default="{}", dest="arguments")
    p.set_defaults(func=cmd_call)

    p = sub.add_parser("serve")
    p.add_argument("server_id")
    p.add_argument(
        "--transport",
        choices=[config.STDIO_TRANSPORT, config.HTTP_TRANSPORT],
        default=config.STDIO_TRANSPORT,
    )
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=_port, default=None)
    p.set_defaults(func=cmd_serve)

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def cmd_abilities(ns, plugin):
    _print_json(sorted(n for n in plugin.registry.names() if n.startswith(ns.prefix)))


def cmd_clients(ns, plugin):
    _print_json(plugin.manager.get_client_status())


def cmd_servers(ns, plugin):
    _print_json([server.summary() for server in plugin.mcp_adapter.get_servers().values()])


def cmd_call(ns, plugin):
    try:
        arguments = json.loads(ns.arguments)
    except json.JSONDecodeError as e:
        raise AdapterError(f"[ERROR] --args must be a JSON object: {e}") from e
    if not isinstance(arguments, dict):
        raise AdapterError("[ERROR] --args must be a JSON object.")
    result = plugin.registry.execute(ns.ability, arguments)
    if isinstance(result, RemoteError):
        result = result.to_response()
    _print_json(result)


def cmd_serve(ns, plugin):
    server = plugin.mcp_adapter.get_server(ns.server_id)
    if server is None:
        available = ", ".join(plugin.mcp_adapter.get_servers()) or "none"
        raise AdapterError(f"[ERROR] Unknown server '{ns.server_id}'. Available: {available}")
    server.run(ns.transport, host=ns.host, port=ns.port)


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------


def _emit_error(err):
    payload = {
        "success": False,
        "error": {
            "code": type(err).__name__,
            "message": str(err),
            "exit_code": getattr(err, "exit_code", 1),
        },
    }
    print(json.dumps(payload, ensure_ascii=False), file=sys.stderr)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(HELP_TEXT)
        sys.exit(0)

    try:
        quiet, verbose, remaining_argv = _extract_global_flags(argv)
        config.RUNTIME_QUIET = quiet
        if verbose:
            config.HTTP_LOG_ENABLED = True

        ns = build_parser().parse_args(remaining_argv)
        if ns.show_help or not ns.command:
            print(HELP_TEXT)
            sys.exit(0)
        if ns.command == "version":
            print(f"mcp-adapters {config.VERSION}")
            sys.exit(0)

        plugin = Plugin.from_config().boot()
        ns.func(ns, plugin)
    except AdapterError as e:
        _emit_error(e)
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
