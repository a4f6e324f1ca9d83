"""
McpServer: one assembled server over a fixed set of registry abilities.

The synchronous surface (``list_tools``, ``call_tool``, prompts, resources)
does all the work and never raises for caller mistakes; ``build()`` wires it
into a low-level ``mcp`` Server and ``run()`` serves that over stdio or
streamable HTTP.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import time
from dataclasses import dataclass
from typing import Any

from mcp_adapters import config
from mcp_adapters.config import HTTP_TRANSPORT, STDIO_TRANSPORT
from mcp_adapters.exceptions import AbilityNotFoundError, AbilityPermissionError, AdapterError
from mcp_adapters.transport import RemoteError

TRANSPORTS = (STDIO_TRANSPORT, HTTP_TRANSPORT)

RESOURCE_SCHEME = "ability://"


def tool_name(ability_name):
    """MCP tool names cannot hold ``/``."""
    return ability_name.replace("/", "-")


def _contract_error(message, code="error"):
    return {"success": False, "error": {"code": code, "message": message}}


def _message_text(content):
    if isinstance(content, dict):
        return str(content.get("text", ""))
    return "" if content is None else str(content)


@dataclass(frozen=True)
class ServerManifest:
    """Everything needed to assemble one server."""

    server_id: str
    route_namespace: str
    route: str
    name: str
    description: str
    version: str
    transports: tuple[str, ...]
    error_handler: Any
    observability_handler: Any
    ability_names: tuple[str, ...] = ()
    resources: tuple[str, ...] = ()
    prompts: tuple[str, ...] = ()

    @property
    def path(self) -> str:
        return "/" + "/".join(part.strip("/") for part in (self.route_namespace, self.route) if part)


class McpServer:
    """Dispatch surface over ``manifest`` abilities held in ``registry``."""

    def __init__(self, manifest: ServerManifest, registry):
        self.manifest = manifest
        self.registry = registry
        self._tools = self._index(manifest.ability_names, "Tool")
        self._prompts = self._index(manifest.prompts, "Prompt")

    def _index(self, ability_names, what):
        """Map MCP names to ability names; the first ability keeps a clashing name."""
        index = {}
        for ability_name in ability_names:
            name = tool_name(ability_name)
            taken = index.get(name)
            if taken is not None:
                self.manifest.error_handler.log(
                    f"{what} name '{name}' of '{ability_name}' clashes with '{taken}'; "
                    "leaving it out.",
                    {"server_id": self.server_id},
                )
                continue
            index[name] = ability_name
        return index

    @property
    def server_id(self) -> str:
        return self.manifest.server_id

    @property
    def path(self) -> str:
        return self.manifest.path

    def summary(self) -> dict:
        m = self.manifest
        return {
            "id": m.server_id,
            "name": m.name,
            "path": m.path,
            "version": m.version,
            "transports": list(m.transports),
            "tools": len(self._tools),
            "resources": len(m.resources),
            "prompts": len(self._prompts),
        }

    # ---------------------------------------------------------------------------
    # Dispatch
    # ---------------------------------------------------------------------------

    def _run_ability(self, ability_name, arguments, kind):
        """Execute one ability, turning every failure into a contract error."""
        obs = self.manifest.observability_handler
        tags = {"server_id": self.server_id, kind: ability_name}
        started = time.monotonic()
        status = "success"
        try:
            result = self.registry.execute(ability_name, arguments or {})
            if isinstance(result, RemoteError):
                status = "remote_error"
                return result.to_response()
            return result
        except AbilityNotFoundError as e:
            status = "not_found"
            return _contract_error(str(e), "ability_not_found")
        except AbilityPermissionError as e:
            status = "permission_denied"
            return _contract_error(str(e), "permission_denied")
        except Exception as e:
            status = "error"
            self.manifest.error_handler.log(
                f"{kind} '{ability_name}' failed: {e}", {"server_id": self.server_id}
            )
            return _contract_error(f"Unexpected error: {e}", "execution_failed")
        finally:
            obs.record_event(f"mcp.{kind}.call", status=status, **tags)
            obs.record_timing(
                f"mcp.{kind}.duration", round((time.monotonic() - started) * 1000, 1), **tags
            )

    def list_tools(self) -> list[dict]:
        tools = []
        for name, ability_name in self._tools.items():
            ability = self.registry.get(ability_name)
            if ability is None:
                continue
            tools.append(
                {
                    "name": name,
                    "description": ability.description or ability.label,
                    "inputSchema": ability.input_schema or {"type": "object", "properties": {}},
                }
            )
        return tools

    def call_tool(self, name, arguments=None):
        ability_name = self._tools.get(name)
        if ability_name is None:
            self.manifest.observability_handler.record_event(
                "mcp.tool.call", status="not_found", server_id=self.server_id, tool=name
            )
            return _contract_error(f"Tool '{name}' not found", "tool_not_found")
        return self._run_ability(ability_name, arguments, "tool")

    def list_prompts(self) -> list[dict]:
        prompts = []
        for name, ability_name in self._prompts.items():
            ability = self.registry.get(ability_name)
            if ability is None:
                continue
            schema = ability.input_schema or {}
            required = set(schema.get("required") or ())
            prompts.append(
                {
                    "name": name,
                    "description": ability.description or ability.label,
                    "arguments": [
                        {
                            "name": arg,
                            "description": spec.get("description", ""),
                            "required": arg in required,
                        }
                        for arg, spec in (schema.get("properties") or {}).items()
                    ],
                }
            )
        return prompts

    def get_prompt(self, name, arguments=None) -> dict:
        """Render a prompt as ``{"description", "messages"}``, or a contract error."""
        ability_name = self._prompts.get(name)
        if ability_name is None:
            return _contract_error(f"Prompt '{name}' not found", "prompt_not_found")
        result = self._run_ability(ability_name, arguments, "prompt")
        if isinstance(result, dict) and (result.get("success") is False or "messages" in result):
            return result
        ability = self.registry.get(ability_name)
        text = result.get("prompt") if isinstance(result, dict) else result
        if not isinstance(text, str):
            text = json.dumps(result, indent=2, default=str)
        return {
            "description": ability.description if ability else "",
            "messages": [{"role": "user", "content": {"type": "text", "text": text}}],
        }

    def list_resources(self) -> list[dict]:
        resources = []
        for ability_name in self.manifest.resources:
            ability = self.registry.get(ability_name)
            if ability is None:
                continue
            resources.append(
                {
                    "uri": RESOURCE_SCHEME + ability_name,
                    "name": ability.label,
                    "description": ability.description,
                    "mimeType": "application/json",
                }
            )
        return resources

    def read_resource(self, uri):
        uri = str(uri)
        ability_name = uri[len(RESOURCE_SCHEME):] if uri.startswith(RESOURCE_SCHEME) else ""
        if ability_name not in self.manifest.resources:
            return _contract_error(f"Resource '{uri}' not found", "resource_not_found")
        return self._run_ability(ability_name, {}, "resource")

    # ---------------------------------------------------------------------------
    # Transport wiring
    # ---------------------------------------------------------------------------

    def build(self):
        """Return a low-level ``mcp`` Server wired to this dispatch surface."""
        from mcp.server import Server
        from mcp.types import (
            GetPromptResult,
            Prompt,
            PromptArgument,
            PromptMessage,
            Resource,
            TextContent,
            Tool,
        )

        server = Server(self.manifest.name, version=self.manifest.version)

        def _text(content):
            if isinstance(content, str):
                return [TextContent(type="text", text=content)]
            return [TextContent(type="text", text=json.dumps(content, indent=2, default=str))]

        @server.list_tools()
        async def list_tools():
            return [
                Tool(name=t["name"], description=t["description"], inputSchema=t["inputSchema"])
                for t in self.list_tools()
            ]

        @server.call_tool()
        async def call_tool(name, arguments):
            return _text(self.call_tool(name, arguments))

        @server.list_prompts()
        async def list_prompts():
            return [
                Prompt(
                    name=p["name"],
                    description=p["description"],
                    arguments=[PromptArgument(**arg) for arg in p["arguments"]],
                )
                for p in self.list_prompts()
            ]

        @server.get_prompt()
        async def get_prompt(name, arguments=None):
            result = self.get_prompt(name, arguments)
            if result.get("success") is False:
                raise ValueError(result["error"]["message"])
            return GetPromptResult(
                description=result.get("description") or None,
                messages=[
                    PromptMessage(
                        role=m.get("role", "user"),
                        content=TextContent(type="text", text=_message_text(m.get("content"))),
                    )
                    for m in result["messages"]
                ],
            )

        @server.list_resources()
        async def list_resources():
            return [Resource(**r) for r in self.list_resources()]

        @server.read_resource()
        async def read_resource(uri):
            result = self.read_resource(uri)
            if isinstance(result, dict) and result.get("success") is False:
                raise ValueError(result["error"]["message"])
            return json.dumps(result, indent=2, default=str)

        return server

    def http_app(self):
        """Starlette app serving streamable HTTP at ``manifest.path``."""
        from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
        from starlette.applications import Starlette
        from starlette.routing import Route

        session_manager = StreamableHTTPSessionManager(
            app=self.build(),
            json_response=False,
            stateless=True,
        )

        class _StreamableHTTPApp:
            async def __call__(self, scope, receive, send):
                await session_manager.handle_request(scope, receive, send)

        @contextlib.asynccontextmanager
        async def lifespan(app):
            async with session_manager.run():
                yield

        return Starlette(routes=[Route(self.path, endpoint=_StreamableHTTPApp())], lifespan=lifespan)

    def run(self, transport=STDIO_TRANSPORT, host=None, port=None):
        """Serve until interrupted. Raises AdapterError for an unlisted transport."""
        if transport not in self.manifest.transports:
            raise AdapterError(
                f"[ERROR] Server '{self.server_id}' does not support transport '{transport}'. "
                f"Available: {', '.join(self.manifest.transports)}"
            )
        if transport == HTTP_TRANSPORT:
            import uvicorn

            uvicorn.run(
                self.http_app(),
                host=host or config.MCP_HTTP_HOST,
                port=int(port or config.MCP_HTTP_PORT),
                log_level="warning",
            )
            return

        from mcp.server.stdio import stdio_server

        server = self.build()

        async def _run():
            async with stdio_server() as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())

        asyncio.run(_run())
