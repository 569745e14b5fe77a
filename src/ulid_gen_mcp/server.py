"""MCP tool server exposing a single ``generate`` operation for ULIDs.

Wiring::

    tool_server = UlidToolServer()
    async with stdio_server() as (read, write):
        await tool_server.run(read, write)

``tools/call`` is installed as a raw request handler rather than through
``Server.call_tool()``: the decorator folds every exception into an
``isError`` tool result, while unknown tools and a broken generator must
surface as JSON-RPC errors.

The SDK session answers ``initialize`` with whichever supported version the
client asked for.  This server always speaks ``PROTOCOL_VERSION``, so inbound
``initialize`` requests are rewritten to that version before the session
sees them.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any

import anyio
import mcp.types as types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.shared.exceptions import McpError
from mcp.shared.message import SessionMessage

from ulid_gen_mcp import __version__
from ulid_gen_mcp.generator import (
    GeneratorError,
    GeneratorPoisonedError,
    GeneratorStalledError,
    UlidGenerator,
)

log = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "ulid-gen-mcp"
INSTRUCTIONS = "This is a server for generating ULID"


@dataclass(frozen=True)
class Capabilities:
    prompts: bool = True
    resources: bool = True
    tools: bool = True


@dataclass(frozen=True)
class ServerDescriptor:
    """Identity and capability metadata reported during the handshake."""

    protocol_version: str
    name: str
    version: str
    capabilities: Capabilities
    instructions: str


SERVER_DESCRIPTOR = ServerDescriptor(
    protocol_version=PROTOCOL_VERSION,
    name=SERVER_NAME,
    version=__version__,
    capabilities=Capabilities(),
    instructions=INSTRUCTIONS,
)


class Operation(enum.StrEnum):
    GENERATE = "generate"


GENERATE_TOOL = types.Tool(
    name=Operation.GENERATE.value,
    description="generate a ULID",
    inputSchema={"type": "object", "properties": {}},
)


def _tool_not_found(name: str) -> McpError:
    return McpError(types.ErrorData(code=types.INVALID_PARAMS, message=f"tool not found: {name}"))


def pin_protocol_version(message: SessionMessage | Exception) -> SessionMessage | Exception:
    """Force an inbound ``initialize`` request to ask for ``PROTOCOL_VERSION``."""
    if not isinstance(message, SessionMessage):
        return message
    request = message.message.root
    if isinstance(request, types.JSONRPCRequest) and request.method == "initialize":
        params = request.params if request.params is not None else {}
        requested = params.get("protocolVersion")
        if requested != PROTOCOL_VERSION:
            log.debug("Client asked for protocol %s; pinning %s", requested, PROTOCOL_VERSION)
        params["protocolVersion"] = PROTOCOL_VERSION
        request.params = params
    return message


class UlidToolServer:
    """Protocol shell around one shared :class:`UlidGenerator`."""

    def __init__(self, generator: UlidGenerator | None = None) -> None:
        self.generator = generator if generator is not None else UlidGenerator()
        self.server: Server = Server(
            SERVER_DESCRIPTOR.name,
            version=SERVER_DESCRIPTOR.version,
            instructions=SERVER_DESCRIPTOR.instructions,
        )
        self.server.list_prompts()(self.list_prompts)
        self.server.list_resources()(self.list_resources)
        self.server.list_tools()(self.list_tools)
        self.server.request_handlers[types.CallToolRequest] = self._call_tool

    def get_descriptor(self) -> ServerDescriptor:
        return SERVER_DESCRIPTOR

    def initialization_options(self) -> InitializationOptions:
        return InitializationOptions(
            server_name=SERVER_DESCRIPTOR.name,
            server_version=SERVER_DESCRIPTOR.version,
            capabilities=self.server.get_capabilities(NotificationOptions(), {}),
            instructions=SERVER_DESCRIPTOR.instructions,
        )

    async def list_prompts(self) -> list[types.Prompt]:
        return []

    async def list_resources(self) -> list[types.Resource]:
        return []

    async def list_tools(self) -> list[types.Tool]:
        return [GENERATE_TOOL]

    def handle_invocation(self, name: str) -> types.CallToolResult:
        """Run the named operation and wrap its output in a tool result.

        Raises ``McpError`` for unknown names and for generator failures;
        the SDK turns those into JSON-RPC error responses.
        """
        try:
            operation = Operation(name)
        except ValueError:
            log.warning("Rejected call to unknown tool '%s'", name)
            raise _tool_not_found(name) from None

        assert operation is Operation.GENERATE
        try:
            ulid = self.generator.generate()
        except (GeneratorPoisonedError, GeneratorStalledError) as exc:
            log.critical("Fatal ULID state failure: %s", exc)
            raise McpError(types.ErrorData(code=types.INTERNAL_ERROR, message=str(exc))) from exc
        except GeneratorError as exc:
            log.error("ULID generation failed: %s", exc)
            raise McpError(types.ErrorData(code=types.INTERNAL_ERROR, message=str(exc))) from exc
        log.info("Generated new ULID: %s", ulid)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=str(ulid))],
            isError=False,
        )

    async def _call_tool(self, req: types.CallToolRequest) -> types.ServerResult:
        log.debug("tools/call %s", req.params.name)
        return types.ServerResult(self.handle_invocation(req.params.name))

    async def run(self, read_stream: Any, write_stream: Any) -> None:
        """Serve requests until the transport closes."""
        send_stream, receive_stream = anyio.create_memory_object_stream(0)
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._forward_inbound, read_stream, send_stream)
            await self.server.run(receive_stream, write_stream, self.initialization_options())
            tg.cancel_scope.cancel()

    async def _forward_inbound(self, read_stream: Any, send_stream: Any) -> None:
        async with read_stream, send_stream:
            async for message in read_stream:
                await send_stream.send(pin_protocol_version(message))
