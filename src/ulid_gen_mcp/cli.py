"""Command-line entry point: attach the ULID tool server to stdio."""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import AsyncExitStack

import click
from mcp.server.stdio import stdio_server

from ulid_gen_mcp import __version__
from ulid_gen_mcp.config import (
    DEFAULT_GUARD_TIMEOUT,
    DEFAULT_LOG_LEVEL,
    GUARD_TIMEOUT_ENV,
    LOG_FORMAT,
    LOG_LEVEL_ENV,
    parse_log_level,
)
from ulid_gen_mcp.generator import UlidGenerator
from ulid_gen_mcp.server import UlidToolServer

log = logging.getLogger(__name__)


class TransportAttachError(RuntimeError):
    """The server could not attach to its stdio transport."""


def configure_logging(level: int) -> None:
    """Send all diagnostics to stderr; stdout carries protocol messages only."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


def _validate_log_level(ctx: click.Context, param: click.Parameter, value: str) -> int:
    try:
        return parse_log_level(value)
    except ValueError as e:
        raise click.BadParameter(str(e), ctx=ctx, param=param) from None


async def _serve(tool_server: UlidToolServer) -> None:
    async with AsyncExitStack() as stack:
        try:
            read_stream, write_stream = await stack.enter_async_context(stdio_server())
        except Exception as e:
            raise TransportAttachError(str(e)) from e
        await tool_server.run(read_stream, write_stream)


@click.command()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    envvar=LOG_LEVEL_ENV,
    default=DEFAULT_LOG_LEVEL,
    show_default=True,
    callback=_validate_log_level,
    help="Minimum log level written to stderr (debug, info, warn, error, ...).",
)
@click.option(
    "--guard-timeout",
    envvar=GUARD_TIMEOUT_ENV,
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_GUARD_TIMEOUT,
    show_default=True,
    help="Seconds to wait for the ULID state guard before failing the request.",
)
def main(log_level: int, guard_timeout: float) -> None:
    """Serve ULID generation as an MCP tool over stdin/stdout."""
    configure_logging(log_level)
    log.info("Starting MCP server...")

    tool_server = UlidToolServer(UlidGenerator(guard_timeout=guard_timeout))
    try:
        asyncio.run(_serve(tool_server))
    except TransportAttachError as e:
        log.error("Error: %s", e)
        raise SystemExit(1) from None
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")
    except Exception as e:
        log.error("Transport failed mid-session: %s", e)
    log.info("MCP server stopped")
