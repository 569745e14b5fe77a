"""Shared fixtures: one generator and one tool server per test."""

import pytest

from ulid_gen_mcp.generator import UlidGenerator
from ulid_gen_mcp.server import UlidToolServer


@pytest.fixture()
def generator() -> UlidGenerator:
    return UlidGenerator(guard_timeout=1.0)


@pytest.fixture()
def tool_server(generator: UlidGenerator) -> UlidToolServer:
    return UlidToolServer(generator)
