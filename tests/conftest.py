"""Shared pytest fixtures."""

from __future__ import annotations

import os

# Force settings to use test-safe defaults before any import
os.environ.setdefault("PROVISIONER_API_KEY", "")
os.environ.setdefault("PROVISIONER_DEBUG_LOG", "")
os.environ.setdefault("SSH_STRICT_HOST_KEY", "false")

import pytest
from httpx import ASGITransport, AsyncClient

from provisioner.services.lifecycle import ResourceController
from provisioner.utils.debug_log import DebugSink
from tests.mock_ssh import MockSessionFactory


@pytest.fixture
def mock_sessions():
    """Provide a fresh MockSessionFactory."""
    return MockSessionFactory()


@pytest.fixture
def debug_path(tmp_path):
    return tmp_path / "debug.log"


@pytest.fixture
def debug_sink(debug_path):
    sink = DebugSink(str(debug_path))
    yield sink
    sink.close()


@pytest.fixture
def controller(mock_sessions, debug_sink):
    return ResourceController(mock_sessions, debug_sink)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client(mock_sessions, debug_sink, monkeypatch):
    """Async test client with the mock session factory injected."""
    monkeypatch.setenv("PROVISIONER_API_KEY", "")

    from provisioner.main import app as fastapi_app

    # ASGITransport does not run the lifespan; wire app state directly
    fastapi_app.state.session_factory = mock_sessions
    fastapi_app.state.debug_sink = debug_sink

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
