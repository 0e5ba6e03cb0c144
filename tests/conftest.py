"""Pytest fixtures and shared test configuration.

Fixtures:
    - push_config / request_config: Fast settings for each transport mode
    - session_info: Consistent session for tests
    - backend: FastAPI stand-in backend
    - http_client: HTTPX client routed to the backend in-process
    - push_transport: In-memory push transport
"""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from docchat.config import ChatConfig, TransportMode
from docchat.models.schemas import SessionInfo
from tests.backend import FakeBackend
from tests.fakes import FakePushTransport

SESSION_ID = "test-session-12345"


@pytest.fixture
def push_config() -> ChatConfig:
    """Push-mode config with near-instant retries and no timers."""
    return ChatConfig(
        api_base_url="http://test/api/v1",
        transport_mode=TransportMode.PUSH,
        reconnect_delay=0.01,
        heartbeat_outgoing=0,
        heartbeat_incoming=0,
        reply_timeout=0,
    )


@pytest.fixture
def request_config() -> ChatConfig:
    """Request-mode config."""
    return ChatConfig(
        api_base_url="http://test/api/v1",
        transport_mode=TransportMode.REQUEST,
        reconnect_delay=0.01,
        reply_timeout=0,
    )


@pytest.fixture
def session_info() -> SessionInfo:
    return SessionInfo(session_id=SESSION_ID, document_id="doc-1", document_name="policy.pdf")


@pytest.fixture
def backend() -> FakeBackend:
    """Stand-in backend with an empty session registered."""
    fake = FakeBackend()
    fake.add_session(SESSION_ID)
    return fake


@pytest.fixture
async def http_client(backend: FakeBackend) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for the stand-in backend.

    Yields:
        AsyncClient whose base URL is the API root.
    """
    transport = ASGITransport(app=backend.app)
    async with AsyncClient(transport=transport, base_url="http://test/api/v1") as client:
        yield client


@pytest.fixture
def push_transport() -> FakePushTransport:
    return FakePushTransport()
