"""
Shared fixtures. No browser, no network: every session gets a FakeClient
that records calls and lets tests fire client events by hand.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from main import create_app
from store import SessionRegistry
from whatsapp.client import MessagingClient


class FakeClient(MessagingClient):
    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.initialize_calls = 0
        self.initialize_error = None
        self.send_error = None
        self.sent: list[tuple[str, str]] = []
        self.closed = False

    async def initialize(self) -> None:
        self.initialize_calls += 1
        if self.initialize_error is not None:
            raise self.initialize_error

    async def send_message(self, chat_id: str, text: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((chat_id, text))

    async def close(self) -> None:
        self.closed = True


class FakeClientFactory:
    """Builds FakeClients and remembers them by session id."""

    def __init__(self):
        self.clients: dict[str, FakeClient] = {}

    def __call__(self, session_id: str) -> FakeClient:
        client = FakeClient(session_id)
        self.clients[session_id] = client
        return client


@pytest.fixture
def factory():
    return FakeClientFactory()


@pytest.fixture
def registry(factory):
    return SessionRegistry(client_factory=factory)


@pytest.fixture
def client(registry):
    with TestClient(create_app(registry)) as test_client:
        yield test_client


@pytest.fixture
def emit(client, factory):
    """Fire a client event on the app's event loop: emit("s1", "ready")."""
    def _emit(session_id: str, event: str, *args):
        client.portal.call(factory.clients[session_id].emit, event, *args)
    return _emit


@pytest.fixture
def settle(client):
    """Yield once on the app loop so freshly scheduled initialize() tasks run."""
    def _settle():
        client.portal.call(asyncio.sleep, 0)
    return _settle
