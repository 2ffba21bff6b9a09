"""
Shared fixtures and fakes.
"""

from typing import Callable, Dict, List, Optional

import httpx
import pytest

from dokdeck.api.client import HttpClient
from dokdeck.config import Settings
from dokdeck.logs.socket import SocketTarget
from dokdeck.storage.credentials import CredentialStore
from dokdeck.storage.endpoint import EndpointStore
from dokdeck.storage.kv import MemoryKeyValueStorage


class CountingStorage(MemoryKeyValueStorage):
    """Memory storage that records every call."""
    
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.reads: List[str] = []
        self.writes: List[str] = []
    
    async def get_string(self, key):
        self.reads.append(key)
        return await super().get_string(key)
    
    async def set(self, key, value):
        self.writes.append(key)
        await super().set(key, value)
    
    async def remove(self, key):
        self.writes.append(key)
        await super().remove(key)


class FakeSocket:
    """In-process LogSocket that records calls and lets tests emit events."""
    
    def __init__(self, target: SocketTarget, auto_connect: bool = True):
        self.target = target
        self.auto_connect = auto_connect
        self.handlers: Dict[str, Callable] = {}
        self.connect_calls = 0
        self.disconnect_calls = 0
    
    def on(self, event, handler):
        self.handlers[event] = handler
    
    def remove_all_listeners(self):
        self.handlers.clear()
    
    async def connect(self):
        self.connect_calls += 1
        if self.auto_connect:
            self.emit("connect")
    
    async def disconnect(self):
        self.disconnect_calls += 1
    
    def emit(self, event, *args):
        handler = self.handlers.get(event)
        if handler is not None:
            handler(*args)


class FakeSocketFactory:
    """Creates FakeSockets and keeps them in creation order."""
    
    def __init__(self, auto_connect: bool = True):
        self.auto_connect = auto_connect
        self.sockets: List[FakeSocket] = []
    
    def __call__(self, target: SocketTarget) -> FakeSocket:
        socket = FakeSocket(target, auto_connect=self.auto_connect)
        self.sockets.append(socket)
        return socket
    
    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


class RecordingHandler:
    """MockTransport handler routing by URL path; records requests."""
    
    def __init__(self, routes: Optional[Dict[str, Callable]] = None):
        self.routes = routes or {}
        self.requests: List[httpx.Request] = []
    
    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, responder in self.routes.items():
            if request.url.path.endswith(suffix):
                return responder(request)
        return httpx.Response(404, json={"message": "Not found"})


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def storage():
    return CountingStorage()


@pytest.fixture
def endpoint_store(storage):
    return EndpointStore(storage)


@pytest.fixture
def credential_store(storage):
    return CredentialStore(storage)


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def http_client(endpoint_store, credential_store, settings, handler):
    return HttpClient(
        endpoint_store,
        credential_store,
        settings=settings,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.fixture
def socket_factory():
    return FakeSocketFactory()


@pytest.fixture
def manual_socket_factory():
    """Sockets that stay in 'connecting' until the test emits 'connect'."""
    return FakeSocketFactory(auto_connect=False)
