"""
Composition root handed to the UI shell.

Builds the process-wide stores, HTTP client and session manager once and
creates one log stream client per mounted log view.
"""

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncIterator, Optional

import httpx

from dokdeck.api.client import HttpClient
from dokdeck.auth.session import SessionManager
from dokdeck.config import Settings, get_settings
from dokdeck.logging_config import setup_logging
from dokdeck.logs.socket import SocketFactory
from dokdeck.logs.stream import LogStreamClient
from dokdeck.logs.target import LogTarget, resolve_log_target
from dokdeck.models.logs import LogStreamParams
from dokdeck.storage.credentials import CredentialStore, ProfileCache
from dokdeck.storage.endpoint import EndpointStore
from dokdeck.storage.kv import KeyValueStorage, SqliteKeyValueStorage


class AppContainer:
    """Wires the client core together."""
    
    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[KeyValueStorage] = None,
        http: Optional[httpx.AsyncClient] = None,
        socket_factory: Optional[SocketFactory] = None,
    ):
        self.settings = settings or get_settings()
        self.storage = storage or SqliteKeyValueStorage(self.settings.storage_path)
        self.socket_factory = socket_factory
        
        self.endpoint_store = EndpointStore(self.storage)
        self.credential_store = CredentialStore(self.storage)
        self.profile_cache = ProfileCache(self.storage)
        self.http_client = HttpClient(
            self.endpoint_store,
            self.credential_store,
            settings=self.settings,
            client=http,
        )
        self.session_manager = SessionManager(
            self.endpoint_store,
            self.credential_store,
            self.http_client,
            profile_cache=self.profile_cache,
        )
    
    async def start(self) -> None:
        """Prepare storage and restore the session."""
        if isinstance(self.storage, SqliteKeyValueStorage):
            await self.storage.init_storage()
        await self.session_manager.initialize()
    
    def log_stream(self, params: Optional[LogStreamParams] = None) -> LogStreamClient:
        """New stream client for a log view. The caller closes it on unmount."""
        return LogStreamClient(
            self.credential_store,
            self.endpoint_store,
            settings=self.settings,
            socket_factory=self.socket_factory,
            params=params,
        )
    
    async def resolve_log_target(self, service_type: str, service_id: str) -> LogTarget:
        return await resolve_log_target(self.http_client, service_type, service_id)
    
    async def aclose(self) -> None:
        await self.http_client.aclose()


@asynccontextmanager
async def lifespan(container: AppContainer) -> AsyncIterator[AppContainer]:
    """Configure logging, start the container and release its resources on exit."""
    setup_logging(container.settings)
    await container.start()
    try:
        yield container
    finally:
        await container.aclose()


@lru_cache()
def get_container() -> AppContainer:
    """Get the cached process-wide container."""
    return AppContainer()
