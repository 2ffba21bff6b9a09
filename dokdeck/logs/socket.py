"""
Socket.IO transport for the container log stream.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol
from urllib.parse import urlencode

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

logger = logging.getLogger(__name__)

EventHandler = Callable[..., Any]

UNENCODABLE_REQUEST_MESSAGE = "Log stream request contains characters that cannot be sent."


@dataclass(frozen=True)
class SocketTarget:
    """Everything needed to open one log socket."""
    url: str
    path: str
    query: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict, repr=False)
    
    @property
    def url_with_query(self) -> str:
        if not self.query:
            return self.url
        return f"{self.url}?{urlencode(self.query)}"


class LogSocket(Protocol):
    """A single socket connection as seen by the log stream client."""
    
    def on(self, event: str, handler: EventHandler) -> None:
        ...
    
    def remove_all_listeners(self) -> None:
        ...
    
    async def connect(self) -> None:
        ...
    
    async def disconnect(self) -> None:
        ...


SocketFactory = Callable[[SocketTarget], LogSocket]


class SocketIOLogSocket:
    """
    LogSocket backed by ``socketio.AsyncClient``.
    
    Handlers are kept in a local table so they can all be dropped at once;
    the Socket.IO client only ever sees one dispatcher per event. Automatic
    reconnection is disabled.
    """
    
    def __init__(self, target: SocketTarget, client: Optional[socketio.AsyncClient] = None):
        self.target = target
        self.client = client or socketio.AsyncClient(reconnection=False)
        self._handlers: Dict[str, EventHandler] = {}
        self._registered = set()
    
    def on(self, event: str, handler: EventHandler) -> None:
        if event not in self._registered:
            self.client.on(event, self._dispatcher(event))
            self._registered.add(event)
        self._handlers[event] = handler
    
    def remove_all_listeners(self) -> None:
        self._handlers.clear()
    
    def _dispatcher(self, event: str):
        async def dispatch(*args):
            handler = self._handlers.get(event)
            if handler is None:
                return
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
        return dispatch
    
    async def connect(self) -> None:
        """Open the connection; a refused connection is reported as ``connect_error``."""
        try:
            await self.client.connect(
                self.target.url_with_query,
                headers=self.target.headers,
                transports=["websocket"],
                socketio_path=self.target.path,
            )
        except SocketConnectionError as e:
            logger.warning("Log socket connection failed: %s", e)
            await self._connect_failed(e)
        except ValueError as e:
            # Handshake headers or URL that cannot be encoded, e.g. a non-ASCII token.
            logger.warning("Log socket request could not be encoded: %s", e)
            await self._connect_failed(SocketConnectionError(UNENCODABLE_REQUEST_MESSAGE))
    
    async def _connect_failed(self, error: Exception) -> None:
        handler = self._handlers.get("connect_error")
        if handler is not None:
            result = handler(error)
            if inspect.isawaitable(result):
                await result
    
    async def disconnect(self) -> None:
        await self.client.disconnect()


def socketio_factory(target: SocketTarget) -> LogSocket:
    return SocketIOLogSocket(target)
