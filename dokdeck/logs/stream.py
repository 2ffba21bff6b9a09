"""
Live container log stream client.

One LogStreamClient belongs to one mounted log view. It owns at most one
socket at a time: every (re)connect closes the previous socket before the
next one is opened, and events from a closed socket are ignored.
"""

import logging
from typing import Any, Callable, List, Mapping, Optional, Union

from dokdeck.api.errors import ENDPOINT_NOT_CONFIGURED_MESSAGE
from dokdeck.config import Settings, get_settings
from dokdeck.logs.buffer import LogBuffer
from dokdeck.logs.payload import format_socket_error, normalize_log_payload
from dokdeck.logs.socket import LogSocket, SocketFactory, SocketTarget, socketio_factory
from dokdeck.logs.target import LogTarget
from dokdeck.models.logs import LogParamsDraft, LogStreamParams, StreamStatus
from dokdeck.storage.credentials import CredentialStore
from dokdeck.storage.endpoint import EndpointStore

logger = logging.getLogger(__name__)

CONTAINER_NOT_FOUND_MESSAGE = "Container not found for this application."
MISSING_TOKEN_MESSAGE = "Missing personal access token."
SERVER_NOT_CONFIGURED_MESSAGE = ENDPOINT_NOT_CONFIGURED_MESSAGE

LOG_EVENTS = ("message", "log", "data", "stdout", "stderr")

StreamListener = Callable[["LogStreamClient"], None]


class LogParamsError(ValueError):
    """Stream parameters were rejected before any connection attempt."""
    
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _draft_from_mapping(values: Mapping[str, Any], current: LogStreamParams) -> LogParamsDraft:
    """Overlay user-supplied values on the currently applied parameters."""
    def text(*names: str, default: str) -> str:
        for name in names:
            if name in values and values[name] is not None:
                return str(values[name])
        return default
    
    return LogParamsDraft(
        tail=text("tail", default=str(current.tail)),
        since=text("since", default=current.since),
        search=text("search", default=current.search),
        run_type=text("run_type", "runType", default=current.run_type),
    )


class LogStreamClient:
    """
    Streams one container's logs into a capped buffer.
    
    Status moves idle -> connecting -> connected, connected -> disconnected
    on close, and any state -> error on failure. There is no automatic
    reconnect: after a drop the stream stays disconnected or in error until
    ``connect()`` runs again.
    """
    
    def __init__(
        self,
        credential_store: CredentialStore,
        endpoint_store: EndpointStore,
        settings: Optional[Settings] = None,
        socket_factory: Optional[SocketFactory] = None,
        params: Optional[LogStreamParams] = None,
    ):
        self.settings = settings or get_settings()
        self.credential_store = credential_store
        self.endpoint_store = endpoint_store
        self.socket_factory = socket_factory or socketio_factory
        self.params = params or LogStreamParams(
            tail=self.settings.default_log_tail,
            since=self.settings.default_log_since,
            run_type=self.settings.default_log_run_type,
        )
        self.buffer = LogBuffer(self.settings.log_buffer_limit)
        self.status = StreamStatus.IDLE
        self.error_message: Optional[str] = None
        self.container_id: Optional[str] = None
        self.active = False
        
        self._socket: Optional[LogSocket] = None
        self._generation = 0
        self._listeners: List[StreamListener] = []
    
    @property
    def lines(self) -> List[str]:
        return self.buffer.lines()
    
    @property
    def is_open(self) -> bool:
        return self._socket is not None
    
    def subscribe(self, listener: StreamListener) -> Callable[[], None]:
        """Call ``listener`` after every status or buffer change."""
        self._listeners.append(listener)
        
        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        
        return unsubscribe
    
    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
    
    def _set_status(self, status: StreamStatus, error: Optional[str] = None) -> None:
        self.status = status
        self.error_message = error
        self._notify()
    
    def _fail(self, message: str) -> None:
        logger.warning("Log stream error: %s", message)
        self._set_status(StreamStatus.ERROR, message)
    
    async def connect(
        self,
        container_id: Optional[str] = None,
        params: Optional[LogStreamParams] = None,
        token: Optional[str] = None,
    ) -> None:
        """
        Open the stream, replacing any open socket.
        
        Args:
            container_id: Container to stream; defaults to the current target
            params: Applied parameters; defaults to the current ones
            token: Access token; defaults to the stored token
        """
        if container_id is not None:
            self.container_id = container_id
        if params is not None:
            self.params = params
        
        target = self.container_id
        token = token or await self.credential_store.get()
        endpoint = await self.endpoint_store.get()
        
        await self.disconnect()
        
        if not target:
            self._fail(CONTAINER_NOT_FOUND_MESSAGE)
            return
        if not token:
            self._fail(MISSING_TOKEN_MESSAGE)
            return
        if not endpoint:
            self._fail(SERVER_NOT_CONFIGURED_MESSAGE)
            return
        
        self._generation += 1
        generation = self._generation
        self._set_status(StreamStatus.CONNECTING)
        
        socket = self.socket_factory(SocketTarget(
            url=endpoint,
            path=self.settings.log_stream_path,
            query=self.params.to_query(target),
            headers={"x-api-key": token},
        ))
        self._socket = socket
        
        socket.on("connect", self._guarded(generation, self._on_connect))
        socket.on("disconnect", self._guarded(generation, self._on_disconnect))
        socket.on("connect_error", self._guarded(generation, self._on_error))
        socket.on("error", self._guarded(generation, self._on_error))
        for event in LOG_EVENTS:
            socket.on(event, self._guarded(generation, self._on_payload))
        
        logger.info("Opening log stream for container %s", target)
        await socket.connect()
        
        if self._socket is not socket:
            # Superseded while the handshake was pending.
            socket.remove_all_listeners()
            await socket.disconnect()
    
    def _guarded(self, generation: int, handler: Callable[..., None]) -> Callable[..., None]:
        def guarded(*args: Any) -> None:
            if generation != self._generation or self._socket is None:
                return
            handler(*args)
        return guarded
    
    def _on_connect(self, *args: Any) -> None:
        logger.info("Log stream connected")
        self._set_status(StreamStatus.CONNECTED)
    
    def _on_disconnect(self, *args: Any) -> None:
        logger.info("Log stream disconnected")
        self._set_status(StreamStatus.DISCONNECTED, self.error_message)
    
    def _on_error(self, *args: Any) -> None:
        self._fail(format_socket_error(args[0] if args else None))
    
    def _on_payload(self, *args: Any) -> None:
        if not args:
            return
        lines = normalize_log_payload(args[0])
        if not lines:
            return
        self.buffer.extend(lines)
        self._notify()
    
    async def apply_params(
        self,
        params: Union[LogParamsDraft, LogStreamParams, Mapping[str, Any]],
    ) -> LogStreamParams:
        """
        Apply new stream parameters and reconnect with them.
        
        The buffer is cleared and a full connect cycle runs.
        
        Raises:
            LogParamsError: If ``tail`` is not a positive integer; nothing
                else changes in that case
        """
        if isinstance(params, LogStreamParams):
            applied = params
        else:
            draft = params if isinstance(params, LogParamsDraft) else _draft_from_mapping(params, self.params)
            error = draft.tail_error()
            if error:
                raise LogParamsError(error)
            applied = draft.to_params()
        
        self.buffer.clear()
        self.params = applied
        self._notify()
        await self.connect()
        return applied
    
    async def disconnect(self) -> None:
        """Close the open socket, if any. Safe to call repeatedly."""
        socket = self._socket
        if socket is None:
            return
        
        self._socket = None
        self._generation += 1
        socket.remove_all_listeners()
        await socket.disconnect()
        self._set_status(StreamStatus.DISCONNECTED)
    
    async def set_active(self, active: bool) -> None:
        """Follow the log view becoming visible or hidden."""
        self.active = active
        if not active:
            await self.disconnect()
        elif self.container_id:
            await self.connect()
    
    async def set_target(self, container_id: Optional[str]) -> None:
        """
        Follow the resolved container changing.
        
        A new container discards buffered lines. While the view is active
        the stream follows the target: a new container reconnects, a lost one
        disconnects.
        """
        if container_id != self.container_id:
            self.buffer.clear()
        self.container_id = container_id
        
        if not self.active:
            return
        if container_id:
            await self.connect()
        else:
            await self.disconnect()
    
    async def attach(self, target: LogTarget) -> None:
        """Apply the outcome of resolve_log_target()."""
        if target.error:
            await self.disconnect()
            self._fail(target.error)
            return
        await self.set_target(target.container_id)
    
    async def close(self) -> None:
        """Tear down for good when the view unmounts."""
        await self.disconnect()
        self.buffer.clear()
        self._listeners.clear()
    
    async def __aenter__(self) -> "LogStreamClient":
        return self
    
    async def __aexit__(self, *exc_info) -> None:
        await self.close()
