"""
Live container log streaming.
"""

from dokdeck.logs.buffer import LogBuffer
from dokdeck.logs.payload import format_socket_error, normalize_log_payload
from dokdeck.logs.socket import LogSocket, SocketIOLogSocket, SocketTarget
from dokdeck.logs.stream import LogParamsError, LogStreamClient
from dokdeck.logs.target import LogTarget, resolve_log_target

__all__ = [
    "LogBuffer",
    "format_socket_error",
    "normalize_log_payload",
    "LogSocket",
    "SocketIOLogSocket",
    "SocketTarget",
    "LogParamsError",
    "LogStreamClient",
    "LogTarget",
    "resolve_log_target",
]
