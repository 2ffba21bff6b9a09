"""
Normalization of inbound log stream payloads.
"""

from typing import Any, List

# Object fields that may carry a log line, checked in this order.
LOG_LINE_FIELDS = ("message", "log", "data", "line", "stdout", "stderr")

SOCKET_ERROR_FALLBACK = "Failed to connect to log stream."


def normalize_log_payload(payload: Any) -> List[str]:
    """
    Turn one inbound message into zero or more log lines.
    
    Accepts a string, a list (non-string items are dropped) or an object
    with one of LOG_LINE_FIELDS as a string. Anything else yields no lines.
    """
    if isinstance(payload, str):
        return [payload]
    
    if isinstance(payload, (list, tuple)):
        return [item for item in payload if isinstance(item, str)]
    
    if isinstance(payload, dict):
        for name in LOG_LINE_FIELDS:
            value = payload.get(name)
            if isinstance(value, str):
                return [value]
    
    return []


def format_socket_error(error: Any) -> str:
    """Human-readable message for a socket error event payload."""
    if not error:
        return SOCKET_ERROR_FALLBACK
    if isinstance(error, str):
        return error
    if isinstance(error, Exception):
        return str(error) or SOCKET_ERROR_FALLBACK
    if isinstance(error, dict):
        for name in ("message", "detail", "error"):
            value = error.get(name)
            if isinstance(value, str) and value:
                return value
    return SOCKET_ERROR_FALLBACK
