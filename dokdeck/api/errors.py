"""
Request error taxonomy.

Every failed HTTP call is reduced to a RequestError so callers only ever
branch on ``kind``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

import httpx

logger = logging.getLogger(__name__)

NOT_FOUND_ON_PROBE_MESSAGE = "Invalid Dokploy server URL. The /api endpoint was not found."
NETWORK_UNREACHABLE_MESSAGE = "Unable to connect to server."
ENDPOINT_NOT_CONFIGURED_MESSAGE = "Dokploy server URL is not configured."
UNENCODABLE_HEADER_MESSAGE = "Request headers contain characters that cannot be sent."


class ErrorKind(str, Enum):
    """Failure classes shared by every HTTP-backed flow."""
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "notFound"
    NETWORK_UNREACHABLE = "networkUnreachable"
    GENERIC = "generic"


@dataclass(frozen=True)
class FieldError:
    """A server-side validation message for one input field."""
    field: str
    message: str


@dataclass(frozen=True)
class RequestError:
    """Normalized failure of an HTTP call."""
    kind: ErrorKind
    message: str
    field_errors: List[FieldError] = field(default_factory=list)
    status_code: Optional[int] = None
    raw: Any = field(default=None, repr=False, compare=False)
    
    @property
    def is_validation(self) -> bool:
        return self.kind == ErrorKind.VALIDATION
    
    def field_messages(self) -> dict:
        """Map of field name to message, for attaching errors to form inputs."""
        return {e.field: e.message for e in self.field_errors}


def extract_message(body: Any, fallback: str) -> str:
    """
    Pick the most useful human-readable message from an error body.
    
    Precedence: the body itself if it is a string, a string ``detail``,
    a string ``message``, the string items of a ``message`` list joined by
    newlines, the first string value in the body, then ``fallback``.
    """
    if body is None:
        return fallback
    
    if isinstance(body, str):
        return body if body.strip() else fallback
    
    if not isinstance(body, dict):
        return fallback
    
    detail = body.get("detail")
    if isinstance(detail, str):
        return detail
    
    message = body.get("message")
    if isinstance(message, str):
        return message
    
    if isinstance(message, list):
        parts = [item for item in message if isinstance(item, str)]
        if parts:
            return "\n".join(parts)
    
    for value in body.values():
        if isinstance(value, str):
            return value
    
    return fallback


def parse_field_errors(body: Any) -> List[FieldError]:
    """Read ``{"message": [{"field": ..., "message": ...}]}`` validation bodies."""
    if not isinstance(body, dict):
        return []
    
    items = body.get("message")
    if not isinstance(items, list):
        return []
    
    errors = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = item.get("field")
        message = item.get("message")
        if isinstance(name, str) and isinstance(message, str):
            errors.append(FieldError(field=name, message=message))
    return errors


def decode_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to text."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def classify_status(
    status_code: int,
    body: Any,
    *,
    fallback: str,
    probe: bool = False,
    raw: Any = None,
) -> RequestError:
    """Classify a non-2xx response."""
    message = extract_message(body, fallback)
    
    if status_code == 401:
        return RequestError(ErrorKind.UNAUTHORIZED, message, status_code=status_code, raw=raw)
    
    if status_code == 404 and probe:
        return RequestError(
            ErrorKind.NOT_FOUND,
            NOT_FOUND_ON_PROBE_MESSAGE,
            status_code=status_code,
            raw=raw,
        )
    
    if status_code == 422:
        field_errors = parse_field_errors(body)
        if field_errors:
            return RequestError(
                ErrorKind.VALIDATION,
                message,
                field_errors=field_errors,
                status_code=status_code,
                raw=raw,
            )
    
    return RequestError(ErrorKind.GENERIC, message, status_code=status_code, raw=raw)


def classify_http_error(exc: Exception, *, probe: bool = False) -> RequestError:
    """
    Convert an httpx exception into a RequestError.
    
    Args:
        exc: The exception raised while sending the request or checking its status
        probe: True when the call is a credential validation probe; a 404 then
            means the server address is wrong
            
    Returns:
        RequestError with its kind derived from the presence and status of a response
    """
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return classify_status(
            response.status_code,
            decode_body(response),
            fallback=f"Request failed with status code {response.status_code}",
            probe=probe,
            raw=exc,
        )
    
    if isinstance(exc, httpx.TransportError):
        # Connect, read and pool timeouts land here too: nothing came back.
        return RequestError(
            ErrorKind.NETWORK_UNREACHABLE,
            str(exc) or NETWORK_UNREACHABLE_MESSAGE,
            raw=exc,
        )
    
    return RequestError(ErrorKind.GENERIC, str(exc) or exc.__class__.__name__, raw=exc)
