"""
Typed decoding of response payloads.

A payload either decodes into the expected model (``Ok``) or is reported as
``Malformed`` with the raw value kept for diagnostics; callers never probe
arbitrary dict shapes themselves.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful result."""
    value: T


@dataclass(frozen=True)
class Malformed:
    """A payload that arrived but did not match the expected shape."""
    raw: Any = field(repr=False)
    reason: str


Decoded = Union[Ok[T], Malformed]


def decode(
    target: Any,
    payload: Any,
    unwrap: Optional[Callable[[Any], Any]] = None,
) -> "Decoded":
    """
    Validate ``payload`` against ``target``.
    
    Args:
        target: A pydantic model class or any type TypeAdapter accepts
        payload: The decoded JSON body
        unwrap: Optional function selecting the interesting part of the payload
            (e.g. an envelope's list); returning None marks it malformed
            
    Returns:
        Ok with the validated value, or Malformed
    """
    candidate = unwrap(payload) if unwrap else payload
    if candidate is None and payload is not None and unwrap is not None:
        return Malformed(raw=payload, reason="unexpected payload envelope")
    
    try:
        value = TypeAdapter(target).validate_python(candidate)
    except ValidationError as e:
        return Malformed(raw=payload, reason=str(e))
    return Ok(value)
