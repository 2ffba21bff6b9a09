"""
Log streaming parameter and status models.
"""

import re
from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


class StreamStatus(str, Enum):
    """Connection status of a log stream."""
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


def parse_tail(value: object) -> Optional[int]:
    """
    Parse a tail count.
    
    Accepts an int or a string starting with an integer ("50", " 50 ").
    Returns None unless the result is a positive integer.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if not isinstance(value, str):
        return None
    
    match = _LEADING_INT_RE.match(value)
    if not match:
        return None
    parsed = int(match.group(1))
    return parsed if parsed > 0 else None


class LogStreamParams(BaseModel):
    """Applied stream parameters. Always valid."""
    
    model_config = ConfigDict(frozen=True)
    
    tail: int = Field(default=100, gt=0, description="Number of past lines to replay")
    since: str = Field(default="all", description="Time window, e.g. 'all' or '5m'")
    search: str = Field(default="", description="Free-text filter applied server-side")
    run_type: str = Field(default="native", description="Container runtime type")
    
    def to_query(self, container_id: str) -> Dict[str, str]:
        """Build the socket connection query for a container."""
        return {
            "containerId": container_id,
            "tail": str(self.tail),
            "since": self.since or "all",
            "search": self.search or "",
            "runType": self.run_type or "native",
        }


class LogParamsDraft(BaseModel):
    """Parameters as typed by the user; may be invalid until applied."""
    
    tail: str = "100"
    since: str = "all"
    search: str = ""
    run_type: str = "native"
    
    @classmethod
    def from_params(cls, params: LogStreamParams) -> "LogParamsDraft":
        return cls(
            tail=str(params.tail),
            since=params.since,
            search=params.search,
            run_type=params.run_type,
        )
    
    def tail_error(self) -> Optional[str]:
        """Return a user-facing message if ``tail`` cannot be applied."""
        if not self.tail.strip():
            return "Tail is required."
        if parse_tail(self.tail) is None:
            return "Tail must be a positive number."
        return None
    
    def to_params(self) -> LogStreamParams:
        """
        Convert to applied parameters.
        
        Raises:
            ValueError: If ``tail`` is not a positive integer
        """
        error = self.tail_error()
        if error:
            raise ValueError(error)
        return LogStreamParams(
            tail=parse_tail(self.tail),
            since=self.since or "all",
            search=self.search,
            run_type=self.run_type or "native",
        )
