"""
Capped in-memory log line buffer.
"""

from collections import deque
from typing import Iterable, Iterator, List

DEFAULT_LOG_BUFFER_LIMIT = 1000


class LogBuffer:
    """Ordered log lines; once full, the oldest lines are dropped first."""
    
    def __init__(self, limit: int = DEFAULT_LOG_BUFFER_LIMIT):
        if limit <= 0:
            raise ValueError("limit must be positive")
        self.limit = limit
        self._lines = deque(maxlen=limit)
    
    def extend(self, lines: Iterable[str]) -> None:
        self._lines.extend(lines)
    
    def append(self, line: str) -> None:
        self._lines.append(line)
    
    def clear(self) -> None:
        self._lines.clear()
    
    def lines(self) -> List[str]:
        """Snapshot of the buffered lines, oldest first."""
        return list(self._lines)
    
    def __len__(self) -> int:
        return len(self._lines)
    
    def __iter__(self) -> Iterator[str]:
        return iter(list(self._lines))
