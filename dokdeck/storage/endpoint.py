"""
Server endpoint normalization and storage.
"""

import logging
import re
from typing import Optional

from dokdeck.storage.kv import KeyValueStorage, SERVER_URL_STORAGE_KEY

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_TRAILING_SLASHES_RE = re.compile(r"/+$")

# Cache marker for "storage not read yet"; None means "read, nothing stored".
_UNKNOWN = object()


def normalize_server_url(value: Optional[str]) -> Optional[str]:
    """
    Normalize a user-entered server address.
    
    Trims whitespace, prefixes ``https://`` when no scheme is given and strips
    trailing slashes. Blank input normalizes to None.
    """
    if not value:
        return None
    
    trimmed = value.strip()
    if not trimmed:
        return None
    
    match = _SCHEME_RE.match(trimmed)
    if match:
        scheme, rest = trimmed[:match.end()], trimmed[match.end():]
    else:
        scheme, rest = "https://", trimmed
    
    rest = _TRAILING_SLASHES_RE.sub("", rest)
    # No host left, or whitespace inside the address.
    if not rest.strip("/") or any(ch.isspace() for ch in rest):
        return None
    return f"{scheme}{rest}"


def server_host(endpoint: Optional[str]) -> Optional[str]:
    """Return the endpoint without its scheme."""
    normalized = normalize_server_url(endpoint)
    if not normalized:
        return None
    return _SCHEME_RE.sub("", normalized)


def api_base_url(endpoint: Optional[str], prefix: str = "/api") -> Optional[str]:
    """Return the REST base URL for an endpoint, appending the API prefix once."""
    normalized = normalize_server_url(endpoint)
    if not normalized:
        return None
    
    prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
    if not prefix or normalized.endswith(prefix):
        return normalized
    return f"{normalized}{prefix}"


class EndpointStore:
    """
    Holds the normalized server endpoint.
    
    The stored value is read once and then served from memory. Writes update
    the cache before touching storage so sequential readers never see a stale
    value.
    """
    
    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._cached = _UNKNOWN
    
    async def get(self) -> Optional[str]:
        """Return the stored endpoint, reading storage only on first use."""
        if self._cached is not _UNKNOWN:
            return self._cached
        
        stored = await self.storage.get_string(SERVER_URL_STORAGE_KEY)
        self._cached = normalize_server_url(stored)
        return self._cached
    
    async def set(self, value: Optional[str]) -> Optional[str]:
        """
        Normalize and persist an endpoint.
        
        Args:
            value: Raw or normalized server address
            
        Returns:
            The normalized endpoint, or None if the value was blank (in which
            case the stored endpoint is removed)
        """
        normalized = normalize_server_url(value)
        
        if not normalized:
            self._cached = None
            await self.storage.remove(SERVER_URL_STORAGE_KEY)
            return None
        
        self._cached = normalized
        await self.storage.set(SERVER_URL_STORAGE_KEY, normalized)
        return normalized
    
    async def clear(self) -> None:
        """Remove the stored endpoint; the next get() re-reads storage."""
        self._cached = _UNKNOWN
        await self.storage.remove(SERVER_URL_STORAGE_KEY)
        logger.debug("Cleared stored server endpoint")
