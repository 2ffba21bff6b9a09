"""
Personal access token and cached profile storage.
"""

import json
import logging
from typing import Optional

from pydantic import ValidationError

from dokdeck.models.session import Profile
from dokdeck.storage.kv import KeyValueStorage, PAT_STORAGE_KEY, USER_STORAGE_KEY

logger = logging.getLogger(__name__)

_UNKNOWN = object()


class CredentialStore:
    """
    Holds the personal access token as an opaque string.
    
    Like the endpoint store, the token is read from storage once and served
    from memory afterwards; writes update the cache first.
    """
    
    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._cached = _UNKNOWN
    
    async def get(self) -> Optional[str]:
        if self._cached is not _UNKNOWN:
            return self._cached
        
        stored = await self.storage.get_string(PAT_STORAGE_KEY)
        self._cached = stored or None
        return self._cached
    
    async def set(self, token: str) -> str:
        self._cached = token
        await self.storage.set(PAT_STORAGE_KEY, token)
        return token
    
    async def clear(self) -> None:
        self._cached = None
        await self.storage.remove(PAT_STORAGE_KEY)


class ProfileCache:
    """JSON copy of the last fetched profile, shown while a refresh runs."""
    
    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
    
    async def get(self) -> Optional[Profile]:
        raw = await self.storage.get_string(USER_STORAGE_KEY)
        if not raw:
            return None
        
        try:
            return Profile.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Dropping unreadable cached profile: %s", e)
            await self.storage.remove(USER_STORAGE_KEY)
            return None
    
    async def set(self, profile: Profile) -> None:
        await self.storage.set(
            USER_STORAGE_KEY,
            profile.model_dump_json(by_alias=True),
        )
    
    async def clear(self) -> None:
        await self.storage.remove(USER_STORAGE_KEY)
