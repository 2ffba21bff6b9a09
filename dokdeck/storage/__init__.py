"""
Durable storage for the endpoint, token and cached profile.
"""

from dokdeck.storage.kv import (
    KeyValueStorage,
    MemoryKeyValueStorage,
    SqliteKeyValueStorage,
)
from dokdeck.storage.endpoint import (
    EndpointStore,
    api_base_url,
    normalize_server_url,
    server_host,
)
from dokdeck.storage.credentials import CredentialStore, ProfileCache

__all__ = [
    "KeyValueStorage",
    "MemoryKeyValueStorage",
    "SqliteKeyValueStorage",
    "EndpointStore",
    "api_base_url",
    "normalize_server_url",
    "server_host",
    "CredentialStore",
    "ProfileCache",
]
