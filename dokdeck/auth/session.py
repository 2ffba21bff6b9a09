"""
Session manager - the single authority on whether the user is signed in.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from dokdeck.api.client import HttpClient
from dokdeck.api.decode import Malformed
from dokdeck.api.errors import (
    ENDPOINT_NOT_CONFIGURED_MESSAGE,
    NETWORK_UNREACHABLE_MESSAGE,
    NOT_FOUND_ON_PROBE_MESSAGE,
    ErrorKind,
    RequestError,
)
from dokdeck.api.resources import fetch_profile, fetch_projects
from dokdeck.models.session import Credential, Session, SessionStatus
from dokdeck.storage.credentials import CredentialStore, ProfileCache
from dokdeck.storage.endpoint import EndpointStore, normalize_server_url

logger = logging.getLogger(__name__)

TOKEN_REQUIRED_MESSAGE = "Personal access token is required."
TOKEN_CHARACTERS_MESSAGE = "Personal access token contains invalid characters."
SERVER_NOT_CONFIGURED_MESSAGE = ENDPOINT_NOT_CONFIGURED_MESSAGE
INVALID_TOKEN_MESSAGE = "Invalid personal access token."
INVALID_SERVER_MESSAGE = NOT_FOUND_ON_PROBE_MESSAGE
UNEXPECTED_RESPONSE_MESSAGE = "Unexpected response from server. Check the server URL."

SessionListener = Callable[[Session], None]


class AuthenticationError(Exception):
    """A sign-in attempt failed; ``message`` is safe to show next to the form."""
    
    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.GENERIC,
        error: Optional[RequestError] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.error = error


def _probe_failure_message(error: RequestError) -> str:
    if error.kind == ErrorKind.UNAUTHORIZED:
        return INVALID_TOKEN_MESSAGE
    if error.kind == ErrorKind.NOT_FOUND:
        return INVALID_SERVER_MESSAGE
    if error.kind == ErrorKind.NETWORK_UNREACHABLE:
        return NETWORK_UNREACHABLE_MESSAGE
    return error.message


class SessionManager:
    """
    Owns the session state machine.
    
    States move from CHECKING to AUTHENTICATED or UNAUTHENTICATED and between
    those two afterwards. Every change is pushed to subscribers; UI code reads
    ``session`` but never mutates it.
    """
    
    def __init__(
        self,
        endpoint_store: EndpointStore,
        credential_store: CredentialStore,
        http_client: HttpClient,
        profile_cache: Optional[ProfileCache] = None,
    ):
        self.endpoint_store = endpoint_store
        self.credential_store = credential_store
        self.http_client = http_client
        self.profile_cache = profile_cache or ProfileCache(credential_store.storage)
        self.profile_refresh: Optional[asyncio.Task] = None
        self._session = Session()
        self._listeners: List[SessionListener] = []
        
        http_client.set_unauthorized_handler(self.handle_unauthorized)
    
    @property
    def session(self) -> Session:
        return self._session
    
    @property
    def status(self) -> SessionStatus:
        return self._session.status
    
    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener called with every new session snapshot.
        
        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)
        
        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        
        return unsubscribe
    
    def _set_session(self, session: Session) -> None:
        previous = self._session.status
        self._session = session
        if previous != session.status:
            logger.info("Session %s -> %s", previous.value, session.status.value)
        for listener in list(self._listeners):
            listener(session)
    
    async def initialize(self) -> None:
        """
        Restore the session from storage.
        
        A stored token marks the session authenticated right away; the profile
        is then refreshed in the background. A failed refresh leaves the
        session alone unless the server rejects the token.
        """
        token = await self.credential_store.get()
        if not token:
            self._set_session(Session(status=SessionStatus.UNAUTHENTICATED))
            return
        
        endpoint = await self.endpoint_store.get()
        profile = await self.profile_cache.get()
        self._set_session(Session(
            status=SessionStatus.AUTHENTICATED,
            credential=Credential(token=token, endpoint=endpoint),
            profile=profile,
        ))
        self.profile_refresh = asyncio.create_task(self.load_profile())
    
    async def authenticate_with_pat(self, pat: str, server_url: Optional[str] = None) -> Session:
        """
        Validate a token against a server and sign in with it.
        
        Args:
            pat: Personal access token as entered
            server_url: Server address as entered; None reuses the stored one
            
        Returns:
            The new authenticated session
            
        Raises:
            AuthenticationError: With a user-facing message. A failed
                validation writes nothing to storage; a token the server
                rejects right after validation leaves the user signed out.
        """
        token = (pat or "").strip()
        if server_url is None:
            endpoint = await self.endpoint_store.get()
        else:
            endpoint = normalize_server_url(server_url)
        
        if not token:
            raise AuthenticationError(TOKEN_REQUIRED_MESSAGE, ErrorKind.VALIDATION)
        if not token.isascii():
            raise AuthenticationError(TOKEN_CHARACTERS_MESSAGE, ErrorKind.VALIDATION)
        if not endpoint:
            raise AuthenticationError(SERVER_NOT_CONFIGURED_MESSAGE, ErrorKind.VALIDATION)
        
        result = await fetch_projects(
            self.http_client,
            endpoint=endpoint,
            token=token,
            probe=True,
        )
        if isinstance(result, RequestError):
            logger.info("Token validation failed: %s", result.kind.value)
            raise AuthenticationError(_probe_failure_message(result), result.kind, result)
        if isinstance(result, Malformed):
            logger.warning("Token validation got an unexpected payload: %s", result.reason)
            raise AuthenticationError(UNEXPECTED_RESPONSE_MESSAGE)
        
        await self.endpoint_store.set(endpoint)
        await self.credential_store.set(token)
        await self.profile_cache.clear()
        
        self._set_session(Session(
            status=SessionStatus.AUTHENTICATED,
            credential=Credential(token=token, endpoint=endpoint),
        ))
        await self.load_profile()
        if not self._session.is_authenticated:
            # The profile call was rejected and signed the user out.
            raise AuthenticationError(INVALID_TOKEN_MESSAGE, ErrorKind.UNAUTHORIZED)
        return self._session
    
    async def load_profile(self) -> None:
        """Fetch the profile and attach it to the current session."""
        credential = self._session.credential
        result = await fetch_profile(self.http_client)
        
        if isinstance(result, RequestError):
            logger.warning("Failed to load profile: %s", result.message)
            return
        if isinstance(result, Malformed):
            logger.warning("Failed to load profile: %s", result.reason)
            return
        
        # Signed out, or signed in again, while the request was in flight.
        if credential is None or self._session.credential != credential:
            return
        
        await self.profile_cache.set(result.value)
        self._set_session(self._session.model_copy(update={"profile": result.value}))
    
    async def logout(self) -> None:
        """Forget the token and profile. The server address is kept for the next sign-in."""
        await self.credential_store.clear()
        await self.profile_cache.clear()
        self._set_session(Session(status=SessionStatus.UNAUTHENTICATED))
    
    async def handle_unauthorized(self, token: Optional[str] = None) -> None:
        """
        Called by the HTTP client when the stored token is rejected.
        
        A rejection of a token that is no longer stored comes from a request
        sent before a logout or a new sign-in, and is ignored.
        """
        if token is not None and token != await self.credential_store.get():
            logger.info("Ignoring rejection of a token that is no longer stored")
            return
        
        logger.warning("Stored token was rejected by the server, signing out")
        await self.logout()
