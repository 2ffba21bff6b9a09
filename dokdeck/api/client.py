"""
HTTP client for the Dokploy REST API.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

import httpx

from dokdeck.api.decode import Ok
from dokdeck.api.errors import (
    ENDPOINT_NOT_CONFIGURED_MESSAGE,
    UNENCODABLE_HEADER_MESSAGE,
    ErrorKind,
    RequestError,
    classify_http_error,
    decode_body,
)
from dokdeck.config import Settings, get_settings
from dokdeck.storage.credentials import CredentialStore
from dokdeck.storage.endpoint import EndpointStore, api_base_url

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
IDENTITY_HEADERS = {API_KEY_HEADER, "authorization"}

UnauthorizedHandler = Callable[[str], Awaitable[None]]
ApiResult = Union[Ok[Any], RequestError]


def _has_identity_header(headers: Mapping[str, str]) -> bool:
    return any(name.lower() in IDENTITY_HEADERS for name in headers)


def _join_url(base: str, path: str) -> str:
    if path.lower().startswith(("http://", "https://")):
        return path
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


class HttpClient:
    """
    Async client that resolves the server and token for every call.
    
    Features:
    - Endpoint read from the endpoint store per request, overridable per call
    - Stored token attached as ``x-api-key`` unless the caller sends its own
      identity header
    - Fixed request timeout
    - Failures returned as RequestError values, never raised
    """
    
    def __init__(
        self,
        endpoint_store: EndpointStore,
        credential_store: CredentialStore,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.endpoint_store = endpoint_store
        self.credential_store = credential_store
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.request_timeout_seconds),
        )
        self._unauthorized_handler: Optional[UnauthorizedHandler] = None
    
    def set_unauthorized_handler(self, handler: Optional[UnauthorizedHandler]) -> None:
        """Register the coroutine run with the stored token when the server rejects it."""
        self._unauthorized_handler = handler
    
    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        endpoint: Optional[str] = None,
        token: Optional[str] = None,
        probe: bool = False,
    ) -> ApiResult:
        """
        Execute a request against the configured server.
        
        Args:
            method: HTTP method
            path: Procedure path relative to the API base, e.g. "project.all"
            params: Query parameters
            json: JSON body
            headers: Extra headers; an ``x-api-key`` or ``Authorization`` header
                here replaces the stored token
            endpoint: Server to use instead of the stored endpoint
            token: Token to use instead of the stored one
            probe: Whether this call validates a candidate token and server
            
        Returns:
            Ok with the decoded body, or a RequestError
        """
        server = endpoint if endpoint is not None else await self.endpoint_store.get()
        base_url = api_base_url(server, self.settings.api_path_prefix)
        if not base_url:
            return RequestError(ErrorKind.GENERIC, ENDPOINT_NOT_CONFIGURED_MESSAGE)
        
        request_headers: Dict[str, str] = {"Accept": "application/json"}
        request_headers.update(headers or {})
        
        stored_token: Optional[str] = None
        if not _has_identity_header(request_headers):
            if token:
                request_headers[API_KEY_HEADER] = token
            else:
                stored = await self.credential_store.get()
                if stored:
                    request_headers[API_KEY_HEADER] = stored
                    stored_token = stored
        
        url = _join_url(base_url, path)
        logger.debug("%s %s", method.upper(), url)
        
        try:
            response = await self.client.request(
                method.upper(),
                url,
                params=params,
                json=json,
                headers=request_headers,
                timeout=self.settings.request_timeout_seconds,
            )
            response.raise_for_status()
        except UnicodeEncodeError as e:
            # Header values must be ASCII, e.g. a token pasted with smart quotes.
            logger.warning("%s %s failed: unencodable header (%s)", method.upper(), url, e.reason)
            return RequestError(ErrorKind.GENERIC, UNENCODABLE_HEADER_MESSAGE, raw=e)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = classify_http_error(e, probe=probe)
            logger.warning(
                "%s %s failed: %s (status %s)",
                method.upper(), url, error.kind.value, error.status_code,
            )
            if (
                error.kind == ErrorKind.UNAUTHORIZED
                and stored_token is not None
                and self._unauthorized_handler is not None
            ):
                await self._unauthorized_handler(stored_token)
            return error
        
        return Ok(decode_body(response))
    
    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None, **kwargs) -> ApiResult:
        return await self.request("GET", path, params=params, **kwargs)
    
    async def post(self, path: str, data: Any = None, **kwargs) -> ApiResult:
        return await self.request("POST", path, json=data, **kwargs)
    
    async def put(self, path: str, data: Any = None, **kwargs) -> ApiResult:
        return await self.request("PUT", path, json=data, **kwargs)
    
    async def patch(self, path: str, data: Any = None, **kwargs) -> ApiResult:
        return await self.request("PATCH", path, json=data, **kwargs)
    
    async def delete(self, path: str, params: Optional[Mapping[str, Any]] = None, **kwargs) -> ApiResult:
        return await self.request("DELETE", path, params=params, **kwargs)
    
    async def aclose(self) -> None:
        """Close the underlying connection pool if this client created it."""
        if self._owns_client:
            await self.client.aclose()
    
    async def __aenter__(self) -> "HttpClient":
        return self
    
    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
