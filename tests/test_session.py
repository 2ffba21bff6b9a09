"""
Tests for the session manager.
"""

import asyncio
import json

import httpx
import pytest

from dokdeck.api.errors import ErrorKind
from dokdeck.auth.session import (
    INVALID_SERVER_MESSAGE,
    INVALID_TOKEN_MESSAGE,
    SERVER_NOT_CONFIGURED_MESSAGE,
    TOKEN_CHARACTERS_MESSAGE,
    TOKEN_REQUIRED_MESSAGE,
    UNEXPECTED_RESPONSE_MESSAGE,
    AuthenticationError,
    SessionManager,
)
from dokdeck.models.session import Credential, Session, SessionStatus
from dokdeck.storage.kv import PAT_STORAGE_KEY, SERVER_URL_STORAGE_KEY, USER_STORAGE_KEY


def projects_ok(request):
    return httpx.Response(200, json=[{"id": "1"}])


def profile_ok(request):
    return httpx.Response(200, json={"id": "u1", "email": "ops@example.com"})


@pytest.fixture
def manager(endpoint_store, credential_store, http_client):
    return SessionManager(endpoint_store, credential_store, http_client)


@pytest.fixture
def snapshots(manager):
    seen = []
    manager.subscribe(seen.append)
    return seen


def assert_invariant(session: Session):
    assert (session.status == SessionStatus.AUTHENTICATED) == (session.credential is not None)


class TestSessionModel:
    """Tests for the Session invariant."""
    
    def test_authenticated_requires_credential(self):
        with pytest.raises(ValueError):
            Session(status=SessionStatus.AUTHENTICATED)
    
    def test_unauthenticated_rejects_credential(self):
        with pytest.raises(ValueError):
            Session(status=SessionStatus.UNAUTHENTICATED, credential=Credential(token="abc"))
    
    def test_credential_repr_hides_token(self):
        assert "abc" not in repr(Credential(token="abc", endpoint="https://x"))


class TestInitialize:
    """Tests for restoring the session at start-up."""
    
    @pytest.mark.asyncio
    async def test_starts_checking(self, manager):
        assert manager.status == SessionStatus.CHECKING
    
    @pytest.mark.asyncio
    async def test_no_token_is_unauthenticated(self, manager, handler):
        await manager.initialize()
        
        assert manager.status == SessionStatus.UNAUTHENTICATED
        assert manager.profile_refresh is None
        assert handler.requests == []
    
    @pytest.mark.asyncio
    async def test_stored_token_is_authenticated_before_network(self, manager, storage, handler, snapshots):
        storage.values[PAT_STORAGE_KEY] = "abc"
        storage.values[SERVER_URL_STORAGE_KEY] = "https://cloud.example.com"
        storage.values[USER_STORAGE_KEY] = json.dumps({"id": "u1", "email": "cached@example.com"})
        handler.routes["/auth/me"] = profile_ok
        
        await manager.initialize()
        
        assert manager.status == SessionStatus.AUTHENTICATED
        assert manager.session.credential.token == "abc"
        assert manager.session.profile.email == "cached@example.com"
        
        await manager.profile_refresh
        assert manager.session.profile.email == "ops@example.com"
        assert json.loads(storage.values[USER_STORAGE_KEY])["email"] == "ops@example.com"
        for session in snapshots:
            assert_invariant(session)
    
    @pytest.mark.asyncio
    async def test_profile_failure_keeps_session(self, manager, storage, handler):
        storage.values[PAT_STORAGE_KEY] = "abc"
        storage.values[SERVER_URL_STORAGE_KEY] = "https://cloud.example.com"
        handler.routes["/auth/me"] = lambda request: httpx.Response(500, json={"message": "boom"})
        
        await manager.initialize()
        await manager.profile_refresh
        
        assert manager.status == SessionStatus.AUTHENTICATED
        assert manager.session.profile is None
    
    @pytest.mark.asyncio
    async def test_rejected_token_on_refresh_logs_out(self, manager, storage, handler):
        storage.values[PAT_STORAGE_KEY] = "stale"
        storage.values[SERVER_URL_STORAGE_KEY] = "https://cloud.example.com"
        handler.routes["/auth/me"] = lambda request: httpx.Response(401, json={"message": "Unauthorized"})
        
        await manager.initialize()
        await manager.profile_refresh
        
        assert manager.status == SessionStatus.UNAUTHENTICATED
        assert PAT_STORAGE_KEY not in storage.values


class TestAuthenticateWithPat:
    """Tests for PAT sign-in."""
    
    @pytest.mark.asyncio
    async def test_invalid_token_leaves_storage_untouched(self, manager, storage, handler):
        await manager.initialize()
        handler.routes["/project.all"] = lambda request: httpx.Response(401, json={"message": "Unauthorized"})
        
        with pytest.raises(AuthenticationError) as exc_info:
            await manager.authenticate_with_pat("abc", "cloud.example.com")
        
        assert exc_info.value.message == INVALID_TOKEN_MESSAGE
        assert exc_info.value.kind == ErrorKind.UNAUTHORIZED
        assert manager.status == SessionStatus.UNAUTHENTICATED
        assert storage.writes == []
        assert storage.values == {}
    
    @pytest.mark.asyncio
    async def test_success_persists_endpoint_and_token(self, manager, storage, handler, snapshots):
        await manager.initialize()
        handler.routes["/project.all"] = projects_ok
        handler.routes["/auth/me"] = profile_ok
        
        session = await manager.authenticate_with_pat("  abc  ", "cloud.example.com")
        
        assert session.status == SessionStatus.AUTHENTICATED
        assert storage.values[SERVER_URL_STORAGE_KEY] == "https://cloud.example.com"
        assert storage.values[PAT_STORAGE_KEY] == "abc"
        assert session.profile.email == "ops@example.com"
        
        probe = handler.requests[0]
        assert str(probe.url) == "https://cloud.example.com/api/project.all"
        assert probe.headers["x-api-key"] == "abc"
        for seen in snapshots:
            assert_invariant(seen)
    
    @pytest.mark.asyncio
    async def test_blank_token_fails_fast(self, manager, handler):
        with pytest.raises(AuthenticationError) as exc_info:
            await manager.authenticate_with_pat("   ", "cloud.example.com")
        
        assert exc_info.value.message == TOKEN_REQUIRED_MESSAGE
        assert handler.requests == []
    
    @pytest.mark.asyncio
    async def test_non_ascii_token_fails_fast(self, manager, storage, handler):
        with pytest.raises(AuthenticationError) as exc_info:
            await manager.authenticate_with_pat("abc\u2019", "cloud.example.com")
        
        assert exc_info.value.message == TOKEN_CHARACTERS_MESSAGE
        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert handler.requests == []
        assert storage.values == {}
    
    @pytest.mark.asyncio
    async def test_token_rejected_right_after_validation(self, manager, storage, handler):
        handler.routes["/project.all"] = projects_ok
        handler.routes["/auth/me"] = lambda request: httpx.Response(401, json={"message": "Unauthorized"})
        
        with pytest.raises(AuthenticationError) as exc_info:
            await manager.authenticate_with_pat("abc", "cloud.example.com")
        
        assert exc_info.value.message == INVALID_TOKEN_MESSAGE
        assert exc_info.value.kind == ErrorKind.UNAUTHORIZED
        assert manager.status == SessionStatus.UNAUTHENTICATED
        assert PAT_STORAGE_KEY not in storage.values
    
    @pytest.mark.asyncio
    async def test_missing_server_fails_fast(self, manager, handler):
        with pytest.raises(AuthenticationError) as exc_info:
            await manager.authenticate_with_pat("abc")
        
        assert exc_info.value.message == SERVER_NOT_CONFIGURED_MESSAGE
        assert handler.requests == []
    
    @pytest.mark.asyncio
    async def test_falls_back_to_stored_server(self, manager, storage, handler):
        storage.values[SERVER_URL_STORAGE_KEY] = "https://cloud.example.com"
        handler.routes["/project.all"] = projects_ok
        handler.routes["/auth/me"] = profile_ok
        
        await manager.authenticate_with_pat("abc")
        
        assert handler.requests[0].url.host == "cloud.example.com"
        assert manager.status == SessionStatus.AUTHENTICATED
    
    @pytest.mark.asyncio
    async def test_wrong_server_message(self, manager, handler):
        handler.routes["/project.all"] = lambda request: httpx.Response(404, text="Not Found")
        
        with pytest.raises(AuthenticationError) as exc_info:
            await manager.authenticate_with_pat("abc", "wrong.example.com")
        
        assert exc_info.value.message == INVALID_SERVER_MESSAGE
        assert exc_info.value.kind == ErrorKind.NOT_FOUND
    
    @pytest.mark.asyncio
    async def test_unreachable_server_message(self, manager, handler):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)
        handler.routes["/project.all"] = refuse
        
        with pytest.raises(AuthenticationError) as exc_info:
            await manager.authenticate_with_pat("abc", "down.example.com")
        
        assert exc_info.value.message == "Unable to connect to server."
        assert exc_info.value.kind == ErrorKind.NETWORK_UNREACHABLE
    
    @pytest.mark.asyncio
    async def test_other_failures_surface_server_message(self, manager, handler):
        handler.routes["/project.all"] = lambda request: httpx.Response(
            500, json={"message": "Database is down"}
        )
        
        with pytest.raises(AuthenticationError) as exc_info:
            await manager.authenticate_with_pat("abc", "cloud.example.com")
        
        assert exc_info.value.message == "Database is down"
    
    @pytest.mark.asyncio
    async def test_unexpected_payload_is_rejected(self, manager, storage, handler):
        handler.routes["/project.all"] = lambda request: httpx.Response(200, text="<html>login</html>")
        
        with pytest.raises(AuthenticationError) as exc_info:
            await manager.authenticate_with_pat("abc", "cloud.example.com")
        
        assert exc_info.value.message == UNEXPECTED_RESPONSE_MESSAGE
        assert storage.values == {}
    
    @pytest.mark.asyncio
    async def test_failed_reauthentication_keeps_existing_session(self, manager, storage, handler):
        storage.values[PAT_STORAGE_KEY] = "good"
        storage.values[SERVER_URL_STORAGE_KEY] = "https://cloud.example.com"
        handler.routes["/auth/me"] = profile_ok
        await manager.initialize()
        await manager.profile_refresh
        before = dict(storage.values)
        
        handler.routes["/project.all"] = lambda request: httpx.Response(401, json={"message": "Unauthorized"})
        with pytest.raises(AuthenticationError):
            await manager.authenticate_with_pat("bad", "other.example.com")
        
        assert storage.values == before
        assert manager.status == SessionStatus.AUTHENTICATED
        assert manager.session.credential.token == "good"


class TestLogout:
    """Tests for logout and forced logout."""
    
    @pytest.mark.asyncio
    async def test_logout_keeps_endpoint(self, manager, storage, handler):
        handler.routes["/project.all"] = projects_ok
        handler.routes["/auth/me"] = profile_ok
        await manager.authenticate_with_pat("abc", "cloud.example.com")
        
        await manager.logout()
        
        assert manager.status == SessionStatus.UNAUTHENTICATED
        assert manager.session.credential is None
        assert PAT_STORAGE_KEY not in storage.values
        assert USER_STORAGE_KEY not in storage.values
        assert storage.values[SERVER_URL_STORAGE_KEY] == "https://cloud.example.com"
    
    @pytest.mark.asyncio
    async def test_logout_without_session(self, manager, snapshots):
        await manager.logout()
        
        assert manager.status == SessionStatus.UNAUTHENTICATED
        assert snapshots[-1].status == SessionStatus.UNAUTHENTICATED
    
    @pytest.mark.asyncio
    async def test_unauthorized_mid_session_logs_out(self, manager, storage, handler, http_client):
        handler.routes["/project.all"] = projects_ok
        handler.routes["/auth/me"] = profile_ok
        await manager.authenticate_with_pat("abc", "cloud.example.com")
        
        handler.routes["/project.all"] = lambda request: httpx.Response(401, json={"message": "Unauthorized"})
        result = await http_client.get("project.all")
        
        assert result.kind == ErrorKind.UNAUTHORIZED
        assert manager.status == SessionStatus.UNAUTHENTICATED
        assert PAT_STORAGE_KEY not in storage.values
    
    @pytest.mark.asyncio
    async def test_late_rejection_of_previous_token_is_ignored(self, manager, storage, handler, http_client):
        hold = []
        entered = asyncio.Event()
        release = asyncio.Event()
        
        async def profile(request):
            if hold:
                entered.set()
                await release.wait()
                return httpx.Response(401, json={"message": "Unauthorized"})
            return profile_ok(request)
        handler.routes["/project.all"] = projects_ok
        handler.routes["/auth/me"] = profile
        await manager.authenticate_with_pat("old", "cloud.example.com")
        
        hold.append(True)
        pending = asyncio.create_task(http_client.get("auth/me"))
        await entered.wait()
        hold.clear()
        
        await manager.logout()
        await manager.authenticate_with_pat("new", "cloud.example.com")
        release.set()
        result = await pending
        
        assert result.kind == ErrorKind.UNAUTHORIZED
        assert manager.status == SessionStatus.AUTHENTICATED
        assert manager.session.credential.token == "new"
        assert storage.values[PAT_STORAGE_KEY] == "new"
    
    @pytest.mark.asyncio
    async def test_unsubscribe(self, manager):
        seen = []
        unsubscribe = manager.subscribe(seen.append)
        unsubscribe()
        
        await manager.logout()
        assert seen == []
