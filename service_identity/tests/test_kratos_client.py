"""
Unit tests for the Kratos client.
"""

import asyncio
import json

import httpx
import pytest

from service_identity.app.kratos.client import KratosClient
from shared.errors import (
    EmptyCredentialError,
    GatewayTransportError,
    IdentityDeleteError,
    IdentityNotFoundError,
    IdentityUpdateError,
    InvalidSessionError,
    SessionListError,
    SessionRevokeError,
)
from shared.test_helpers import (
    create_mock_identity,
    create_mock_session,
    create_recovery_address,
    create_verifiable_address,
)

PUBLIC_URL = "http://kratos-public:4433"
ADMIN_URL = "http://kratos-admin:4434"


class RecordingHandler:
    """httpx.MockTransport handler returning queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class StallingTransport(httpx.AsyncBaseTransport):
    """Transport whose requests never complete until cancelled."""

    def __init__(self):
        self.started = asyncio.Event()
        self.cancelled = False

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.started.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return httpx.Response(200)


def make_client(handler, **kwargs) -> KratosClient:
    return KratosClient(PUBLIC_URL, ADMIN_URL, transport=httpx.MockTransport(handler), **kwargs)


class TestValidateSession:
    """Test cases for KratosClient.validate_session."""

    @pytest.fixture
    def identity(self):
        """Identity payload."""
        return create_mock_identity(
            identity_id="u1",
            traits={"email": "a@b.com", "plan_notes": {"tier": 2}},
            verifiable_addresses=[create_verifiable_address("a@b.com")]
        )

    @pytest.mark.asyncio
    async def test_validate_session_success(self, identity):
        """Active session is returned verbatim."""
        session = create_mock_session(identity=identity, session_id="s1")
        handler = RecordingHandler(httpx.Response(200, json=session))
        client = make_client(handler)

        result = await client.validate_session("abc")

        assert result.id == "s1"
        assert result.active is True
        assert result.identity.id == "u1"
        assert result.identity.traits == {"email": "a@b.com", "plan_notes": {"tier": 2}}
        assert result.identity.verifiable_addresses[0].verified is True

        request = handler.requests[0]
        assert request.method == "GET"
        assert str(request.url) == f"{PUBLIC_URL}/sessions/whoami"
        assert request.headers["X-Session-Token"] == "abc"

    @pytest.mark.asyncio
    async def test_empty_token_rejected_without_call(self):
        """Empty token fails before any request is made."""
        handler = RecordingHandler()
        client = make_client(handler)

        with pytest.raises(EmptyCredentialError):
            await client.validate_session("")

        assert handler.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403, 404, 500])
    async def test_non_200_is_invalid_session(self, status_code):
        """Any non-200 introspection status is an invalid session."""
        handler = RecordingHandler(httpx.Response(status_code, json={"error": {"code": status_code}}))
        client = make_client(handler)

        with pytest.raises(InvalidSessionError) as exc_info:
            await client.validate_session("abc")

        assert exc_info.value.details["status_code"] == status_code

    @pytest.mark.asyncio
    async def test_inactive_session_is_invalid(self, identity):
        """Inactive sessions are rejected even with a 200 status."""
        session = create_mock_session(identity=identity, active=False)
        client = make_client(RecordingHandler(httpx.Response(200, json=session)))

        with pytest.raises(InvalidSessionError):
            await client.validate_session("abc")

    @pytest.mark.asyncio
    async def test_session_without_identity_is_invalid(self):
        """A session not bound to an identity cannot authenticate anyone."""
        session = create_mock_session(identity=None)
        client = make_client(RecordingHandler(httpx.Response(200, json=session)))

        with pytest.raises(InvalidSessionError):
            await client.validate_session("abc")

    @pytest.mark.asyncio
    async def test_connect_error_is_transport_error(self):
        """Network failures map to GatewayTransportError."""
        handler = RecordingHandler(httpx.ConnectError("connection refused"))
        client = make_client(handler)

        with pytest.raises(GatewayTransportError) as exc_info:
            await client.validate_session("abc")

        assert exc_info.value.details["operation"] == "validate_session"

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self):
        """Timeouts map to GatewayTransportError."""
        client = make_client(RecordingHandler(httpx.ReadTimeout("timed out")))

        with pytest.raises(GatewayTransportError):
            await client.validate_session("abc")

    @pytest.mark.asyncio
    async def test_malformed_payload_is_transport_error(self):
        """A 200 with an unparseable body is a protocol failure."""
        client = make_client(RecordingHandler(httpx.Response(200, content=b"<html>oops</html>")))

        with pytest.raises(GatewayTransportError):
            await client.validate_session("abc")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("active", ["true", "yes", "on", 1, "1"])
    async def test_non_boolean_active_is_transport_error(self, identity, active):
        """Only a JSON boolean counts as an active flag."""
        session = create_mock_session(identity=identity)
        session["active"] = active
        client = make_client(RecordingHandler(httpx.Response(200, json=session)))

        with pytest.raises(GatewayTransportError):
            await client.validate_session("abc")

    @pytest.mark.asyncio
    async def test_cancellation_aborts_request(self):
        """Cancelling the caller cancels the in-flight request."""
        transport = StallingTransport()
        client = KratosClient(PUBLIC_URL, ADMIN_URL, transport=transport)

        task = asyncio.create_task(client.validate_session("abc"))
        await asyncio.wait_for(transport.started.wait(), timeout=5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert transport.cancelled is True

    @pytest.mark.asyncio
    async def test_records_gateway_metrics(self, identity, metrics):
        """Each call is counted by operation and status."""
        session = create_mock_session(identity=identity)
        client = make_client(RecordingHandler(httpx.Response(200, json=session)), metrics=metrics)

        await client.validate_session("abc")

        assert metrics.registry.get_sample_value(
            "identity_gateway_requests_total",
            {"operation": "validate_session", "status": "200"}
        ) == 1.0


class TestIdentityAdmin:
    """Test cases for the admin identity operations."""

    @pytest.mark.asyncio
    async def test_get_identity_success(self):
        """Identity record is parsed, addresses included."""
        identity = create_mock_identity(
            identity_id="u1",
            recovery_addresses=[create_recovery_address("a@b.com")]
        )
        handler = RecordingHandler(httpx.Response(200, json=identity))
        client = make_client(handler)

        result = await client.get_identity("u1")

        assert result.id == "u1"
        assert result.recovery_addresses[0].via == "email"
        assert str(handler.requests[0].url) == f"{ADMIN_URL}/admin/identities/u1"

    @pytest.mark.asyncio
    async def test_get_identity_null_addresses(self):
        """Null address lists are read as empty."""
        identity = create_mock_identity(identity_id="u1")
        identity["verifiable_addresses"] = None
        identity["recovery_addresses"] = None
        client = make_client(RecordingHandler(httpx.Response(200, json=identity)))

        result = await client.get_identity("u1")

        assert result.verifiable_addresses == []
        assert result.recovery_addresses == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("verified", ["true", "yes", "on", 1, "1"])
    async def test_get_identity_non_boolean_verified(self, verified):
        """Only a JSON boolean counts as a verified flag."""
        address = create_verifiable_address("a@b.com")
        address["verified"] = verified
        identity = create_mock_identity(identity_id="u1", verifiable_addresses=[address])
        client = make_client(RecordingHandler(httpx.Response(200, json=identity)))

        with pytest.raises(GatewayTransportError):
            await client.get_identity("u1")

    @pytest.mark.asyncio
    async def test_get_identity_not_found(self):
        """Non-200 status means not found."""
        client = make_client(RecordingHandler(httpx.Response(404, json={"error": {"code": 404}})))

        with pytest.raises(IdentityNotFoundError):
            await client.get_identity("missing")

    @pytest.mark.asyncio
    async def test_get_identity_empty_id(self):
        """An empty ID is never sent to the admin API."""
        handler = RecordingHandler()
        client = make_client(handler)

        with pytest.raises(IdentityNotFoundError):
            await client.get_identity("")

        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_get_identity_escapes_id(self):
        """Identity IDs are path-escaped."""
        handler = RecordingHandler(httpx.Response(200, json=create_mock_identity(identity_id="a/b")))
        client = make_client(handler)

        await client.get_identity("a/b")

        assert handler.requests[0].url.raw_path == b"/admin/identities/a%2Fb"

    @pytest.mark.asyncio
    async def test_get_identity_transport_error(self):
        """Network failures are transport errors, not not-found."""
        client = make_client(RecordingHandler(httpx.ConnectError("refused")))

        with pytest.raises(GatewayTransportError):
            await client.get_identity("u1")

    @pytest.mark.asyncio
    async def test_admin_token_sent(self):
        """Admin calls carry the configured API token."""
        handler = RecordingHandler(httpx.Response(200, json=create_mock_identity(identity_id="u1")))
        client = make_client(handler, admin_token="ory_pat_123")

        await client.get_identity("u1")

        assert handler.requests[0].headers["Authorization"] == "Bearer ory_pat_123"

    @pytest.mark.asyncio
    async def test_update_identity_reads_after_write(self):
        """Update replaces traits then returns the re-read record."""
        traits = {"email": "new@b.com", "first_name": "New"}
        reread = create_mock_identity(identity_id="u1", traits=traits)
        handler = RecordingHandler(
            httpx.Response(200, json=create_mock_identity(identity_id="u1", traits={"stale": "body"})),
            httpx.Response(200, json=reread)
        )
        client = make_client(handler)

        result = await client.update_identity("u1", traits)

        assert result.traits == traits
        put, get = handler.requests
        assert put.method == "PUT"
        assert json.loads(put.content) == {"traits": traits}
        assert get.method == "GET"
        assert str(get.url) == f"{ADMIN_URL}/admin/identities/u1"

    @pytest.mark.asyncio
    async def test_update_identity_with_schema_and_state(self):
        """Optional schema and state are forwarded."""
        handler = RecordingHandler(
            httpx.Response(200, json=create_mock_identity(identity_id="u1")),
            httpx.Response(200, json=create_mock_identity(identity_id="u1"))
        )
        client = make_client(handler)

        await client.update_identity("u1", {"email": "a@b.com"}, schema_id="default", state="active")

        assert json.loads(handler.requests[0].content) == {
            "traits": {"email": "a@b.com"},
            "schema_id": "default",
            "state": "active"
        }

    @pytest.mark.asyncio
    async def test_update_identity_rejected(self):
        """Non-200 update fails without re-reading."""
        handler = RecordingHandler(httpx.Response(400, json={"error": {"code": 400}}))
        client = make_client(handler)

        with pytest.raises(IdentityUpdateError):
            await client.update_identity("u1", {"email": "bad"})

        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_delete_identity(self):
        """204 is the only success status for delete."""
        handler = RecordingHandler(httpx.Response(204))
        client = make_client(handler)

        await client.delete_identity("u1")

        assert handler.requests[0].method == "DELETE"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [200, 404, 500])
    async def test_delete_identity_rejected(self, status_code):
        """Anything but 204 is a failed delete."""
        client = make_client(RecordingHandler(httpx.Response(status_code)))

        with pytest.raises(IdentityDeleteError):
            await client.delete_identity("u1")


class TestSessionAdmin:
    """Test cases for admin session operations."""

    @pytest.mark.asyncio
    async def test_list_sessions(self):
        """Sessions are listed as summaries."""
        sessions = [create_mock_session(session_id="s1"), create_mock_session(session_id="s2", active=False)]
        handler = RecordingHandler(httpx.Response(200, json=sessions))
        client = make_client(handler)

        result = await client.list_sessions("u1")

        assert [s.id for s in result] == ["s1", "s2"]
        assert [s.active for s in result] == [True, False]
        assert str(handler.requests[0].url) == f"{ADMIN_URL}/admin/identities/u1/sessions"

    @pytest.mark.asyncio
    async def test_list_sessions_rejected(self):
        """Non-200 listing fails."""
        client = make_client(RecordingHandler(httpx.Response(404)))

        with pytest.raises(SessionListError):
            await client.list_sessions("u1")

    @pytest.mark.asyncio
    async def test_list_sessions_malformed(self):
        """A non-list body is a protocol failure."""
        client = make_client(RecordingHandler(httpx.Response(200, json={"sessions": []})))

        with pytest.raises(GatewayTransportError):
            await client.list_sessions("u1")

    @pytest.mark.asyncio
    async def test_revoke_session(self):
        """Revocation disables the session through the admin API."""
        handler = RecordingHandler(httpx.Response(204))
        client = make_client(handler)

        await client.revoke_session("s1")

        request = handler.requests[0]
        assert request.method == "DELETE"
        assert str(request.url) == f"{ADMIN_URL}/admin/sessions/s1"

    @pytest.mark.asyncio
    async def test_revoke_session_rejected(self):
        """Anything but 204 is a failed revocation."""
        client = make_client(RecordingHandler(httpx.Response(400)))

        with pytest.raises(SessionRevokeError):
            await client.revoke_session("s1")

    @pytest.mark.asyncio
    async def test_is_alive(self):
        """Liveness reflects the public health endpoint."""
        assert await make_client(RecordingHandler(httpx.Response(200, json={"status": "ok"}))).is_alive() is True
        assert await make_client(RecordingHandler(httpx.ConnectError("refused"))).is_alive() is False
