"""
Mock Ory Kratos server providing session introspection and identity admin endpoints.
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from fastapi import FastAPI, Header, Cookie, Body, Response
from fastapi.responses import JSONResponse

from shared.logging import get_logger
from shared.test_helpers import create_mock_identity, create_mock_session, build_identity, TestDataFactory


def _error(status_code: int, reason: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": status_code, "status": reason, "message": message}}
    )


class MockKratosServer:
    """Mock Kratos server implementation.

    Holds identities and sessions in memory. Sessions are keyed by their
    session token; the public whoami endpoint accepts the token in the
    ``X-Session-Token`` header or the ``ory_kratos_session`` cookie.
    """

    def __init__(self, port: int = 4433, seed: bool = False):
        self.port = port
        self.logger = get_logger("mock.kratos")
        self.app = FastAPI(title="Mock Kratos", version="1.0.0")

        self.identities: Dict[str, Dict[str, Any]] = {}
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.session_identity: Dict[str, str] = {}

        if seed:
            for test_identity in TestDataFactory.create_test_identities():
                self.identities[test_identity.identity_id] = build_identity(test_identity)
                self.add_session(f"token-{test_identity.identity_id}", test_identity.identity_id)

        self._setup_routes()

    def add_identity(self, identity: Optional[Dict[str, Any]] = None, **kwargs) -> Dict[str, Any]:
        """Store an identity payload; kwargs go to create_mock_identity."""
        identity = identity or create_mock_identity(**kwargs)
        self.identities[identity["id"]] = identity
        return identity

    def add_session(self, token: str, identity_id: str, active: bool = True,
                    session_id: Optional[str] = None) -> Dict[str, Any]:
        """Register a session token for an existing identity."""
        session = create_mock_session(session_id=session_id or str(uuid.uuid4()), active=active)
        self.sessions[token] = session
        self.session_identity[token] = identity_id
        return session

    def _sessions_of(self, identity_id: str):
        return [
            session for token, session in self.sessions.items()
            if self.session_identity.get(token) == identity_id
        ]

    def _setup_routes(self):
        """Set up mock Kratos routes."""

        @self.app.get("/health/alive")
        async def alive():
            return {"status": "ok"}

        @self.app.get("/sessions/whoami")
        async def whoami(
            x_session_token: Optional[str] = Header(None),
            ory_kratos_session: Optional[str] = Cookie(None)
        ):
            token = x_session_token or ory_kratos_session
            session = self.sessions.get(token or "")
            if session is None:
                return _error(401, "Unauthorized", "No valid session credentials found in the request.")

            identity = self.identities.get(self.session_identity[token])
            if identity is None:
                return _error(401, "Unauthorized", "Session identity no longer exists.")

            payload = copy.deepcopy(session)
            payload["identity"] = copy.deepcopy(identity)
            return payload

        @self.app.get("/admin/identities/{identity_id}")
        async def get_identity(identity_id: str):
            identity = self.identities.get(identity_id)
            if identity is None:
                return _error(404, "Not Found", "Unable to locate the resource")
            return identity

        @self.app.put("/admin/identities/{identity_id}")
        async def update_identity(identity_id: str, body: Dict[str, Any] = Body(...)):
            identity = self.identities.get(identity_id)
            if identity is None:
                return _error(404, "Not Found", "Unable to locate the resource")
            if not isinstance(body.get("traits"), dict):
                return _error(400, "Bad Request", "traits must be an object")

            identity["traits"] = body["traits"]
            for key in ("schema_id", "state"):
                if body.get(key):
                    identity[key] = body[key]
            identity["updated_at"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
            self.logger.info("Mock identity updated", identity_id=identity_id)
            return identity

        @self.app.delete("/admin/identities/{identity_id}")
        async def delete_identity(identity_id: str):
            if self.identities.pop(identity_id, None) is None:
                return _error(404, "Not Found", "Unable to locate the resource")
            for token in [t for t, owner in self.session_identity.items() if owner == identity_id]:
                self.sessions.pop(token, None)
                self.session_identity.pop(token, None)
            return Response(status_code=204)

        @self.app.get("/admin/identities/{identity_id}/sessions")
        async def list_identity_sessions(identity_id: str):
            if identity_id not in self.identities:
                return _error(404, "Not Found", "Unable to locate the resource")
            return self._sessions_of(identity_id)

        @self.app.delete("/admin/sessions/{session_id}")
        async def disable_session(session_id: str):
            for session in self.sessions.values():
                if session["id"] == session_id:
                    session["active"] = False
                    return Response(status_code=204)
            return _error(404, "Not Found", "Unable to locate the resource")


def create_app(seed: bool = True) -> FastAPI:
    """Create the mock Kratos application."""
    return MockKratosServer(seed=seed).app


if __name__ == "__main__":
    import uvicorn
    server = MockKratosServer(seed=True)
    uvicorn.run(server.app, host="0.0.0.0", port=server.port)
