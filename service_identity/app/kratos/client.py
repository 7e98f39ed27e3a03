"""
Ory Kratos client for the identity service.
"""

import time
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.tracing import trace_operation
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
from .models import IdentityView, SessionSummary, SessionView

ModelT = TypeVar("ModelT", bound=BaseModel)


class KratosClient:
    """Client for the Kratos public (session) and admin (identity) APIs.

    Every call opens its own ``httpx.AsyncClient`` bounded by ``timeout``;
    cancelling the awaiting task aborts the in-flight request. There is no
    retry here, callers own their retry policy.
    """

    def __init__(self,
                 public_url: str,
                 admin_url: str,
                 timeout: float = 10.0,
                 admin_token: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.public_url = public_url.rstrip("/")
        self.admin_url = admin_url.rstrip("/")
        self.timeout = timeout
        self.admin_token = admin_token
        self.metrics = metrics
        self._transport = transport
        self.logger = get_logger("identity.kratos_client")

    def _admin_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.admin_token:
            headers["Authorization"] = f"Bearer {self.admin_token}"
        return headers

    async def _request(self, operation: str, base_url: str, method: str, path: str,
                       **kwargs: Any) -> httpx.Response:
        """Send one request, mapping every transport failure to GatewayTransportError."""
        start_time = time.time()
        status = "error"
        with trace_operation(f"kratos.{operation}", **{"kratos.operation": operation}) as span:
            try:
                async with httpx.AsyncClient(base_url=base_url, timeout=self.timeout,
                                             transport=self._transport) as client:
                    response = await client.request(method, path, **kwargs)
                status = str(response.status_code)
                span.set_attribute("http.status_code", response.status_code)
                return response
            except httpx.HTTPError as e:
                self.logger.error(
                    "Identity provider HTTP error",
                    operation=operation,
                    error=str(e)
                )
                raise GatewayTransportError(
                    details={"operation": operation, "http_error": str(e)}
                ) from e
            finally:
                if self.metrics is not None:
                    self.metrics.record_gateway_call(operation, status, time.time() - start_time)

    def _parse(self, model: Type[ModelT], response: httpx.Response, operation: str) -> ModelT:
        try:
            return model.model_validate(response.json())
        except ValueError as e:
            self.logger.error("Malformed identity provider payload", operation=operation, error=str(e))
            raise GatewayTransportError(
                "Malformed identity provider response",
                details={"operation": operation}
            ) from e

    async def validate_session(self, token: str) -> SessionView:
        """Introspect a session token.

        Returns the provider's session payload verbatim.
        """
        if not token:
            raise EmptyCredentialError()

        response = await self._request(
            "validate_session",
            self.public_url,
            "GET",
            "/sessions/whoami",
            headers={"X-Session-Token": token, "Accept": "application/json"}
        )

        if response.status_code != 200:
            self.logger.warning("Session rejected by identity provider", status_code=response.status_code)
            raise InvalidSessionError(details={"status_code": response.status_code})

        session = self._parse(SessionView, response, "validate_session")

        if not session.active:
            self.logger.warning("Session is not active", session_id=session.id)
            raise InvalidSessionError("Session is not active", details={"session_id": session.id})

        if session.identity is None or not session.identity.id:
            raise InvalidSessionError("Session has no identity", details={"session_id": session.id})

        return session

    async def get_identity(self, identity_id: str) -> IdentityView:
        """Fetch an identity record from the admin API."""
        if not identity_id:
            raise IdentityNotFoundError(details={"identity_id": identity_id})

        response = await self._request(
            "get_identity",
            self.admin_url,
            "GET",
            f"/admin/identities/{quote(identity_id, safe='')}",
            headers=self._admin_headers()
        )

        if response.status_code != 200:
            raise IdentityNotFoundError(
                details={"identity_id": identity_id, "status_code": response.status_code}
            )

        return self._parse(IdentityView, response, "get_identity")

    async def update_identity(self, identity_id: str, traits: Dict[str, Any],
                              schema_id: Optional[str] = None,
                              state: Optional[str] = None) -> IdentityView:
        """Replace an identity's traits wholesale.

        The returned record is re-read after the write so it reflects the
        provider's fully resolved state (verification status included).
        """
        body: Dict[str, Any] = {"traits": traits}
        if schema_id:
            body["schema_id"] = schema_id
        if state:
            body["state"] = state

        response = await self._request(
            "update_identity",
            self.admin_url,
            "PUT",
            f"/admin/identities/{quote(identity_id, safe='')}",
            headers=self._admin_headers(),
            json=body
        )

        if response.status_code != 200:
            self.logger.warning(
                "Identity update rejected",
                identity_id=identity_id,
                status_code=response.status_code
            )
            raise IdentityUpdateError(
                details={"identity_id": identity_id, "status_code": response.status_code}
            )

        return await self.get_identity(identity_id)

    async def delete_identity(self, identity_id: str) -> None:
        """Delete an identity."""
        response = await self._request(
            "delete_identity",
            self.admin_url,
            "DELETE",
            f"/admin/identities/{quote(identity_id, safe='')}",
            headers=self._admin_headers()
        )

        if response.status_code != 204:
            raise IdentityDeleteError(
                details={"identity_id": identity_id, "status_code": response.status_code}
            )

        self.logger.info("Identity deleted", identity_id=identity_id)

    async def list_sessions(self, identity_id: str) -> List[SessionSummary]:
        """List the sessions of an identity."""
        response = await self._request(
            "list_sessions",
            self.admin_url,
            "GET",
            f"/admin/identities/{quote(identity_id, safe='')}/sessions",
            headers=self._admin_headers()
        )

        if response.status_code != 200:
            raise SessionListError(
                details={"identity_id": identity_id, "status_code": response.status_code}
            )

        try:
            payload = response.json()
            if not isinstance(payload, list):
                raise ValueError("expected a list of sessions")
            return [SessionSummary.model_validate(item) for item in payload]
        except ValueError as e:
            self.logger.error("Malformed identity provider payload", operation="list_sessions", error=str(e))
            raise GatewayTransportError(
                "Malformed identity provider response",
                details={"operation": "list_sessions"}
            ) from e

    async def revoke_session(self, session_id: str) -> None:
        """Disable a session."""
        response = await self._request(
            "revoke_session",
            self.admin_url,
            "DELETE",
            f"/admin/sessions/{quote(session_id, safe='')}",
            headers=self._admin_headers()
        )

        if response.status_code != 204:
            raise SessionRevokeError(
                details={"session_id": session_id, "status_code": response.status_code}
            )

        self.logger.info("Session revoked", session_id=session_id)

    async def is_alive(self) -> bool:
        """Check the public API liveness endpoint."""
        try:
            response = await self._request("health", self.public_url, "GET", "/health/alive")
        except GatewayTransportError:
            return False
        return response.status_code == 200
