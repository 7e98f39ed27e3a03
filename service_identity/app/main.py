"""
Identity service for the Kratos Session Access Layer.
"""

from typing import Any, Dict, List, Optional

from fastapi import Depends, Response
from pydantic import BaseModel

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import IdentityNotFoundError
from .auth import CanonicalUser, SessionAuthenticator, SessionMiddleware, VerificationResolver, current_user
from .kratos import KratosClient, SessionSummary
from .users import UserDirectory


class TraitsUpdateRequest(BaseModel):
    """Request model for replacing identity traits."""
    traits: Dict[str, Any]


class IdentityService(BaseService):
    """Identity service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, kratos_client: Optional[KratosClient] = None):
        self._kratos_client = kratos_client
        super().__init__("identity", 8020, config=config)
        self._setup_identity_routes()

    def _setup_service_middleware(self):
        """Build the Kratos pipeline and enforce sessions on every route."""
        if self._kratos_client is None:
            self._kratos_client = KratosClient(
                public_url=self.config.kratos_public_url,
                admin_url=self.config.kratos_admin_url,
                timeout=self.config.kratos_timeout_seconds,
                admin_token=self.config.kratos_admin_token,
                metrics=self.metrics
            )
        self.kratos_client = self._kratos_client

        self.verification_resolver = VerificationResolver(self.kratos_client, self.metrics)
        self.authenticator = SessionAuthenticator(
            self.kratos_client,
            self.verification_resolver,
            metrics=self.metrics
        )
        self.user_directory = UserDirectory(self.kratos_client, self.verification_resolver)

        self.app.middleware("http")(
            SessionMiddleware(self.authenticator, bypass_paths=self.config.auth_bypass_paths)
        )

    def _setup_identity_routes(self):
        """Set up identity-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "identity",
                "message": "Kratos Session Access Layer - Identity Service",
                "version": "1.0.0"
            }

        @self.app.get("/me", response_model=CanonicalUser)
        async def get_me(user: CanonicalUser = Depends(current_user)):
            """Return the authenticated user."""
            return user

        @self.app.put("/me/traits", response_model=CanonicalUser)
        async def update_my_traits(request: TraitsUpdateRequest, user: CanonicalUser = Depends(current_user)):
            """Replace the authenticated user's traits."""
            return await self.user_directory.update_user(user.id, request.traits)

        @self.app.delete("/me", status_code=204)
        async def delete_me(user: CanonicalUser = Depends(current_user)):
            """Delete the authenticated user's identity."""
            await self.user_directory.delete_user(user.id)
            return Response(status_code=204)

        @self.app.get("/me/sessions", response_model=List[SessionSummary])
        async def list_my_sessions(user: CanonicalUser = Depends(current_user)):
            """List the authenticated user's sessions."""
            return await self.user_directory.list_user_sessions(user.id)

        @self.app.delete("/me/sessions/{session_id}", status_code=204)
        async def revoke_my_session(session_id: str, user: CanonicalUser = Depends(current_user)):
            """Revoke one of the authenticated user's sessions."""
            sessions = await self.user_directory.list_user_sessions(user.id)
            if not any(session.id == session_id for session in sessions):
                raise IdentityNotFoundError(
                    "Session not found",
                    details={"session_id": session_id}
                )

            await self.user_directory.revoke_session(session_id)
            self.logger.info("Session revoked by owner", user_id=user.id, session_id=session_id)
            return Response(status_code=204)

    async def _check_dependencies(self):
        """Check identity dependencies."""
        return {
            "kratos": "ok" if await self.kratos_client.is_alive() else "error"
        }


def create_app(config: Optional[ServiceConfig] = None, kratos_client: Optional[KratosClient] = None):
    """Create FastAPI application."""
    service = IdentityService(config=config, kratos_client=kratos_client)
    return service.app


if __name__ == "__main__":
    service = IdentityService()
    service.run()
