"""
Identity-only user lookups and account management.
"""

from typing import Any, Dict, List, Optional

from shared.logging import get_logger
from ..auth.models import CanonicalUser
from ..auth.verification import VerificationResolver
from ..kratos.client import KratosClient
from ..kratos.models import IdentityView, SessionSummary


class UserDirectory:
    """CanonicalUser views over the Kratos admin API.

    Users built here come from the identity record alone, so ``active`` is
    always False; only session introspection reports a live session.
    """

    def __init__(self, kratos_client: KratosClient,
                 verification_resolver: Optional[VerificationResolver] = None):
        self.kratos_client = kratos_client
        self.verification_resolver = verification_resolver or VerificationResolver(kratos_client)
        self.logger = get_logger("identity.user_directory")

    async def _to_user(self, identity: IdentityView) -> CanonicalUser:
        email_verified = await self.verification_resolver.resolve_email_verified(identity.id)
        return CanonicalUser.from_identity(identity, email_verified=email_verified)

    async def get_user(self, user_id: str) -> CanonicalUser:
        """Get a user by identity ID."""
        identity = await self.kratos_client.get_identity(user_id)
        return await self._to_user(identity)

    async def update_user(self, user_id: str, traits: Dict[str, Any]) -> CanonicalUser:
        """Replace a user's traits and return the re-read user."""
        identity = await self.kratos_client.update_identity(user_id, traits)
        self.logger.info("User traits replaced", user_id=user_id, fields=sorted(traits))
        return await self._to_user(identity)

    async def delete_user(self, user_id: str) -> None:
        """Delete a user's identity."""
        await self.kratos_client.delete_identity(user_id)

    async def list_user_sessions(self, user_id: str) -> List[SessionSummary]:
        """List a user's sessions."""
        return await self.kratos_client.list_sessions(user_id)

    async def revoke_session(self, session_id: str) -> None:
        """Revoke a session."""
        await self.kratos_client.revoke_session(session_id)
