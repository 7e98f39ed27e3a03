"""
Email verification status lookup.
"""

from typing import Optional

from shared.errors import IdentityLayerException
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..kratos.client import KratosClient

EMAIL_CHANNEL = "email"


class VerificationResolver:
    """Resolve whether an identity's email address is verified.

    Kratos deployments do not all populate ``verifiable_addresses``, so the
    lookup falls back to ``recovery_addresses``: an email recovery address
    counts as verified. Any lookup failure resolves to False.
    """

    def __init__(self, kratos_client: KratosClient, metrics: Optional[MetricsCollector] = None):
        self.kratos_client = kratos_client
        self.metrics = metrics
        self.logger = get_logger("identity.verification")

    def _record(self, result: str):
        if self.metrics is not None:
            self.metrics.record_verification_lookup(result)

    async def resolve_email_verified(self, identity_id: str) -> bool:
        """Return True only when the identity record proves a verified email."""
        try:
            identity = await self.kratos_client.get_identity(identity_id)
        except IdentityLayerException as e:
            self.logger.warning(
                "Email verification lookup failed",
                identity_id=identity_id,
                code=e.code
            )
            self._record("lookup_failed")
            return False

        for address in identity.verifiable_addresses:
            if address.via == EMAIL_CHANNEL and address.verified is True:
                self._record("verified")
                return True

        for address in identity.recovery_addresses:
            if address.via == EMAIL_CHANNEL:
                self._record("recovery_fallback")
                return True

        self._record("unverified")
        return False
