"""
Session authentication against Ory Kratos.
"""

from typing import Optional

from starlette.requests import HTTPConnection

from shared.errors import (
    AuthenticationError,
    GatewayTransportError,
    IdentityLayerException,
    MissingCredentialError,
)
from shared.logging import get_logger, set_session_context
from shared.metrics import MetricsCollector
from ..kratos.client import KratosClient
from .credentials import extract_credential
from .models import CanonicalUser
from .verification import VerificationResolver


class SessionAuthenticator:
    """Turn an inbound request into a CanonicalUser.

    Steps run in order and the first failure aborts the attempt:
    extract credential, introspect the session, project traits, resolve
    email verification. Nothing is cached between requests.
    """

    def __init__(self, kratos_client: KratosClient,
                 verification_resolver: Optional[VerificationResolver] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.kratos_client = kratos_client
        self.verification_resolver = verification_resolver or VerificationResolver(kratos_client, metrics)
        self.metrics = metrics
        self.logger = get_logger("identity.authenticator")

    def _record(self, outcome: str):
        if self.metrics is not None:
            self.metrics.record_session_validation(outcome)

    async def authenticate(self, request: HTTPConnection) -> CanonicalUser:
        """Authenticate a request.

        Raises:
            MissingCredentialError: no transport carried a session token.
            InvalidSessionError: Kratos rejected the session or it is inactive.
            GatewayTransportError: Kratos could not be reached.
        """
        credential = extract_credential(request)
        if credential is None or not credential.token:
            self._record("missing_credential")
            raise MissingCredentialError()

        try:
            session = await self.kratos_client.validate_session(credential.token)
        except GatewayTransportError as e:
            self.logger.error("Session validation unavailable", code=e.code, transport=credential.transport.value)
            self._record("transport_error")
            raise
        except AuthenticationError as e:
            self.logger.warning("Session validation failed", code=e.code, transport=credential.transport.value)
            self._record("invalid_session")
            raise
        except IdentityLayerException as e:
            self.logger.error("Session validation error", code=e.code)
            self._record("transport_error")
            raise

        set_session_context(session_id=session.id, credential_transport=credential.transport.value)

        identity = session.identity
        email_verified = await self.verification_resolver.resolve_email_verified(identity.id)

        user = CanonicalUser.from_identity(
            identity,
            active=session.active,
            email_verified=email_verified,
        )

        self._record("success")
        self.logger.info(
            "Session authenticated",
            transport=credential.transport.value,
            **user.to_log_dict()
        )
        return user
