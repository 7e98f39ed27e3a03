"""
Per-request principal binding.

SessionMiddleware authenticates each request and binds the resulting
CanonicalUser into a RequestScope stored on the request state. Handlers read
it back through ``get_principal`` / ``require_principal`` or the
``current_user`` FastAPI dependency.
"""

from typing import Iterable, Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.requests import HTTPConnection

from shared.errors import IdentityLayerException, MissingCredentialError, UnauthenticatedError
from shared.logging import get_logger, set_user_context
from .authenticator import SessionAuthenticator
from .models import CanonicalUser

SCOPE_STATE_KEY = "auth_scope"


class RequestScope:
    """Holds the principal of one request. Bound at most once."""

    def __init__(self):
        self._principal: Optional[CanonicalUser] = None

    @property
    def principal(self) -> Optional[CanonicalUser]:
        return self._principal

    def bind(self, user: CanonicalUser) -> None:
        if self._principal is not None:
            raise RuntimeError("A principal is already bound to this request")
        self._principal = user


def get_principal(scope: Optional[RequestScope]) -> Optional[CanonicalUser]:
    """Return the bound principal, or None."""
    if scope is None:
        return None
    return scope.principal


def require_principal(scope: Optional[RequestScope]) -> CanonicalUser:
    """Return the bound principal or raise UnauthenticatedError."""
    user = get_principal(scope)
    if user is None:
        raise UnauthenticatedError()
    return user


def get_request_scope(request: HTTPConnection) -> Optional[RequestScope]:
    """Return the scope SessionMiddleware attached to the request, if any."""
    scope = getattr(request.state, SCOPE_STATE_KEY, None)
    if isinstance(scope, RequestScope):
        return scope
    return None


async def current_user(request: Request) -> CanonicalUser:
    """FastAPI dependency for the authenticated user."""
    return require_principal(get_request_scope(request))


class SessionMiddleware:
    """HTTP middleware enforcing a valid Kratos session.

    Register with ``app.middleware("http")(SessionMiddleware(...))``. Failed
    authentication answers 401 and the downstream handler never runs.
    """

    def __init__(self, authenticator: SessionAuthenticator, bypass_paths: Iterable[str] = ()):
        self.authenticator = authenticator
        self.bypass_paths = frozenset(path.rstrip("/") or "/" for path in bypass_paths)
        self.logger = get_logger("identity.session_middleware")

    def _is_bypass_path(self, path: str) -> bool:
        return (path.rstrip("/") or "/") in self.bypass_paths

    async def __call__(self, request: Request, call_next):
        scope = RequestScope()
        setattr(request.state, SCOPE_STATE_KEY, scope)

        # Let CORS preflight through unchanged
        if request.method.upper() == "OPTIONS" or self._is_bypass_path(request.url.path):
            return await call_next(request)

        try:
            user = await self.authenticator.authenticate(request)
        except MissingCredentialError:
            return PlainTextResponse("Session token required", status_code=401)
        except IdentityLayerException as e:
            self.logger.info("Request rejected", code=e.code, path=request.url.path)
            return PlainTextResponse("Invalid session", status_code=401)

        scope.bind(user)
        set_user_context(user_id=user.id)

        return await call_next(request)
