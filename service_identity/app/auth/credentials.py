"""
Session credential extraction from inbound requests.
"""

from typing import Optional

from starlette.requests import HTTPConnection

from .models import Credential, CredentialTransport

BEARER_PREFIX = "Bearer "
SESSION_TOKEN_HEADER = "X-Session-Token"
SESSION_COOKIE = "ory_kratos_session"


def extract_credential(request: HTTPConnection) -> Optional[Credential]:
    """Pick the session credential of a request, first match wins.

    1. ``Authorization: Bearer <token>`` (case-sensitive prefix)
    2. ``X-Session-Token: <token>`` when non-empty
    3. ``ory_kratos_session`` cookie

    A bearer header with nothing after the prefix still wins and yields an
    empty token. Returns None when no transport carries a credential.
    """
    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith(BEARER_PREFIX):
        return Credential(
            token=authorization[len(BEARER_PREFIX):],
            transport=CredentialTransport.HEADER_BEARER
        )

    session_token = request.headers.get(SESSION_TOKEN_HEADER)
    if session_token:
        return Credential(token=session_token, transport=CredentialTransport.HEADER_CUSTOM)

    cookie = request.cookies.get(SESSION_COOKIE)
    if cookie is not None:
        return Credential(token=cookie, transport=CredentialTransport.COOKIE)

    return None
