"""
Authentication modules for the Identity Service.

This package contains:
- traits.py: Total projection of free-form identity traits
- credentials.py: Session token extraction (header / cookie precedence)
- verification.py: Email verification lookup with recovery-address fallback
- authenticator.py: Session introspection into a CanonicalUser
- principal.py: Per-request principal scope and middleware
"""

from .authenticator import SessionAuthenticator
from .credentials import extract_credential
from .models import CanonicalUser, Credential, CredentialTransport
from .principal import (
    RequestScope,
    SessionMiddleware,
    current_user,
    get_principal,
    get_request_scope,
    require_principal,
)
from .traits import TRAIT_FIELDS, project, project_traits
from .verification import VerificationResolver

__all__ = [
    "CanonicalUser",
    "Credential",
    "CredentialTransport",
    "RequestScope",
    "SessionAuthenticator",
    "SessionMiddleware",
    "TRAIT_FIELDS",
    "VerificationResolver",
    "current_user",
    "extract_credential",
    "get_principal",
    "get_request_scope",
    "project",
    "project_traits",
    "require_principal",
]
