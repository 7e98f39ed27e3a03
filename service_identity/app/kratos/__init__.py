"""Ory Kratos integration: HTTP client and wire models."""

from .client import KratosClient
from .models import IdentityView, RecoveryAddress, SessionSummary, SessionView, VerifiableAddress

__all__ = [
    "KratosClient",
    "IdentityView",
    "RecoveryAddress",
    "SessionSummary",
    "SessionView",
    "VerifiableAddress",
]
