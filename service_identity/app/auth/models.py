"""
Canonical authenticated user model.

CanonicalUser is what business logic sees of a Kratos identity: fixed string
fields projected from the free-form trait bag, plus the derived
``email_verified`` and ``active`` flags. Handlers never need to inspect the
raw session or identity payloads.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..kratos.models import IdentityView
from .traits import project_traits


class CredentialTransport(str, Enum):
    """Where a session credential was found on the request."""
    HEADER_BEARER = "header_bearer"
    HEADER_CUSTOM = "header_custom"
    COOKIE = "cookie"


class Credential(BaseModel):
    """Opaque session token plus the transport it arrived on."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(repr=False)
    transport: CredentialTransport


class CanonicalUser(BaseModel):
    """
    Normalized identity exposed to request handlers.

    Attributes:
        id: Stable Kratos identity ID. Never empty.
        email_verified: True only when the verification lookup proved it.
        active: Live-session state. Always False for identity-only lookups.
        raw_traits: The provider's trait bag, untouched, for fields outside
                    the fixed set.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    email: str = ""
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    subscription_plan: str = ""
    avatar: str = ""
    email_verified: bool = False
    active: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    raw_traits: Any = None

    @field_validator("id")
    @classmethod
    def _id_required(cls, value: str) -> str:
        if not value:
            raise ValueError("identity id must not be empty")
        return value

    @classmethod
    def from_identity(
        cls,
        identity: IdentityView,
        active: bool = False,
        email_verified: bool = False,
    ) -> "CanonicalUser":
        """Build a user from a Kratos identity record."""
        return cls(
            id=identity.id,
            active=active,
            email_verified=email_verified,
            created_at=identity.created_at,
            updated_at=identity.updated_at,
            raw_traits=identity.traits,
            **project_traits(identity.traits),
        )

    def to_log_dict(self) -> Dict[str, Any]:
        """Safe subset of the user for log events."""
        return {
            "user_id": self.id,
            "email_verified": self.email_verified,
            "active": self.active,
        }
