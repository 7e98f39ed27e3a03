"""
Wire models for the Ory Kratos public and admin APIs.

These mirror the provider's payloads as returned, without normalization.
Unknown fields are kept so callers can still reach them.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator


class VerifiableAddress(BaseModel):
    """Contact address with an explicit verified flag."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    value: str = ""
    via: str = ""
    verified: StrictBool = False
    status: Optional[str] = None
    verified_at: Optional[datetime] = None


class RecoveryAddress(BaseModel):
    """Contact address registered for account recovery."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    value: str = ""
    via: str = ""


class IdentityView(BaseModel):
    """Identity record as returned by the admin API."""

    model_config = ConfigDict(extra="allow")

    id: str
    schema_id: Optional[str] = None
    state: Optional[str] = None
    traits: Any = None
    verifiable_addresses: List[VerifiableAddress] = Field(default_factory=list)
    recovery_addresses: List[RecoveryAddress] = Field(default_factory=list)
    metadata_public: Any = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("verifiable_addresses", "recovery_addresses", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        # Kratos sends null instead of [] for identities without addresses
        return [] if value is None else value


class SessionSummary(BaseModel):
    """Session entry as listed by the admin API."""

    model_config = ConfigDict(extra="allow")

    id: str
    active: StrictBool = False
    expires_at: Optional[datetime] = None
    authenticated_at: Optional[datetime] = None
    issued_at: Optional[datetime] = None
    authenticator_assurance_level: Optional[str] = None
    devices: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("devices", mode="before")
    @classmethod
    def _null_devices(cls, value: Any) -> Any:
        return [] if value is None else value


class SessionView(SessionSummary):
    """Session introspection result, with the bound identity."""

    identity: Optional[IdentityView] = None
