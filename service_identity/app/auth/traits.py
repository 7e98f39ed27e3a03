"""
Projection of free-form Kratos identity traits into fixed string fields.
"""

from collections.abc import Mapping
from typing import Any, Dict

TRAIT_FIELDS = (
    "email",
    "username",
    "first_name",
    "last_name",
    "phone",
    "subscription_plan",
    "avatar",
)


def project(traits: Any, field: str) -> str:
    """Return ``traits[field]`` when it is a string, ``""`` otherwise.

    Total over its input: a missing bag, a bag that is not a mapping, an
    absent key and a non-string value all map to ``""``.
    """
    if not isinstance(traits, Mapping):
        return ""
    value = traits.get(field)
    if isinstance(value, str):
        return value
    return ""


def project_traits(traits: Any) -> Dict[str, str]:
    """Project every recognized trait field."""
    return {field: project(traits, field) for field in TRAIT_FIELDS}
