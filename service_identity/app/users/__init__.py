"""User directory backed by the Kratos admin API."""

from .directory import UserDirectory

__all__ = ["UserDirectory"]
