"""Caller identity and authorization for the world registry."""

from .identity import IdentityCheck, Permissions
from .manager import AccessControl, access_control

__all__ = ["AccessControl", "IdentityCheck", "Permissions", "access_control"]
