"""Registries for namespaces, resources, and the errors they raise."""

from .errors import AccessControlError
from .models import NamespaceRecord, RegistrySnapshot, ResourceRecord, WriteToken
from .namespaces import NamespaceRegistry
from .resources import ResourceRegistry
from .selectors import SelectorValidator

__all__ = [
    "AccessControlError",
    "NamespaceRecord",
    "NamespaceRegistry",
    "RegistrySnapshot",
    "ResourceRecord",
    "ResourceRegistry",
    "SelectorValidator",
    "WriteToken",
]
