"""Namespace registry: selectors, owners and writer grants."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterable, Optional

from registry.errors import (
    NamespaceAlreadyRegistered,
    NamespaceNotRegistered,
    NoNamespaceWriteAccess,
    NotOwner,
)
from registry.messages import format_felt
from registry.models import NamespaceRecord

if TYPE_CHECKING:
    from security.identity import Permissions


logger = logging.getLogger("world_registry.namespaces")


class NamespaceRegistry:
    """Tracks registered namespaces keyed by selector.

    Not thread-safe on its own; the access control core serialises every call.
    """

    def __init__(self) -> None:
        self._namespaces: Dict[int, NamespaceRecord] = {}
        self._names: Dict[str, int] = {}

    def register(self, namespace_name: str, selector: int, owner: int) -> NamespaceRecord:
        if selector in self._namespaces or namespace_name in self._names:
            raise NamespaceAlreadyRegistered(namespace_name)
        record = NamespaceRecord(name=namespace_name, selector=selector, owner=owner)
        self._namespaces[selector] = record
        self._names[namespace_name] = selector
        logger.info(
            {
                "event": "namespace.registered",
                "namespace": namespace_name,
                "selector": hex(selector),
                "owner": hex(owner),
            }
        )
        return record

    def require_registered(self, namespace_selector: int) -> NamespaceRecord:
        record = self._namespaces.get(namespace_selector)
        if record is None:
            raise NamespaceNotRegistered(format_felt(namespace_selector))
        return record

    def check_write_access(
        self, permissions: "Permissions", namespace_selector: int
    ) -> NamespaceRecord:
        record = self.require_registered(namespace_selector)
        if not permissions.can_write(record):
            raise NoNamespaceWriteAccess(permissions.caller, namespace_selector, record.name)
        return record

    def check_owner(self, permissions: "Permissions", namespace_selector: int) -> NamespaceRecord:
        record = self.require_registered(namespace_selector)
        if not permissions.is_owner(record):
            raise NotOwner(permissions.caller, namespace_selector)
        return record

    def grant_writer(
        self, permissions: "Permissions", namespace_selector: int, writer: int
    ) -> bool:
        record = self.check_owner(permissions, namespace_selector)
        if writer in record.writers:
            return False
        record.writers.add(writer)
        return True

    def revoke_writer(
        self, permissions: "Permissions", namespace_selector: int, writer: int
    ) -> bool:
        record = self.check_owner(permissions, namespace_selector)
        if writer not in record.writers:
            return False
        record.writers.discard(writer)
        return True

    def get(self, namespace_selector: int) -> Optional[NamespaceRecord]:
        return self._namespaces.get(namespace_selector)

    def selector_for(self, name: str) -> Optional[int]:
        return self._names.get(name)

    def list(self) -> Iterable[NamespaceRecord]:
        return sorted(self._namespaces.values(), key=lambda record: record.name)

    def dump_state(self) -> Dict[int, NamespaceRecord]:
        return {selector: record.copy() for selector, record in self._namespaces.items()}

    def load_state(self, state: Dict[int, NamespaceRecord]) -> None:
        self._namespaces = {selector: record.copy() for selector, record in state.items()}
        self._names = {record.name: selector for selector, record in self._namespaces.items()}

    def __contains__(self, namespace_selector: object) -> bool:
        return namespace_selector in self._namespaces

    def __len__(self) -> int:
        return len(self._namespaces)
