"""Resource registry: models and other resource kinds scoped to a namespace."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, NoReturn, Optional

from registry.errors import (
    DeleteEntityMember,
    ModelAlreadyRegistered,
    NoModelWriteAccess,
    NotOwner,
    NotOwnerUpgrade,
    ResourceConflict,
    ResourceNotRegistered,
)
from registry.models import ResourceKind, ResourceRecord
from registry.namespaces import NamespaceRegistry
from registry.naming import compute_selector_from_tag, get_tag

if TYPE_CHECKING:
    from security.identity import Permissions


logger = logging.getLogger("world_registry.resources")


class ResourceRegistry:
    """Tracks registered resources keyed by selector, with a tag index for lookups.

    Not thread-safe on its own; the access control core serialises every call.
    """

    def __init__(self, namespaces: NamespaceRegistry) -> None:
        self._namespaces = namespaces
        self._resources: Dict[int, ResourceRecord] = {}
        self._tags: Dict[str, int] = {}

    def register(
        self,
        name: str,
        namespace_selector: int,
        selector: int,
        owner: int,
        kind: ResourceKind,
    ) -> ResourceRecord:
        namespace = self._namespaces.require_registered(namespace_selector)
        if selector in self._resources or get_tag(namespace.name, name) in self._tags:
            raise ModelAlreadyRegistered(namespace.name, name)
        record = ResourceRecord(
            namespace=namespace.name,
            name=name,
            selector=selector,
            namespace_selector=namespace_selector,
            owner=owner,
            kind=kind,
        )
        self._resources[selector] = record
        self._tags[record.tag] = selector
        logger.info(
            {
                "event": "resource.registered",
                "tag": record.tag,
                "kind": kind,
                "selector": hex(selector),
                "owner": hex(owner),
            }
        )
        return record

    def require_registered(self, selector: int) -> ResourceRecord:
        record = self._resources.get(selector)
        if record is None:
            raise ResourceNotRegistered(selector)
        return record

    def require_kind(self, selector: int, expected_kind: ResourceKind) -> ResourceRecord:
        record = self.require_registered(selector)
        if record.kind != expected_kind:
            raise ResourceConflict(record.tag, expected_kind)
        return record

    def check_owner(self, permissions: "Permissions", selector: int) -> ResourceRecord:
        record = self.require_registered(selector)
        if not permissions.is_owner(record):
            raise NotOwner(permissions.caller, selector)
        return record

    def check_write_access(self, tag: str, permissions: "Permissions") -> ResourceRecord:
        selector = self._tags.get(tag)
        if selector is None:
            raise ResourceNotRegistered(compute_selector_from_tag(tag))
        record = self._resources[selector]
        if not permissions.can_write(record):
            raise NoModelWriteAccess(record.tag, permissions.caller)
        return record

    def check_upgrade_authority(self, permissions: "Permissions", selector: int) -> ResourceRecord:
        record = self.require_registered(selector)
        # Writers never inherit upgrade rights.
        if not permissions.is_owner(record):
            raise NotOwnerUpgrade(permissions.caller, selector)
        return record

    def delete_member(self, *_: Any, **__: Any) -> NoReturn:
        raise DeleteEntityMember()

    def grant_writer(self, permissions: "Permissions", selector: int, writer: int) -> bool:
        record = self.check_owner(permissions, selector)
        if writer in record.writers:
            return False
        record.writers.add(writer)
        return True

    def revoke_writer(self, permissions: "Permissions", selector: int, writer: int) -> bool:
        record = self.check_owner(permissions, selector)
        if writer not in record.writers:
            return False
        record.writers.discard(writer)
        return True

    def record_upgrade(self, selector: int, class_hash: int) -> ResourceRecord:
        record = self.require_registered(selector)
        record.class_hash = class_hash
        record.version += 1
        logger.info(
            {
                "event": "resource.upgraded",
                "tag": record.tag,
                "class_hash": hex(class_hash),
                "version": record.version,
            }
        )
        return record

    def get(self, selector: int) -> Optional[ResourceRecord]:
        return self._resources.get(selector)

    def get_by_tag(self, tag: str) -> Optional[ResourceRecord]:
        selector = self._tags.get(tag)
        return self._resources.get(selector) if selector is not None else None

    def list(self) -> Iterable[ResourceRecord]:
        return sorted(self._resources.values(), key=lambda record: record.tag)

    def dump_state(self) -> Dict[int, ResourceRecord]:
        return {selector: record.copy() for selector, record in self._resources.items()}

    def load_state(self, state: Dict[int, ResourceRecord]) -> None:
        self._resources = {selector: record.copy() for selector, record in state.items()}
        self._tags = {record.tag: selector for selector, record in self._resources.items()}

    def __contains__(self, selector: object) -> bool:
        return selector in self._resources

    def __len__(self) -> int:
        return len(self._resources)
