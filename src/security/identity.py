"""Caller classification and the permissions capability handed to registries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Union

from registry.errors import CallerNotAccount
from registry.models import NamespaceRecord, ResourceRecord
from security.models import CallerKind, SecurityConfig


logger = logging.getLogger("world_registry.identity")

OwnedRecord = Union[NamespaceRecord, ResourceRecord]


@dataclass(frozen=True)
class Permissions:
    """Single place where owner/writer precedence is decided for a caller."""

    caller: int
    is_account: bool

    def is_owner(self, record: OwnedRecord) -> bool:
        return record.owner == self.caller

    def can_write(self, record: OwnedRecord) -> bool:
        # Owners always hold write access; writers are additional grants.
        return self.is_owner(record) or self.caller in record.writers


class IdentityCheck:
    """Directory of known callers loaded from the security config."""

    def __init__(self, unknown_caller_kind: CallerKind = "contract") -> None:
        self._unknown_kind: CallerKind = unknown_caller_kind
        self._kinds: Dict[int, CallerKind] = {}
        self._labels: Dict[int, str] = {}

    @classmethod
    def from_config(cls, config: SecurityConfig) -> "IdentityCheck":
        identity = cls(unknown_caller_kind=config.default.unknown_caller_kind)
        for entry in config.accounts:
            identity.register_account(entry.address, label=entry.label)
        for entry in config.contracts:
            identity.register_contract(entry.address, label=entry.label)
        return identity

    def register_account(self, address: int, label: Optional[str] = None) -> None:
        self._register(address, "account", label)

    def register_contract(self, address: int, label: Optional[str] = None) -> None:
        self._register(address, "contract", label)

    def kind_of(self, caller: int) -> CallerKind:
        return self._kinds.get(caller, self._unknown_kind)

    def is_account(self, caller: int) -> bool:
        return self.kind_of(caller) == "account"

    def require_account(self, caller: int) -> None:
        if not self.is_account(caller):
            raise CallerNotAccount(caller)

    def permissions_for(self, caller: int) -> Permissions:
        return Permissions(caller=caller, is_account=self.is_account(caller))

    def label(self, caller: int) -> Optional[str]:
        return self._labels.get(caller)

    def known_callers(self) -> Iterable[int]:
        return sorted(self._kinds)

    def _register(self, address: int, kind: CallerKind, label: Optional[str]) -> None:
        previous = self._kinds.get(address)
        if previous is not None and previous != kind:
            logger.warning(
                {
                    "event": "identity.reclassified",
                    "caller": hex(address),
                    "previous": previous,
                    "kind": kind,
                }
            )
        self._kinds[address] = kind
        if label:
            self._labels[address] = label
