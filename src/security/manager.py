"""Access control core composing identity, selector and registry checks."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, NoReturn, Optional

import yaml

from config import get_settings
from observability.context import flow_context
from observability.errors import error_recorder
from observability.metrics import metrics
from registry.errors import AccessControlError
from registry.messages import format_felt
from registry.models import (
    RESOURCE_KINDS,
    NamespaceRecord,
    RegistrySnapshot,
    ResourceKind,
    ResourceRecord,
    WriteToken,
)
from registry.namespaces import NamespaceRegistry
from registry.naming import (
    compute_namespace_selector,
    compute_selector_from_names,
    ensure_valid_name,
    get_tag,
    split_tag,
)
from registry.resources import ResourceRegistry
from registry.selectors import SelectorValidator
from security.identity import IdentityCheck
from security.models import SecurityConfig


logger = logging.getLogger("world_registry.access")


class AccessControl:
    """Answers whether registration, writes and upgrades are permitted.

    Registry state is only reachable through this class. Every public flow runs
    under one re-entrant lock, so it observes and commits a single state
    version; the first failing check aborts the flow before anything changes.
    """

    def __init__(self, config_path: Path, default_namespace: str = "dojo") -> None:
        self._config_path = config_path
        self._default_namespace = default_namespace
        self._lock = threading.RLock()
        self._version = 0
        self._transaction_depth = 0
        self._pending_commits = 0
        self._config = self._load_config()
        self._identity = IdentityCheck.from_config(self._config)
        self._validator = SelectorValidator(self._config.default.reserved_selectors)
        self._namespaces = NamespaceRegistry()
        self._resources = ResourceRegistry(self._namespaces)

    @classmethod
    def from_settings(cls) -> AccessControl:
        settings = get_settings()
        return cls(
            Path(settings.security_config_path).resolve(),
            default_namespace=settings.default_namespace,
        )

    @property
    def identity(self) -> IdentityCheck:
        return self._identity

    @property
    def validator(self) -> SelectorValidator:
        return self._validator

    @property
    def default_namespace(self) -> str:
        return self._default_namespace

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def register_namespace(
        self, caller: int, name: str, selector: Optional[int] = None
    ) -> NamespaceRecord:
        with self._decision("register_namespace", caller, mutates=True):
            ensure_valid_name(name)
            self._identity.require_account(caller)
            if selector is None:
                selector = compute_namespace_selector(name)
            self._validator.validate(selector)
            return self._namespaces.register(name, selector, caller).copy()

    def register_resource(
        self,
        caller: int,
        namespace_selector: int,
        name: str,
        kind: ResourceKind = "model",
        selector: Optional[int] = None,
    ) -> ResourceRecord:
        with self._decision("register_resource", caller, mutates=True):
            ensure_valid_name(name)
            self._require_known_kind(kind)
            self._validator.validate(namespace_selector)
            if selector is not None:
                self._validator.validate(selector)
            namespace = self._namespaces.require_registered(namespace_selector)
            if selector is None:
                selector = self._validator.validate(
                    compute_selector_from_names(namespace.name, name)
                )
            if self._config.default.enforce_namespace_write_on_register:
                permissions = self._identity.permissions_for(caller)
                self._namespaces.check_write_access(permissions, namespace_selector)
            return self._resources.register(
                name, namespace_selector, selector, caller, kind
            ).copy()

    def authorize_write(self, caller: int, resource_selector: int) -> WriteToken:
        with self._decision("authorize_write", caller):
            self._validator.validate(resource_selector)
            record = self._resources.require_registered(resource_selector)
            permissions = self._identity.permissions_for(caller)
            self._resources.check_write_access(record.tag, permissions)
            return WriteToken(
                caller=caller,
                selector=resource_selector,
                tag=record.tag,
                state_version=self._version,
            )

    def authorize_upgrade(self, caller: int, resource_selector: int) -> ResourceRecord:
        with self._decision("authorize_upgrade", caller):
            self._validator.validate(resource_selector)
            self._resources.require_registered(resource_selector)
            permissions = self._identity.permissions_for(caller)
            return self._resources.check_upgrade_authority(permissions, resource_selector).copy()

    def upgrade_resource(self, caller: int, resource_selector: int, class_hash: int) -> ResourceRecord:
        with self._decision("upgrade_resource", caller, mutates=True):
            self._validator.validate(resource_selector)
            permissions = self._identity.permissions_for(caller)
            self._resources.check_upgrade_authority(permissions, resource_selector)
            return self._resources.record_upgrade(resource_selector, class_hash).copy()

    def resolve_kind(self, selector: int, expected_kind: ResourceKind) -> ResourceRecord:
        with self._decision("resolve_kind", None):
            self._require_known_kind(expected_kind)
            self._validator.validate(selector)
            self._resources.require_registered(selector)
            return self._resources.require_kind(selector, expected_kind).copy()

    def check_owner(self, caller: int, resource_selector: int) -> ResourceRecord:
        with self._decision("check_owner", caller):
            self._validator.validate(resource_selector)
            permissions = self._identity.permissions_for(caller)
            return self._resources.check_owner(permissions, resource_selector).copy()

    def check_write_access(self, tag: str, caller: int) -> ResourceRecord:
        with self._decision("check_write_access", caller):
            tag = get_tag(*split_tag(tag, self._default_namespace))
            permissions = self._identity.permissions_for(caller)
            return self._resources.check_write_access(tag, permissions).copy()

    def authorize_namespace_write(self, caller: int, namespace_selector: int) -> NamespaceRecord:
        with self._decision("authorize_namespace_write", caller):
            self._validator.validate(namespace_selector)
            permissions = self._identity.permissions_for(caller)
            return self._namespaces.check_write_access(permissions, namespace_selector).copy()

    def grant_writer(self, caller: int, resource_selector: int, writer: int) -> bool:
        with self._decision("grant_writer", caller, mutates=True):
            self._validator.validate(resource_selector)
            permissions = self._identity.permissions_for(caller)
            return self._resources.grant_writer(permissions, resource_selector, writer)

    def revoke_writer(self, caller: int, resource_selector: int, writer: int) -> bool:
        with self._decision("revoke_writer", caller, mutates=True):
            self._validator.validate(resource_selector)
            permissions = self._identity.permissions_for(caller)
            return self._resources.revoke_writer(permissions, resource_selector, writer)

    def grant_namespace_writer(self, caller: int, namespace_selector: int, writer: int) -> bool:
        with self._decision("grant_namespace_writer", caller, mutates=True):
            self._validator.validate(namespace_selector)
            permissions = self._identity.permissions_for(caller)
            return self._namespaces.grant_writer(permissions, namespace_selector, writer)

    def revoke_namespace_writer(self, caller: int, namespace_selector: int, writer: int) -> bool:
        with self._decision("revoke_namespace_writer", caller, mutates=True):
            self._validator.validate(namespace_selector)
            permissions = self._identity.permissions_for(caller)
            return self._namespaces.revoke_writer(permissions, namespace_selector, writer)

    def delete_member(self, caller: int, resource_selector: int, member: Any = None) -> NoReturn:
        with self._decision("delete_member", caller):
            self._resources.delete_member(caller, resource_selector, member)

    def get_namespace(self, namespace_selector: int) -> Optional[NamespaceRecord]:
        with self._lock:
            record = self._namespaces.get(namespace_selector)
            return record.copy() if record else None

    def namespace_selector(self, name: str) -> int:
        """Selector bound to ``name``, or the one it would be derived to."""

        with self._lock:
            selector = self._namespaces.selector_for(name)
        return selector if selector is not None else compute_namespace_selector(name)

    def get_resource(self, resource_selector: int) -> Optional[ResourceRecord]:
        with self._lock:
            record = self._resources.get(resource_selector)
            return record.copy() if record else None

    def get_resource_by_tag(self, tag: str) -> Optional[ResourceRecord]:
        with self._lock:
            record = self._resources.get_by_tag(tag)
            return record.copy() if record else None

    def list_namespaces(self) -> List[NamespaceRecord]:
        with self._lock:
            return [record.copy() for record in self._namespaces.list()]

    def list_resources(self) -> List[ResourceRecord]:
        with self._lock:
            return [record.copy() for record in self._resources.list()]

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            return RegistrySnapshot(
                version=self._version,
                namespaces=self._namespaces.dump_state(),
                resources=self._resources.dump_state(),
            )

    @contextmanager
    def transaction(self) -> Iterator["AccessControl"]:
        """Run several flows as one commit; any exception restores the prior state.

        Commit metrics are recorded once the outermost transaction succeeds.
        """

        with self._lock:
            namespaces = self._namespaces.dump_state()
            resources = self._resources.dump_state()
            version = self._version
            pending = self._pending_commits
            self._transaction_depth += 1
            try:
                yield self
            except Exception:
                self._namespaces.load_state(namespaces)
                self._resources.load_state(resources)
                self._version = version
                self._pending_commits = pending
                logger.warning(
                    {
                        "event": "access.transaction.rolled_back",
                        "version": version,
                    }
                )
                raise
            finally:
                self._transaction_depth -= 1
            if not self._transaction_depth:
                for _ in range(self._pending_commits):
                    metrics.record_commit()
                self._pending_commits = 0

    def reload(self) -> None:
        with self._lock:
            self._config = self._load_config()
            self._identity = IdentityCheck.from_config(self._config)
            self._validator = SelectorValidator(self._config.default.reserved_selectors)

    @contextmanager
    def _decision(self, flow: str, caller: Optional[int], *, mutates: bool = False) -> Iterator[None]:
        with self._lock, flow_context(flow, caller):
            try:
                yield
            except AccessControlError as exc:
                self._record_denial(flow, caller, exc)
                raise
            if mutates:
                self._version += 1
                if self._transaction_depth:
                    self._pending_commits += 1
                else:
                    metrics.record_commit()
            metrics.record_decision(flow=flow, allowed=True)
            self._log_decision(flow, caller, allowed=True)

    def _record_denial(self, flow: str, caller: Optional[int], exc: AccessControlError) -> None:
        details: Dict[str, Any] = {key: format_felt(value) for key, value in exc.details().items()}
        metrics.record_decision(flow=flow, allowed=False, kind=exc.kind)
        error_recorder.record(event=exc.kind, message=str(exc), details=details)
        self._log_decision(flow, caller, allowed=False, extra={"error": exc.kind, **details})

    def _log_decision(
        self,
        flow: str,
        caller: Optional[int],
        *,
        allowed: bool,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        logger.info(
            {
                "event": "access.decision",
                "flow": flow,
                "caller": format_felt(caller) if caller is not None else None,
                "decision": "allow" if allowed else "deny",
                "version": self._version,
                **(extra or {}),
            }
        )

    @staticmethod
    def _require_known_kind(kind: str) -> None:
        if kind not in RESOURCE_KINDS:
            raise ValueError(f"Unknown resource kind: {kind}")

    def _load_config(self) -> SecurityConfig:
        if not self._config_path.exists():
            logger.warning("Security config not found at %s; using defaults", self._config_path)
            return SecurityConfig()
        data = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        return SecurityConfig(**data)


access_control = AccessControl.from_settings()
