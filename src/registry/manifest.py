"""Declarative world manifests: plan and apply registrations and writer grants."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional, Set

import yaml

from config import get_settings
from registry.models import ResourceKind, WorldManifest
from registry.naming import compute_selector_from_names, split_tag

if TYPE_CHECKING:
    from security.manager import AccessControl


logger = logging.getLogger("world_registry.manifest")

TargetKind = Literal["namespace", "resource"]


@dataclass(frozen=True)
class PlannedRegistration:
    target: TargetKind
    name: str
    selector: int
    namespace: Optional[str] = None
    kind: Optional[ResourceKind] = None


@dataclass(frozen=True)
class AuthorizationChange:
    target: TargetKind
    name: str
    selector: int
    writer: int


@dataclass
class ManifestPlan:
    registrations: List[PlannedRegistration] = field(default_factory=list)
    grants: List[AuthorizationChange] = field(default_factory=list)
    revokes: List[AuthorizationChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.registrations or self.grants or self.revokes)

    def as_dict(self) -> Dict[str, Any]:
        def _change(change: AuthorizationChange) -> Dict[str, Any]:
            return {
                "target": change.target,
                "name": change.name,
                "selector": hex(change.selector),
                "writer": hex(change.writer),
            }

        return {
            "registrations": [
                {
                    "target": item.target,
                    "name": item.name,
                    "selector": hex(item.selector),
                    "kind": item.kind,
                }
                for item in self.registrations
            ],
            "grants": [_change(change) for change in self.grants],
            "revokes": [_change(change) for change in self.revokes],
        }


def load_manifest(path: Optional[Path] = None) -> WorldManifest:
    if path is None:
        path = Path(get_settings().manifest_path)
    if not path.exists():
        raise FileNotFoundError(f"World manifest not found: {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not data.get("default_namespace"):
        data["default_namespace"] = get_settings().default_namespace
    return WorldManifest(**data)


def plan_manifest(core: "AccessControl", manifest: WorldManifest) -> ManifestPlan:
    """Diff the manifest against the live registry without changing it."""

    plan = ManifestPlan()
    snapshot = core.snapshot()

    for spec in manifest.namespaces:
        selector = core.namespace_selector(spec.name)
        record = snapshot.namespaces.get(selector)
        if record is None:
            plan.registrations.append(
                PlannedRegistration(target="namespace", name=spec.name, selector=selector)
            )
        current: Set[int] = set(record.writers) if record else set()
        _diff_writers(plan, "namespace", spec.name, selector, current, spec.writers)

    for spec in manifest.resources:
        namespace, name = split_tag(spec.tag)
        existing = snapshot.resource_by_tag(spec.tag)
        if existing is None:
            selector = compute_selector_from_names(namespace, name)
            plan.registrations.append(
                PlannedRegistration(
                    target="resource",
                    name=spec.tag,
                    selector=selector,
                    namespace=namespace,
                    kind=spec.kind,
                )
            )
            current = set()
        else:
            selector = existing.selector
            current = set(existing.writers)
        _diff_writers(plan, "resource", spec.tag, selector, current, spec.writers)

    logger.info(
        {
            "event": "manifest.planned",
            "registrations": len(plan.registrations),
            "grants": len(plan.grants),
            "revokes": len(plan.revokes),
        }
    )
    return plan


def apply_manifest(core: "AccessControl", manifest: WorldManifest, caller: int) -> ManifestPlan:
    """Apply the manifest as ``caller`` in a single all-or-nothing transaction."""

    with core.transaction():
        plan = plan_manifest(core, manifest)
        for item in plan.registrations:
            if item.target == "namespace":
                core.register_namespace(caller, item.name, selector=item.selector)
            else:
                namespace_selector = core.namespace_selector(item.namespace or "")
                _, name = split_tag(item.name)
                core.register_resource(
                    caller,
                    namespace_selector,
                    name,
                    kind=item.kind or "model",
                    selector=item.selector,
                )
        for spec in manifest.resources:
            record = core.get_resource_by_tag(spec.tag)
            if record is not None:
                core.resolve_kind(record.selector, spec.kind)
        for change in plan.grants:
            if change.target == "namespace":
                core.grant_namespace_writer(caller, change.selector, change.writer)
            else:
                core.grant_writer(caller, change.selector, change.writer)
        for change in plan.revokes:
            if change.target == "namespace":
                core.revoke_namespace_writer(caller, change.selector, change.writer)
            else:
                core.revoke_writer(caller, change.selector, change.writer)
    logger.info({"event": "manifest.applied", "version": core.version})
    return plan


def _diff_writers(
    plan: ManifestPlan,
    target: TargetKind,
    name: str,
    selector: int,
    current: Set[int],
    desired: Optional[List[int]],
) -> None:
    # Writers left undeclared in the manifest are not managed by it.
    if desired is None:
        return
    wanted = set(desired)
    for writer in sorted(wanted - current):
        plan.grants.append(AuthorizationChange(target, name, selector, writer))
    for writer in sorted(current - wanted):
        plan.revokes.append(AuthorizationChange(target, name, selector, writer))


__all__ = [
    "AuthorizationChange",
    "ManifestPlan",
    "PlannedRegistration",
    "apply_manifest",
    "load_manifest",
    "plan_manifest",
]
