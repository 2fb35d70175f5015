"""Registry records and the pydantic models describing a world manifest."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Literal, Optional, Set

from pydantic import BaseModel, Field, field_validator, model_validator

from registry.naming import ensure_valid_name, get_tag, split_tag


ResourceKind = Literal["model", "event", "contract"]
RESOURCE_KINDS: FrozenSet[str] = frozenset({"model", "event", "contract"})


@dataclass
class NamespaceRecord:
    name: str
    selector: int
    owner: int
    writers: Set[int] = field(default_factory=set)

    def copy(self) -> "NamespaceRecord":
        return replace(self, writers=set(self.writers))


@dataclass
class ResourceRecord:
    namespace: str
    name: str
    selector: int
    namespace_selector: int
    owner: int
    kind: ResourceKind
    writers: Set[int] = field(default_factory=set)
    class_hash: Optional[int] = None
    version: int = 1

    @property
    def tag(self) -> str:
        return get_tag(self.namespace, self.name)

    def copy(self) -> "ResourceRecord":
        return replace(self, writers=set(self.writers))


@dataclass(frozen=True)
class WriteToken:
    """Proof that ``caller`` passed the write check on one resource."""

    caller: int
    selector: int
    tag: str
    state_version: int


@dataclass(frozen=True)
class RegistrySnapshot:
    version: int
    namespaces: Dict[int, NamespaceRecord]
    resources: Dict[int, ResourceRecord]

    def namespace_by_name(self, name: str) -> Optional[NamespaceRecord]:
        return next((ns for ns in self.namespaces.values() if ns.name == name), None)

    def resource_by_tag(self, tag: str) -> Optional[ResourceRecord]:
        return next((res for res in self.resources.values() if res.tag == tag), None)


def parse_felt(value: object) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid address: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 0)
    raise ValueError(f"Invalid address: {value!r}")


class NamespaceSpec(BaseModel):
    """Namespace declared in a manifest."""

    name: str
    writers: Optional[List[int]] = None

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return ensure_valid_name(value)

    @field_validator("writers", mode="before")
    @classmethod
    def _parse_writers(cls, value: object) -> object:
        if value is None:
            return None
        return [parse_felt(item) for item in value]  # type: ignore[union-attr]


class ResourceSpec(BaseModel):
    """Resource declared in a manifest; ``tag`` may omit the namespace."""

    tag: str
    kind: ResourceKind = Field(default="model")
    writers: Optional[List[int]] = None

    @field_validator("writers", mode="before")
    @classmethod
    def _parse_writers(cls, value: object) -> object:
        if value is None:
            return None
        return [parse_felt(item) for item in value]  # type: ignore[union-attr]


class WorldManifest(BaseModel):
    """Full YAML document structure."""

    version: int = Field(default=1)
    default_namespace: Optional[str] = None
    namespaces: List[NamespaceSpec] = Field(default_factory=list)
    resources: List[ResourceSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def _normalize_tags(self) -> "WorldManifest":
        seen = set()
        for resource in self.resources:
            namespace, name = split_tag(resource.tag, self.default_namespace)
            resource.tag = get_tag(namespace, name)
            if resource.tag in seen:
                raise ValueError(f"Duplicate resource detected: {resource.tag}")
            seen.add(resource.tag)
        names = [namespace.name for namespace in self.namespaces]
        if len(names) != len(set(names)):
            raise ValueError("Duplicate namespace detected")
        return self
