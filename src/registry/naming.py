"""Tag composition and deterministic selector derivation."""

from __future__ import annotations

import hashlib
import re
from typing import Optional, Tuple

from registry.errors import InvalidName, InvalidTag

TAG_SEPARATOR = "-"
SELECTOR_MASK = (1 << 250) - 1

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")


def is_name_valid(name: str) -> bool:
    return bool(name) and _NAME_PATTERN.match(name) is not None


def ensure_valid_name(name: str) -> str:
    if not is_name_valid(name):
        raise InvalidName(name)
    return name


def get_tag(namespace: str, name: str) -> str:
    return f"{namespace}{TAG_SEPARATOR}{name}"


def split_tag(tag: str, default_namespace: Optional[str] = None) -> Tuple[str, str]:
    """Split ``namespace-name``; a bare name resolves to ``default_namespace``."""

    if TAG_SEPARATOR not in tag:
        if default_namespace is None or not is_name_valid(tag):
            raise InvalidTag(tag)
        return default_namespace, tag
    namespace, _, name = tag.partition(TAG_SEPARATOR)
    if not is_name_valid(namespace) or not is_name_valid(name):
        raise InvalidTag(tag)
    return namespace, name


def compute_bytearray_hash(value: str) -> int:
    digest = hashlib.sha256(value.encode("utf-8")).digest()
    return int.from_bytes(digest, "big") & SELECTOR_MASK


def compute_selector_from_names(namespace: str, name: str) -> int:
    namespace_hash = compute_bytearray_hash(namespace)
    name_hash = compute_bytearray_hash(name)
    payload = namespace_hash.to_bytes(32, "big") + name_hash.to_bytes(32, "big")
    return int.from_bytes(hashlib.sha256(payload).digest(), "big") & SELECTOR_MASK


def compute_selector_from_tag(tag: str, default_namespace: Optional[str] = None) -> int:
    namespace, name = split_tag(tag, default_namespace)
    return compute_selector_from_names(namespace, name)


def compute_namespace_selector(namespace: str) -> int:
    return compute_bytearray_hash(namespace)


__all__ = [
    "compute_bytearray_hash",
    "compute_namespace_selector",
    "compute_selector_from_names",
    "compute_selector_from_tag",
    "ensure_valid_name",
    "get_tag",
    "is_name_valid",
    "split_tag",
]
