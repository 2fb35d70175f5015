"""Selector validation performed before any registry lookup."""

from __future__ import annotations

from typing import AbstractSet, Any, FrozenSet, Iterable

from registry.errors import InvalidResourceSelector

# Field prime of felt252 values: 2**251 + 17 * 2**192 + 1.
FELT_PRIME = 2**251 + 17 * 2**192 + 1
WORLD_SELECTOR = 0


class SelectorValidator:
    """Rejects malformed or reserved selectors. Stateless apart from the reserved set."""

    def __init__(self, reserved: Iterable[int] = ()) -> None:
        self._reserved: FrozenSet[int] = frozenset(reserved) | {WORLD_SELECTOR}

    @property
    def reserved(self) -> AbstractSet[int]:
        return self._reserved

    def validate(self, selector: Any) -> int:
        if not isinstance(selector, int) or isinstance(selector, bool):
            raise InvalidResourceSelector(selector)
        if selector < 0 or selector >= FELT_PRIME:
            raise InvalidResourceSelector(selector)
        if selector in self._reserved:
            raise InvalidResourceSelector(selector)
        return selector

    def is_valid(self, selector: Any) -> bool:
        try:
            self.validate(selector)
        except InvalidResourceSelector:
            return False
        return True


__all__ = ["FELT_PRIME", "SelectorValidator", "WORLD_SELECTOR"]
