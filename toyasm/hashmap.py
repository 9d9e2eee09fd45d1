"""Fixed-size open-addressing hash table keyed by strings."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

TABLE_SIZE = 128
_HASH_SEED = 5381


class _Marker:
    """Sentinel for slot states."""

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


_EMPTY = _Marker("EMPTY")
_TOMBSTONE = _Marker("TOMBSTONE")


def simple_hash(key: str) -> int:
    """Additive hash of the key's bytes (signed), reduced to TABLE_SIZE buckets."""
    total = _HASH_SEED + sum(b - 256 if b >= 128 else b for b in key.encode("utf-8"))
    return total % TABLE_SIZE


class HashMap:
    """Linear-probing hash table with tombstones and a fixed number of slots.

    Iteration follows slot order, which is stable for a given set of
    insertions and removals.
    """

    def __init__(self, size: int = TABLE_SIZE) -> None:
        if size <= 0:
            raise ValueError("hash map size must be positive")
        self.size = size
        self._slots: list[Any] = [_EMPTY] * size

    def _probe(self, key: str) -> Iterator[int]:
        start = simple_hash(key)
        for step in range(self.size):
            yield (start + step) % self.size

    def insert(self, key: str, value: Any) -> bool:
        """Store ``value`` under ``key``.

        Returns False when the same key already holds an equal value.
        Raises OverflowError when no free slot is left.
        """
        for pos in self._probe(key):
            slot = self._slots[pos]
            if slot is _EMPTY or slot is _TOMBSTONE:
                self._slots[pos] = (key, value)
                return True
            existing_key, existing_value = slot
            if existing_key == key and existing_value == value:
                return False
        raise OverflowError("hash map is full")

    def get(self, key: str, default: Any = None) -> Any:
        """Return the first value stored under ``key``, or ``default``."""
        for pos in self._probe(key):
            slot = self._slots[pos]
            if slot is _EMPTY:
                return default
            if slot is not _TOMBSTONE and slot[0] == key:
                return slot[1]
        return default

    def remove(self, key: str) -> bool:
        """Remove ``key``; return whether it was present."""
        for pos in self._probe(key):
            slot = self._slots[pos]
            if slot is _EMPTY:
                return False
            if slot is not _TOMBSTONE and slot[0] == key:
                self._slots[pos] = _TOMBSTONE
                return True
        return False

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        for pos in self._probe(key):
            slot = self._slots[pos]
            if slot is _EMPTY:
                return False
            if slot is not _TOMBSTONE and slot[0] == key:
                return True
        return False

    def items(self) -> Iterator[tuple[str, Any]]:
        """Yield live ``(key, value)`` pairs in slot order."""
        for slot in self._slots:
            if slot is not _EMPTY and slot is not _TOMBSTONE:
                yield slot

    def __iter__(self) -> Iterator[str]:
        return (key for key, _ in self.items())

    def __len__(self) -> int:
        return sum(1 for _ in self.items())

    def __repr__(self) -> str:
        return f"HashMap({dict(self.items())!r})"