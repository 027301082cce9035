"""Mapping from a key to an ordered set of values.

Used to group listing errors by the file they are rooted at.
"""

from collections.abc import Hashable, Iterator
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V", bound=Hashable)


class MultiMap(Generic[K, V]):
    """Key to ordered, duplicate-free values. Never raises."""

    def __init__(self) -> None:
        # dict values keep insertion order and reject duplicates
        self._map: dict[K, dict[V, None]] = {}

    def set(self, key: K, value: V) -> None:
        self._map.setdefault(key, {})[value] = None

    def get(self, key: K) -> list[V]:
        return list(self._map.get(key, ()))

    def has(self, key: K) -> bool:
        return key in self._map

    def delete(self, key: K, value: V) -> None:
        values = self._map.get(key)
        if values is None:
            return
        values.pop(value, None)
        if not values:
            del self._map[key]

    def delete_all(self, key: K) -> None:
        self._map.pop(key, None)

    def clear(self) -> None:
        self._map.clear()

    def keys(self) -> list[K]:
        return list(self._map)

    def values(self) -> list[V]:
        return [value for values in self._map.values() for value in values]

    def __contains__(self, key: object) -> bool:
        return key in self._map

    def __iter__(self) -> Iterator[K]:
        return iter(list(self._map))

    def __len__(self) -> int:
        return len(self._map)
