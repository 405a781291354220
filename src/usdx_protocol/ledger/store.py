"""
KeyedStore — Append-only хранилище записей по ключу

Одно хранилище на вид записей компонента (positions, mints, transfers).
Записи добавляются один раз (insert) и могут только заменяться новой
immutable версией (replace); удаления нет.
"""

from typing import Dict, Generic, Iterator, Optional, Tuple, TypeVar

from usdx_protocol.core.errors import DuplicateKey

K = TypeVar("K")
V = TypeVar("V")


class KeyedStore(Generic[K, V]):
    """Write-once keyed store."""

    def __init__(self, name: str):
        self.name = name
        self._items: Dict[K, V] = {}

    def insert(self, key: K, value: V) -> None:
        """
        Добавление новой записи.

        Raises:
            DuplicateKey: Если ключ уже существует
        """
        if key in self._items:
            raise DuplicateKey(f"{self.name}: key {key!r} already present")
        self._items[key] = value

    def replace(self, key: K, value: V) -> None:
        """
        Замена существующей записи новой версией.

        Raises:
            KeyError: Если ключ отсутствует
        """
        if key not in self._items:
            raise KeyError(f"{self.name}: key {key!r} not found")
        self._items[key] = value

    def upsert(self, key: K, value: V) -> None:
        if key in self._items:
            self.replace(key, value)
        else:
            self.insert(key, value)

    def get(self, key: K) -> Optional[V]:
        return self._items.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> Iterator[Tuple[K, V]]:
        return iter(list(self._items.items()))

    def values(self) -> Iterator[V]:
        return iter(list(self._items.values()))
