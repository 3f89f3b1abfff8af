"""
TypeList: an ordered list of classes constrained to a common base class.

Used for registries such as "enabled handler types":

    handlers = TypeList(BaseHandler)
    handlers.add(JsonHandler)
    JsonHandler in handlers  # True
    handlers.add(int)        # TypeError
"""

from collections.abc import Iterable, MutableSequence
from typing import Any, Generic, TypeVar, overload

TBase = TypeVar("TBase")


class TypeList(MutableSequence[type], Generic[TBase]):
    """Insertion-ordered list of subclasses of ``base_type``; every write is type-checked."""

    def __init__(
        self, base_type: type[TBase] = object, items: Iterable[type] = ()
    ) -> None:
        if not isinstance(base_type, type):
            raise TypeError(f"base_type must be a class, got {base_type!r}")
        self._base_type = base_type
        self._items: list[type] = []
        self.extend(items)

    @property
    def base_type(self) -> type[TBase]:
        return self._base_type

    def _check(self, cls: Any) -> type:
        if not isinstance(cls, type) or not issubclass(cls, self._base_type):
            raise TypeError(
                f"{cls!r} is not a subclass of {self._base_type.__name__}"
            )
        return cls

    def add(self, cls: type[TBase]) -> None:
        self.append(cls)

    def contains(self, cls: type[TBase]) -> bool:
        return self._check(cls) in self._items

    def remove(self, cls: type[TBase]) -> None:
        """Remove the first occurrence of *cls*; ValueError when it is not listed."""
        self._items.remove(self._check(cls))

    @overload
    def __getitem__(self, index: int) -> type: ...

    @overload
    def __getitem__(self, index: slice) -> list[type]: ...

    def __getitem__(self, index: int | slice) -> type | list[type]:
        return self._items[index]

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            self._items[index] = [self._check(v) for v in value]
        else:
            self._items[index] = self._check(value)

    def __delitem__(self, index: int | slice) -> None:
        del self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, cls: object) -> bool:
        return cls in self._items

    def insert(self, index: int, value: type) -> None:
        self._items.insert(index, self._check(value))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TypeList):
            return self._items == other._items
        if isinstance(other, list):
            return self._items == other
        return NotImplemented

    def __repr__(self) -> str:
        names = ", ".join(t.__name__ for t in self._items)
        return f"TypeList[{self._base_type.__name__}]([{names}])"
