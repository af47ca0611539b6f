"""
pysqlcopy: Copy sequences and table data between relational databases.

This module selects and orders database objects by name.
"""

import sys
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

WILDCARD = "*"


class ObjectFilter:
    """
    Include/exclude/order rules over object names for a single object category (e.g. tables or sequences).

    Names are compared case-insensitively. A filter is immutable once constructed.

    :param enabled: Whether the object category participates in the copy at all.
    :param include: Names to copy; empty means no explicit include list. May contain the wildcard `*`.
    :param exclude: Names to skip. May contain the wildcard `*` meaning everything.
    :param order: Names in the order objects are to be processed. Defaults to the include list.
    """

    enabled: bool
    include: frozenset[str]
    exclude: frozenset[str]
    order: tuple[str, ...]

    def __init__(
        self,
        enabled: bool = True,
        *,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
        order: Optional[Iterable[str]] = None,
    ) -> None:
        include_list = [name.lower() for name in include] if include else []
        self.enabled = enabled
        self.include = frozenset(include_list)
        self.exclude = frozenset(name.lower() for name in exclude) if exclude else frozenset()
        if order is not None:
            self.order = tuple(name.lower() for name in order)
        else:
            self.order = tuple(dict.fromkeys(include_list))

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(enabled={self.enabled!r}, include={sorted(self.include)!r}, "
            f"exclude={sorted(self.exclude)!r}, order={list(self.order)!r})"
        )

    def contains(self, name: str) -> bool:
        """
        True if the object with the given name is selected.

        An explicit include (by name or by wildcard) takes precedence over an exclude. Otherwise, an object is selected
        unless it is excluded by name, there is a non-empty include list, or everything is excluded by wildcard.
        """

        key = name.lower()
        if self.include and (key in self.include or WILDCARD in self.include):
            return True
        if key in self.exclude:
            return False
        return not self.include and WILDCARD not in self.exclude

    @property
    def excludes_all(self) -> bool:
        "True if the filter can never select any object."

        return not self.include and WILDCARD in self.exclude

    def sort(self, items: Iterable[T], name_of: Callable[[T], str]) -> list[T]:
        """
        Orders objects according to the filter's explicit order.

        Objects listed in the order come first, in that order; objects not listed follow. Objects with the same
        position (i.e. those not listed) are ordered by name. If no explicit order is set, objects keep their
        original order.

        :param items: Objects to order.
        :param name_of: Extracts the name of an object.
        :returns: A new list with the objects in order.
        """

        if not self.order:
            return list(items)

        positions = {name: index for index, name in reversed(list(enumerate(self.order)))}

        def key(item: T) -> tuple[int, str]:
            name = name_of(item).lower()
            return positions.get(name, sys.maxsize), name

        return sorted(items, key=key)
