"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Tool deny-list policy shared by catalog listing and invocation.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TypeVar

T = TypeVar("T")


class ToolDenyList:
    """
    Immutable set of tool names excluded from every session.

    The registry consults this single object both when listing tools and
    when resolving a tool for invocation, so the two paths cannot disagree.
    """

    __slots__ = ("_names",)

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names = frozenset(n.strip() for n in names if n and n.strip())

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._names))

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"ToolDenyList({sorted(self._names)!r})"

    def allows(self, name: str) -> bool:
        return name not in self._names

    def filter(self, items: Iterable[T], *, key=lambda item: item) -> list[T]:
        """Return ``items`` whose ``key(item)`` name is not denied."""
        return [item for item in items if key(item) not in self._names]
