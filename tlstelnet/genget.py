"""Case-insensitive prefix lookup of names in command tables."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


class AmbiguousMatch(LookupError):
    """A name is a prefix of more than one table entry."""

    def __init__(self, name: str) -> None:
        super().__init__(f"ambiguous name {name!r}")
        self.name = name


def isprefix(s1: str, s2: str) -> int:
    """Compare ``s1`` against ``s2`` ignoring case.

    Returns 0 if ``s1`` is not a prefix of ``s2``, the negative length of
    ``s1`` if both match exactly, and the length of ``s1`` if it is a proper
    prefix. An empty ``s1`` gives -1.
    """
    if not s1:
        return -1
    if len(s2) < len(s1):
        return 0
    if any(a.lower() != b.lower() for a, b in zip(s1, s2)):
        return 0
    return -len(s1) if len(s2) == len(s1) else len(s1)


def genget(
    name: Optional[str],
    table: Iterable[T],
    key: Optional[Callable[[T], Optional[str]]] = None,
) -> Optional[T]:
    """Find the entry of ``table`` whose name ``name`` abbreviates.

    ``key`` extracts the name of an entry; without it entries are names
    themselves. An entry whose name is None ends the table. An exact match
    wins; a second prefix match raises AmbiguousMatch. Returns None when
    nothing matches.
    """
    if name is None:
        return None
    found: Optional[T] = None
    have_found = False
    for entry in table:
        entry_name = key(entry) if key is not None else entry
        if entry_name is None:
            break
        n = isprefix(name, entry_name)
        if n == 0:
            continue
        if n < 0:
            return entry
        if have_found:
            raise AmbiguousMatch(name)
        found = entry
        have_found = True
    return found