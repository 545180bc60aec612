"""Ordered profile set.

Profiles travel as a comma-joined string on the command line, in config
files and on the mkosi command line. ProfileSet is the in-memory form:
an immutable, insertion-ordered set with a single canonical join.
"""

from collections.abc import Iterable, Iterator

SEPARATOR = ","


class ProfileSet:
    """Immutable ordered set of profile names.

    Duplicates collapse onto their first occurrence. Two sets are equal
    only if they hold the same names in the same order, because profile
    order is passed through to mkosi unchanged.

    Example:
        >>> profiles = ProfileSet.parse("desktop,gnome,desktop")
        >>> profiles.joined()
        'desktop,gnome'
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._items: tuple[str, ...] = tuple(dict.fromkeys(items))

    @classmethod
    def parse(cls, value: str) -> "ProfileSet":
        """Build a set from a comma-joined string.

        Empty segments are dropped, so ``""`` yields the empty set.
        """
        return cls(token for token in value.split(SEPARATOR) if token)

    def joined(self) -> str:
        """Return the canonical comma-joined form."""
        return SEPARATOR.join(self._items)

    def index(self, name: str) -> int:
        """Return the position of ``name``.

        Raises:
            ValueError: If ``name`` is not in the set.
        """
        return self._items.index(name)

    def with_profile(self, name: str, position: int | None = None) -> "ProfileSet":
        """Return a copy that contains ``name``.

        Args:
            name: Profile to add. A no-op if already present.
            position: Insert position; appended when None or out of range.
        """
        if name in self._items:
            return self
        items = list(self._items)
        if position is None or position > len(items):
            items.append(name)
        else:
            items.insert(max(position, 0), name)
        return ProfileSet(items)

    def without(self, name: str) -> "ProfileSet":
        """Return a copy with ``name`` removed (no-op if absent)."""
        return ProfileSet(item for item in self._items if item != name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ProfileSet):
            return self._items == other._items
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __str__(self) -> str:
        return self.joined()

    def __repr__(self) -> str:
        return f"ProfileSet({list(self._items)!r})"
