"""
Immutable, case-insensitive HTTP headers.

Header names keep the casing they were first given so responses go out
the way the handler wrote them, while lookups ignore case:

    >>> h = Headers({"X-Test": "demo"})
    >>> h["x-test"], h["X-TEST"]
    ('demo', 'demo')

Setting the same name twice (in any casing) keeps one entry: the entry
stays at its original position and takes the latest name and value.
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Optional, Union

HeaderSource = Union[Mapping[str, str], Iterable[tuple[str, str]], None]


class Headers(Mapping[str, str]):
    """Read-only ordered mapping of header name to value."""

    __slots__ = ("_entries",)

    def __init__(self, source: HeaderSource = None) -> None:
        entries: dict[str, tuple[str, str]] = {}
        if source is not None:
            pairs = source.items() if isinstance(source, Mapping) else source
            for name, value in pairs:
                entries[name.lower()] = (name, value)
        object.__setattr__(self, "_entries", entries)

    def __setattr__(self, name, value):
        raise AttributeError("Headers are immutable")

    def __getitem__(self, name: str) -> str:
        if not isinstance(name, str):
            raise KeyError(name)
        return self._entries[name.lower()][1]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        for original, _ in self._entries.values():
            yield original

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {v!r}" for k, v in self._entries.values())
        return f"Headers({{{items}}})"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:  # type: ignore[override]
        try:
            return self[name]
        except KeyError:
            return default

    def with_header(self, name: str, value: str) -> "Headers":
        """Return a copy with ``name`` set to ``value``."""
        return Headers(list(self._entries.values()) + [(name, value)])

    def with_defaults(self, defaults: Mapping[str, str]) -> "Headers":
        """Return a copy with each default added only where the name is absent."""
        pairs = list(self._entries.values())
        pairs.extend(
            (name, value) for name, value in defaults.items() if name not in self
        )
        return Headers(pairs)

    def without(self, *names: str) -> "Headers":
        """Return a copy with the given names removed."""
        dropped = {name.lower() for name in names}
        return Headers(
            pair for key, pair in self._entries.items() if key not in dropped
        )
