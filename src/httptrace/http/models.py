"""Transport-agnostic request and response types.

A Request is owned by the caller until it is handed to a client. The tracing
layer may only touch its headers, so method and URL are frozen while the
Headers object stays mutable.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Union
from urllib.parse import urlsplit

HeaderSource = Union[Mapping[str, str], Iterable[tuple[str, str]], None]


class Headers(MutableMapping[str, str]):
    """Case-insensitive, order-preserving, multi-value header mapping.

    Item access works with the first value of a header; ``add`` and ``get_all``
    expose the multi-value side. Assigning replaces every value of the name.

    Example:
        >>> h = Headers({"Accept": "text/plain"})
        >>> h.add("accept", "application/json")
        >>> h.get_all("ACCEPT")
        ['text/plain', 'application/json']
        >>> h["Accept"]
        'text/plain'
    """

    __slots__ = ("_items",)

    def __init__(self, source: HeaderSource = None) -> None:
        # lower-cased name -> (original name, values)
        self._items: dict[str, tuple[str, list[str]]] = {}
        if source is None:
            return
        pairs = source.items() if isinstance(source, Mapping) else source
        for name, value in pairs:
            self.add(name, value)

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1][0]

    def __setitem__(self, name: str, value: str) -> None:
        self._items[name.lower()] = (name, [str(value)])

    def __delitem__(self, name: str) -> None:
        del self._items[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return sorted(self.lower_items()) == sorted(other.lower_items())
        if isinstance(other, Mapping):
            return self == Headers(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({list(self.multi_items())!r})"

    def add(self, name: str, value: str) -> None:
        """Append a value, keeping existing ones."""
        if (entry := self._items.get(name.lower())) is None:
            self._items[name.lower()] = (name, [str(value)])
        else:
            entry[1].append(str(value))

    def get_all(self, name: str) -> list[str]:
        """All values for a header, empty if absent."""
        entry = self._items.get(name.lower())
        return list(entry[1]) if entry else []

    def multi_items(self) -> Iterator[tuple[str, str]]:
        """(name, value) pairs, one per value, in insertion order."""
        for original, values in self._items.values():
            for v in values:
                yield original, v

    def lower_items(self) -> Iterator[tuple[str, str]]:
        for key, (_, values) in self._items.items():
            for v in values:
                yield key, v

    def copy(self) -> Headers:
        return Headers(list(self.multi_items()))


@dataclass(frozen=True, slots=True)
class Request:
    """Outbound HTTP request.

    Attributes:
        method: HTTP method, upper-cased on construction
        url: Absolute request URL
        headers: Mutable header mapping
        body: Optional request payload
    """

    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    body: bytes | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))

    @property
    def path(self) -> str:
        """URL path, '/' when empty."""
        return urlsplit(self.url).path or "/"

    @property
    def host(self) -> str:
        return urlsplit(self.url).hostname or ""


@dataclass(frozen=True, slots=True)
class Response:
    """Received HTTP response. Read-only for span decorators."""

    status_code: int
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    reason: str = ""
    request: Request | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(self.headers))

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")
