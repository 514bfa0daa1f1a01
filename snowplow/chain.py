"""Composable HTTP middleware chains with minimal request/response types.

A handler is a callable ``handler(request, response)``. A middleware
constructor takes a handler and returns a new handler wrapping it.
"""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Mapping, Union

__all__ = [
    "Handler",
    "Middleware",
    "Headers",
    "Request",
    "Response",
    "canonical_header_key",
    "not_found_handler",
    "Chain",
]

_TOKEN_CHARS = frozenset("!#$%&'*+-.^_`|~" + string.ascii_letters + string.digits)


def canonical_header_key(key: str) -> str:
    """Return the canonical form of a header name (e.g. ``content-type`` -> ``Content-Type``).

    Keys holding characters that are not valid in a header name are
    returned unchanged.
    """
    if not key or any(ch not in _TOKEN_CHARS for ch in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


HeaderItems = Union[Mapping[str, Union[str, Iterable[str]]], Iterable[tuple]]


class Headers:
    """A multi-valued, case-insensitive collection of HTTP headers."""

    def __init__(self, items: HeaderItems | None = None) -> None:
        self._data: dict[str, list[str]] = {}
        if items is None:
            return
        pairs = items.items() if isinstance(items, Mapping) else items
        for key, value in pairs:
            if isinstance(value, str):
                self.add(key, value)
            else:
                for single in value:
                    self.add(key, single)

    def get(self, key: str) -> str:
        """Return the first value of ``key``, or an empty string."""
        values = self._data.get(canonical_header_key(key))
        return values[0] if values else ""

    def set(self, key: str, value: str) -> None:
        """Replace all values of ``key`` with ``value``."""
        self._data[canonical_header_key(key)] = [value]

    def add(self, key: str, value: str) -> None:
        """Append ``value`` to the values of ``key``."""
        self._data.setdefault(canonical_header_key(key), []).append(value)

    def values(self, key: str) -> list[str]:
        """Return a copy of all values of ``key``."""
        return list(self._data.get(canonical_header_key(key), ()))

    def delete(self, key: str) -> None:
        """Remove every value of ``key``."""
        self._data.pop(canonical_header_key(key), None)

    def copy(self) -> Headers:
        """Return a deep copy of these headers."""
        clone = Headers()
        clone._data = {key: list(values) for key, values in self._data.items()}
        return clone

    def items(self) -> Iterator[tuple[str, list[str]]]:
        for key, values in self._data.items():
            yield key, list(values)

    def to_dict(self) -> dict[str, list[str]]:
        return {key: list(values) for key, values in self._data.items()}

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and bool(self._data.get(canonical_header_key(key)))

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"Headers({self._data!r})"


@dataclass
class Request:
    """An incoming HTTP request as seen by handlers."""

    method: str = "GET"
    url: str = "/"
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    context: dict = field(default_factory=dict)


@dataclass
class Response:
    """A recording HTTP response writer."""

    status_code: int = 200
    headers: Headers = field(default_factory=Headers)
    body: bytearray = field(default_factory=bytearray)
    _header_written: bool = field(default=False, repr=False, compare=False)

    def write_header(self, code: int) -> None:
        """Send the status code; later calls are ignored."""
        if not 100 <= code <= 999:
            raise ValueError(f"invalid status code {code}")
        if self._header_written:
            return
        self.status_code = code
        self._header_written = True

    def write(self, data: bytes | str) -> int:
        """Append ``data`` to the body, sending status 200 first if needed."""
        if not self._header_written:
            self.write_header(200)
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.body.extend(data)
        return len(data)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


Handler = Callable[[Request, Response], None]
Middleware = Callable[[Handler], Handler]


def not_found_handler(request: Request, response: Response) -> None:
    """Reply with a plain 404 page."""
    response.headers.set("Content-Type", "text/plain; charset=utf-8")
    response.headers.set("X-Content-Type-Options", "nosniff")
    response.write_header(404)
    response.write("404 page not found\n")


class Chain:
    """An immutable list of middleware constructors."""

    def __init__(self, *args: Middleware) -> None:
        self._constructors: tuple[Middleware, ...] = tuple(args)

    @property
    def constructors(self) -> tuple[Middleware, ...]:
        return self._constructors

    def then(self, handler: Handler | None) -> Handler:
        """Wrap ``handler`` so that the first constructor runs first.

        ``Chain(m1, m2, m3).then(h)`` is ``m1(m2(m3(h)))``. ``None`` is
        treated as :func:`not_found_handler`.
        """
        wrapped: Handler = handler if handler is not None else not_found_handler
        for constructor in reversed(self._constructors):
            wrapped = constructor(wrapped)
        return wrapped

    def append(self, *args: Middleware) -> Chain:
        """Return a new chain with ``args`` added at the end."""
        return Chain(*self._constructors, *args)

    def extend(self, chain: Chain) -> Chain:
        """Return a new chain with the constructors of ``chain`` added at the end."""
        return self.append(*chain.constructors)

    def __len__(self) -> int:
        return len(self._constructors)

    def __repr__(self) -> str:
        return f"Chain({len(self._constructors)} constructors)"