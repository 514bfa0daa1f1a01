"""Middleware that applies the CORS specification to requests.

Configure it with :class:`Options` and wrap a handler with
:meth:`Cors.handler`, or get a middleware constructor from
:func:`cors_middleware`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from snowplow.chain import Handler, Middleware, Request, Response, canonical_header_key

__all__ = [
    "Options",
    "Wildcard",
    "parse_header_list",
    "Cors",
    "cors_middleware",
]

OriginValidator = Callable[[Request, str], bool]

_SIMPLE_METHODS = ("GET", "POST", "HEAD")
_DEFAULT_HEADERS = ("Origin", "Accept", "Content-Type")
_ALL_METHODS = ("HEAD", "GET", "POST", "PUT", "PATCH", "DELETE")
_HEADER_EXTRA_CHARS = frozenset("-_.0123456789")


@dataclass
class Options:
    """Configuration of the CORS middleware.

    ``allowed_origins`` defaults to all origins; an entry may hold one ``*``
    standing for zero or more characters, and a lone ``*`` allows every
    origin. ``allow_origin_func``, when set, replaces ``allowed_origins``.
    ``allowed_methods`` defaults to GET, POST and HEAD. ``allowed_headers``
    defaults to Origin, Accept and Content-Type; ``*`` allows any header,
    and Origin is always allowed.
    """

    allowed_origins: list[str] = field(default_factory=list)
    allow_origin_func: Optional[OriginValidator] = None
    allowed_methods: list[str] = field(default_factory=list)
    allowed_headers: list[str] = field(default_factory=list)
    exposed_headers: list[str] = field(default_factory=list)
    allow_credentials: bool = False
    max_age: int = 0
    options_passthrough: bool = False


@dataclass(frozen=True)
class Wildcard:
    """An origin pattern split around its single ``*``."""

    prefix: str
    suffix: str

    def match(self, s: str) -> bool:
        return (
            len(s) >= len(self.prefix) + len(self.suffix)
            and s.startswith(self.prefix)
            and s.endswith(self.suffix)
        )


def parse_header_list(header_list: str) -> list[str]:
    """Split a header list on spaces and commas and canonicalise each name."""
    headers: list[str] = []
    current: list[str] = []
    upper = True
    for ch in header_list:
        if "a" <= ch <= "z":
            current.append(ch.upper() if upper else ch)
        elif "A" <= ch <= "Z":
            current.append(ch if upper else ch.lower())
        elif ch in _HEADER_EXTRA_CHARS:
            current.append(ch)

        if ch in (" ", ","):
            if current:
                headers.append("".join(current))
                current = []
                upper = True
        else:
            upper = ch == "-"
    if current:
        headers.append("".join(current))
    return headers


class Cors:
    """A CORS handler built from :class:`Options`."""

    def __init__(self, options: Options | None = None) -> None:
        options = options if options is not None else Options()
        self.log: logging.Logger | None = None

        self._exposed_headers = tuple(canonical_header_key(h) for h in options.exposed_headers)
        self._allow_origin_func = options.allow_origin_func
        self._allow_credentials = options.allow_credentials
        self._max_age = options.max_age
        self._options_passthrough = options.options_passthrough

        self._allowed_origins_all = False
        self._allowed_origins: tuple[str, ...] = ()
        self._allowed_wildcards: tuple[Wildcard, ...] = ()
        if not options.allowed_origins:
            if options.allow_origin_func is None:
                self._allowed_origins_all = True
        else:
            plain: list[str] = []
            wildcards: list[Wildcard] = []
            for origin in options.allowed_origins:
                origin = origin.lower()
                if origin == "*":
                    self._allowed_origins_all = True
                    plain, wildcards = [], []
                    break
                star = origin.find("*")
                if star >= 0:
                    wildcards.append(Wildcard(origin[:star], origin[star + 1 :]))
                else:
                    plain.append(origin)
            self._allowed_origins = tuple(plain)
            self._allowed_wildcards = tuple(wildcards)

        self._allowed_headers_all = False
        self._allowed_headers: tuple[str, ...] | None
        if not options.allowed_headers:
            self._allowed_headers = _DEFAULT_HEADERS
        elif "*" in options.allowed_headers:
            self._allowed_headers_all = True
            self._allowed_headers = None
        else:
            self._allowed_headers = tuple(
                canonical_header_key(h) for h in [*options.allowed_headers, "Origin"]
            )

        if not options.allowed_methods:
            self._allowed_methods: tuple[str, ...] = _SIMPLE_METHODS
        else:
            self._allowed_methods = tuple(m.upper() for m in options.allowed_methods)

    @classmethod
    def allow_all(cls) -> Cors:
        """A permissive handler: any origin, standard methods, any header."""
        return cls(
            Options(
                allowed_origins=["*"],
                allowed_methods=list(_ALL_METHODS),
                allowed_headers=["*"],
                allow_credentials=False,
            )
        )

    @property
    def allowed_origins_all(self) -> bool:
        return self._allowed_origins_all

    @property
    def allowed_headers(self) -> tuple[str, ...] | None:
        return self._allowed_headers

    @property
    def allowed_methods(self) -> tuple[str, ...]:
        return self._allowed_methods

    def handler(self, next_handler: Handler) -> Handler:
        """Wrap ``next_handler`` with CORS processing."""

        def serve(request: Request, response: Response) -> None:
            if request.method == "OPTIONS" and request.headers.get("Access-Control-Request-Method"):
                self._debug("CORS handler: preflight request")
                self.handle_preflight(request, response)
                if self._options_passthrough:
                    next_handler(request, response)
                else:
                    response.write_header(200)
            else:
                self._debug("CORS handler: actual request")
                self.handle_actual_request(request, response)
                next_handler(request, response)

        return serve

    def handle_preflight(self, request: Request, response: Response) -> None:
        """Add the response headers of a preflight request."""
        headers = response.headers
        origin = request.headers.get("Origin")

        if request.method != "OPTIONS":
            self._debug("CORS preflight aborted: %s!=OPTIONS", request.method)
            return
        headers.add("Vary", "Origin")
        headers.add("Vary", "Access-Control-Request-Method")
        headers.add("Vary", "Access-Control-Request-Headers")

        if not origin:
            self._debug("CORS preflight aborted: empty origin")
            return
        if not self.is_origin_allowed(request, origin):
            self._debug("CORS preflight aborted: origin not allowed: %s", origin)
            return

        req_method = request.headers.get("Access-Control-Request-Method")
        if not self.is_method_allowed(req_method):
            self._debug("CORS preflight aborted: method not allowed: %s", req_method)
            return
        req_headers = parse_header_list(request.headers.get("Access-Control-Request-Headers"))
        if not self.are_headers_allowed(req_headers):
            self._debug("CORS preflight aborted: headers not allowed: %s", ",".join(req_headers))
            return

        headers.set("Access-Control-Allow-Origin", "*" if self._allowed_origins_all else origin)
        headers.set("Access-Control-Allow-Methods", req_method.upper())
        if req_headers:
            headers.set("Access-Control-Allow-Headers", ", ".join(req_headers))
        if self._allow_credentials:
            headers.set("Access-Control-Allow-Credentials", "true")
        if self._max_age > 0:
            headers.set("Access-Control-Max-Age", str(self._max_age))
        self._debug("CORS preflight response headers: %r", headers)

    def handle_actual_request(self, request: Request, response: Response) -> None:
        """Add the response headers of a simple or actual cross-origin request."""
        headers = response.headers
        origin = request.headers.get("Origin")

        headers.add("Vary", "Origin")
        if not origin:
            self._debug("CORS actual request no headers added: missing origin")
            return
        if not self.is_origin_allowed(request, origin):
            self._debug("CORS actual request no headers added: origin not allowed: %s", origin)
            return
        if not self.is_method_allowed(request.method):
            self._debug("CORS actual request no headers added: method not allowed: %s", request.method)
            return

        headers.set("Access-Control-Allow-Origin", "*" if self._allowed_origins_all else origin)
        if self._exposed_headers:
            headers.set("Access-Control-Expose-Headers", ", ".join(self._exposed_headers))
        if self._allow_credentials:
            headers.set("Access-Control-Allow-Credentials", "true")
        self._debug("CORS actual response added headers: %r", headers)

    def is_origin_allowed(self, request: Request, origin: str) -> bool:
        """Whether ``origin`` may perform cross-domain requests."""
        if self._allow_origin_func is not None:
            return self._allow_origin_func(request, origin)
        if self._allowed_origins_all:
            return True
        origin = origin.lower()
        if origin in self._allowed_origins:
            return True
        return any(w.match(origin) for w in self._allowed_wildcards)

    def is_method_allowed(self, method: str) -> bool:
        """Whether ``method`` may be used in a cross-domain request."""
        if not self._allowed_methods:
            return False
        method = method.upper()
        if method == "OPTIONS":
            return True
        return method in self._allowed_methods

    def are_headers_allowed(self, requested_headers: list[str]) -> bool:
        """Whether every header in ``requested_headers`` is allowed."""
        if self._allowed_headers_all or not requested_headers:
            return True
        allowed = self._allowed_headers or ()
        return all(canonical_header_key(h) in allowed for h in requested_headers)

    def _debug(self, msg: str, *args: object) -> None:
        if self.log is not None:
            self.log.debug(msg, *args)


def cors_middleware(options: Options) -> Middleware:
    """Return a middleware constructor applying CORS with ``options``."""
    return Cors(options).handler