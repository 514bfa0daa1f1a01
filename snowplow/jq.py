"""A jq query language interpreter covering the commonly used subset."""

from __future__ import annotations

import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Callable, Iterator

from snowplow.encoder import dumps

__all__ = ["JQError", "Query", "parse", "jq", "func_map"]

Node = Callable[[Any], Iterator[Any]]


class JQError(Exception):
    """A jq syntax or runtime error."""


_LEXER = re.compile(
    r"""
    (?P<ws>\s+|\#[^\n]*)
    |(?P<num>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<str>"(?:[^"\\]|\\.)*")
    |(?P<field>\.[A-Za-z_][A-Za-z0-9_]*)
    |(?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>\.\.|//|==|!=|<=|>=|[.|,()\[\]{}:;?<>+\-*/%])
    """,
    re.X,
)

_UNSUPPORTED = {"reduce", "foreach", "def", "as", "label", "import", "include"}


def _tokenize(text: str) -> list[tuple[str, str]]:
    lexemes = []
    pos = 0
    while pos < len(text):
        m = _LEXER.match(text, pos)
        if not m:
            raise JQError(f"unexpected character {text[pos]!r} at {pos}")
        pos = m.end()
        if m.lastgroup != "ws":
            lexemes.append((m.lastgroup, m.group()))
    return lexemes


def _type_name(v: Any) -> str:
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "boolean"
    if isinstance(v, (int, float)):
        return "number"
    if isinstance(v, str):
        return "string"
    if isinstance(v, list):
        return "array"
    if isinstance(v, dict):
        return "object"
    raise JQError(f"invalid value: {v!r}")


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _truthy(v: Any) -> bool:
    return v is not None and v is not False


def _order(v: Any) -> tuple:
    if v is None:
        return (0,)
    if isinstance(v, bool):
        return (2,) if v else (1,)
    if _is_number(v):
        return (3, v)
    if isinstance(v, str):
        return (4, v)
    if isinstance(v, list):
        return (5, tuple(_order(x) for x in v))
    keys = sorted(v)
    return (6, tuple(keys), tuple(_order(v[k]) for k in keys))


def _tostring(v: Any) -> str:
    return v if isinstance(v, str) else dumps(v)


def _index(v: Any, k: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, dict) and isinstance(k, str):
        return v.get(k)
    if isinstance(v, list) and _is_number(k):
        i = int(math.floor(k))
        if i < 0:
            i += len(v)
        return v[i] if 0 <= i < len(v) else None
    raise JQError(f"Cannot index {_type_name(v)} with {_type_name(k)}")


def _slice(v: Any, start: Any, end: Any) -> Any:
    if v is None:
        return None
    if not isinstance(v, (list, str)):
        raise JQError(f"Cannot index {_type_name(v)} with object")
    for bound in (start, end):
        if bound is not None and not _is_number(bound):
            raise JQError("Start and end indices of an array slice must be numbers")
    lo = None if start is None else int(math.floor(start))
    hi = None if end is None else int(math.ceil(end))
    return v[lo:hi]


def _iterate(v: Any) -> Iterator[Any]:
    if isinstance(v, list):
        return iter(list(v))
    if isinstance(v, dict):
        return iter(list(v.values()))
    raise JQError(f"Cannot iterate over {_type_name(v)}")


def _add(a: Any, b: Any) -> Any:
    if a is None:
        return b
    if b is None:
        return a
    if _is_number(a) and _is_number(b):
        return a + b
    if isinstance(a, str) and isinstance(b, str):
        return a + b
    if isinstance(a, list) and isinstance(b, list):
        return a + b
    if isinstance(a, dict) and isinstance(b, dict):
        return {**a, **b}
    raise JQError(f"{_type_name(a)} and {_type_name(b)} cannot be added")


def _sub(a: Any, b: Any) -> Any:
    if _is_number(a) and _is_number(b):
        return a - b
    if isinstance(a, list) and isinstance(b, list):
        return [x for x in a if all(_order(x) != _order(y) for y in b)]
    raise JQError(f"{_type_name(a)} and {_type_name(b)} cannot be subtracted")


def _mul(a: Any, b: Any) -> Any:
    if _is_number(a) and _is_number(b):
        return a * b
    if isinstance(a, str) and _is_number(b):
        return a * int(b) if b > 0 else None
    if isinstance(a, dict) and isinstance(b, dict):
        merged = dict(a)
        for key, value in b.items():
            if isinstance(merged.get(key), dict) and isinstance(value, dict):
                merged[key] = _mul(merged[key], value)
            else:
                merged[key] = value
        return merged
    raise JQError(f"{_type_name(a)} and {_type_name(b)} cannot be multiplied")


def _div(a: Any, b: Any) -> Any:
    if _is_number(a) and _is_number(b):
        if b == 0:
            raise JQError("cannot be divided because the divisor is zero")
        return a / b
    if isinstance(a, str) and isinstance(b, str):
        return _split(a, b)
    raise JQError(f"{_type_name(a)} and {_type_name(b)} cannot be divided")


def _mod(a: Any, b: Any) -> Any:
    if _is_number(a) and _is_number(b):
        ia, ib = int(a), int(b)
        if ib == 0:
            raise JQError("cannot be divided because the divisor is zero")
        result = abs(ia) % abs(ib)
        return -result if ia < 0 else result
    raise JQError(f"{_type_name(a)} and {_type_name(b)} cannot be divided")


def _split(s: str, sep: str) -> list[str]:
    if s == "":
        return []
    return list(s) if sep == "" else s.split(sep)


_ARITH = {"+": _add, "-": _sub, "*": _mul, "/": _div, "%": _mod}
_COMPARE = {
    "==": lambda a, b: _order(a) == _order(b),
    "!=": lambda a, b: _order(a) != _order(b),
    "<": lambda a, b: _order(a) < _order(b),
    "<=": lambda a, b: _order(a) <= _order(b),
    ">": lambda a, b: _order(a) > _order(b),
    ">=": lambda a, b: _order(a) >= _order(b),
}


def _binary(left: Node, right: Node, fn: Callable[[Any, Any], Any]) -> Node:
    def run(v: Any) -> Iterator[Any]:
        for r in right(v):
            for lhs in left(v):
                yield fn(lhs, r)

    return run


def _recurse(v: Any) -> Iterator[Any]:
    yield v
    if isinstance(v, (list, dict)):
        for child in _iterate(v):
            yield from _recurse(child)


def _flatten(v: list) -> list:
    out = []
    for item in v:
        out.extend(_flatten(item) if isinstance(item, list) else [item])
    return out


def _require(v: Any, kind: type, name: str) -> Any:
    if not isinstance(v, kind) or isinstance(v, bool):
        raise JQError(f"{_type_name(v)} ({dumps(v)}) {name}")
    return v


def _length(v: Any) -> Any:
    if v is None:
        return 0
    if _is_number(v):
        return abs(v)
    if isinstance(v, (str, list, dict)):
        return len(v)
    raise JQError(f"{_type_name(v)} ({dumps(v)}) has no length")


def _keys(v: Any) -> list:
    if isinstance(v, dict):
        return sorted(v)
    if isinstance(v, list):
        return list(range(len(v)))
    raise JQError(f"{_type_name(v)} ({dumps(v)}) has no keys")


def _tonumber(v: Any) -> Any:
    if _is_number(v):
        return v
    if isinstance(v, str):
        try:
            return int(v)
        except ValueError:
            try:
                return float(v)
            except ValueError:
                raise JQError(f"Cannot parse {v!r} as JSON") from None
    raise JQError(f"{_type_name(v)} cannot be parsed as a number")


def _join(v: Any, sep: Any) -> str:
    items = _require(v, list, "cannot be joined")
    if not isinstance(sep, str):
        raise JQError("join separator must be a string")
    parts = []
    for item in items:
        if item is None:
            parts.append("")
        elif isinstance(item, (bool, int, float, str)):
            parts.append(_tostring(item))
        else:
            raise JQError(f"Cannot join with {_type_name(item)}")
    return sep.join(parts)


def _from_entries(v: Any) -> dict:
    out = {}
    for entry in _require(v, list, "cannot be converted from entries"):
        key = next((entry[k] for k in ("key", "k", "name", "Name", "K", "Key") if k in entry), None)
        value = next((entry[k] for k in ("value", "v", "Value", "V") if k in entry), None)
        if isinstance(key, bool) or _is_number(key):
            key = _tostring(key)
        if not isinstance(key, str):
            raise JQError(f"Cannot use {_type_name(key)} as object key")
        out[key] = value
    return out


def _ascii_case(v: Any, upper: bool) -> str:
    text = _require(v, str, "cannot be case-converted")
    return "".join(
        (c.upper() if upper else c.lower()) if c.isascii() else c for c in text
    )


def _simple(fn: Callable[[Any], Any]) -> Callable[[Any, list], Iterator[Any]]:
    def run(v: Any, args: list) -> Iterator[Any]:
        yield fn(v)

    return run


def _with_arg(fn: Callable[[Any, Any], Any]) -> Callable[[Any, list], Iterator[Any]]:
    def run(v: Any, args: list) -> Iterator[Any]:
        for a in args[0](v):
            yield fn(v, a)

    return run


def _f_empty(v, args):
    return iter(())


def _f_map(v, args):
    yield [r for item in _iterate(v) for r in args[0](item)]


def _f_select(v, args):
    for c in args[0](v):
        if _truthy(c):
            yield v


def _f_first(v, args):
    for r in args[0](v):
        yield r
        return


def _f_range(v, args):
    for n in args[0](v):
        if not _is_number(n):
            raise JQError("Range bounds must be numeric")
        i = 0
        while i < n:
            yield i
            i += 1


def _f_error(v, args):
    for msg in args[0](v):
        raise JQError(_tostring(msg))
    return iter(())


def _f_test(v, args):
    text = _require(v, str, "cannot be matched, as it is not a string")
    for pattern in args[0](v):
        yield re.search(_require(pattern, str, "is not a string"), text) is not None


def _f_add(v, args):
    result = None
    for item in _iterate(v):
        result = _add(result, item)
    yield result


def _unique(v: Any) -> list:
    out, seen = [], set()
    for item in sorted(_require(v, list, "cannot be sorted"), key=_order):
        key = _order(item)
        if key not in seen:
            seen.add(key)
            out.append(item)
    return out


_FUNCTIONS: dict[tuple[str, int], Callable[[Any, list], Iterator[Any]]] = {
    ("empty", 0): _f_empty,
    ("not", 0): _simple(lambda v: not _truthy(v)),
    ("length", 0): _simple(_length),
    ("keys", 0): _simple(_keys),
    ("type", 0): _simple(_type_name),
    ("tostring", 0): _simple(_tostring),
    ("tonumber", 0): _simple(_tonumber),
    ("tojson", 0): _simple(dumps),
    ("fromjson", 0): _simple(lambda v: json.loads(_require(v, str, "cannot be parsed"))),
    ("add", 0): _f_add,
    ("sort", 0): _simple(lambda v: sorted(_require(v, list, "cannot be sorted"), key=_order)),
    ("unique", 0): _simple(_unique),
    ("reverse", 0): _simple(lambda v: [] if v is None else v[::-1]),
    ("min", 0): _simple(lambda v: min(v, key=_order) if v else None),
    ("max", 0): _simple(lambda v: max(v, key=_order) if v else None),
    ("flatten", 0): _simple(lambda v: _flatten(_require(v, list, "cannot be flattened"))),
    ("first", 0): _simple(lambda v: _index(v, 0)),
    ("last", 0): _simple(lambda v: _index(v, -1)),
    ("any", 0): _simple(lambda v: any(_truthy(x) for x in _iterate(v))),
    ("all", 0): _simple(lambda v: all(_truthy(x) for x in _iterate(v))),
    ("to_entries", 0): _simple(
        lambda v: [{"key": k, "value": x} for k, x in _require(v, dict, "has no keys").items()]
    ),
    ("from_entries", 0): _simple(_from_entries),
    ("ascii_downcase", 0): _simple(lambda v: _ascii_case(v, False)),
    ("ascii_upcase", 0): _simple(lambda v: _ascii_case(v, True)),
    ("join", 1): _with_arg(_join),
    ("split", 1): _with_arg(
        lambda v, s: _split(_require(v, str, "cannot be split"), _require(s, str, "is not a string"))
    ),
    ("has", 1): _with_arg(
        lambda v, k: (k in v) if isinstance(v, dict) else 0 <= int(k) < len(_require(v, list, "has no keys"))
    ),
    ("ltrimstr", 1): _with_arg(
        lambda v, p: v[len(p):] if isinstance(v, str) and isinstance(p, str) and v.startswith(p) else v
    ),
    ("rtrimstr", 1): _with_arg(
        lambda v, p: v[: len(v) - len(p)]
        if isinstance(v, str) and isinstance(p, str) and p and v.endswith(p)
        else v
    ),
    ("startswith", 1): _with_arg(
        lambda v, p: _require(v, str, "startswith() requires string inputs").startswith(
            _require(p, str, "startswith() requires string inputs")
        )
    ),
    ("endswith", 1): _with_arg(
        lambda v, p: _require(v, str, "endswith() requires string inputs").endswith(
            _require(p, str, "endswith() requires string inputs")
        )
    ),
    ("map", 1): _f_map,
    ("select", 1): _f_select,
    ("first", 1): _f_first,
    ("range", 1): _f_range,
    ("error", 1): _f_error,
    ("test", 1): _f_test,
}


class _Parser:
    def __init__(self, text: str) -> None:
        self.lexemes = _tokenize(text)
        self.pos = 0

    def peek(self, offset: int = 0) -> tuple[str, str]:
        idx = self.pos + offset
        return self.lexemes[idx] if idx < len(self.lexemes) else ("eof", "")

    def next(self) -> tuple[str, str]:
        item = self.peek()
        self.pos += 1
        return item

    def at_op(self, text: str, offset: int = 0) -> bool:
        return self.peek(offset) == ("op", text)

    def at_word(self, text: str) -> bool:
        return self.peek() == ("ident", text)

    def accept_op(self, text: str) -> bool:
        if self.at_op(text):
            self.pos += 1
            return True
        return False

    def expect_op(self, text: str) -> None:
        if not self.accept_op(text):
            raise JQError(f"expected {text!r} but got {self.peek()[1] or 'end of query'!r}")

    def expect_word(self, text: str) -> None:
        if not self.at_word(text):
            raise JQError(f"expected {text!r} but got {self.peek()[1] or 'end of query'!r}")
        self.pos += 1

    def parse(self) -> Node:
        if not self.lexemes:
            return lambda v: iter((v,))
        node = self.pipe()
        if self.peek()[0] != "eof":
            raise JQError(f"unexpected token {self.peek()[1]!r}")
        return node

    def pipe(self, allow_comma: bool = True) -> Node:
        left = self.comma() if allow_comma else self.alt()
        if self.accept_op("|"):
            right = self.pipe(allow_comma)
            return lambda v: (y for x in left(v) for y in right(x))
        return left

    def comma(self) -> Node:
        items = [self.alt()]
        while self.accept_op(","):
            items.append(self.alt())
        if len(items) == 1:
            return items[0]
        return lambda v: (r for item in items for r in item(v))

    def alt(self) -> Node:
        left = self.or_()
        if not self.accept_op("//"):
            return left
        right = self.alt()

        def run(v: Any) -> Iterator[Any]:
            found = []
            try:
                found = [x for x in left(v) if _truthy(x)]
            except JQError:
                pass
            if found:
                yield from found
            else:
                yield from right(v)

        return run

    def _logical(self, word: str, sub: Callable[[], Node], is_and: bool) -> Node:
        left = sub()
        while self.at_word(word):
            self.pos += 1
            right = sub()
            left = self._combine(left, right, is_and)
        return left

    @staticmethod
    def _combine(left: Node, right: Node, is_and: bool) -> Node:
        def run(v: Any) -> Iterator[Any]:
            for lhs in left(v):
                if _truthy(lhs) != is_and:
                    yield not is_and
                else:
                    for r in right(v):
                        yield _truthy(r)

        return run

    def or_(self) -> Node:
        return self._logical("or", self.and_, False)

    def and_(self) -> Node:
        return self._logical("and", self.compare, True)

    def compare(self) -> Node:
        left = self.additive()
        kind, text = self.peek()
        if kind == "op" and text in _COMPARE:
            self.pos += 1
            return _binary(left, self.additive(), _COMPARE[text])
        return left

    def additive(self) -> Node:
        left = self.multiplicative()
        while self.peek()[0] == "op" and self.peek()[1] in "+-":
            op = self.next()[1]
            left = _binary(left, self.multiplicative(), _ARITH[op])
        return left

    def multiplicative(self) -> Node:
        left = self.unary()
        while self.peek()[0] == "op" and self.peek()[1] in ("*", "/", "%"):
            op = self.next()[1]
            left = _binary(left, self.unary(), _ARITH[op])
        return left

    def unary(self) -> Node:
        if self.accept_op("-"):
            operand = self.postfix()

            def negate(v: Any) -> Iterator[Any]:
                for x in operand(v):
                    if not _is_number(x):
                        raise JQError(f"{_type_name(x)} cannot be negated")
                    yield -x

            return negate
        return self.postfix()

    def postfix(self) -> Node:
        node = self.term()
        while True:
            kind, text = self.peek()
            if kind == "field":
                self.pos += 1
                node = self._index_const(node, text[1:])
            elif self.at_op(".") and self.peek(1)[0] == "str":
                self.pos += 1
                node = self._index_const(node, self._string(self.next()[1]))
            elif self.at_op(".") and self.at_op("[", 1):
                self.pos += 1
            elif self.at_op("["):
                node = self.bracket(node)
            elif self.at_op("?"):
                self.pos += 1
                node = self._optional(node)
            else:
                return node

    @staticmethod
    def _optional(node: Node) -> Node:
        def run(v: Any) -> Iterator[Any]:
            try:
                yield from node(v)
            except JQError:
                return

        return run

    @staticmethod
    def _index_const(node: Node, key: str) -> Node:
        return lambda v: (_index(x, key) for x in node(v))

    def bracket(self, node: Node) -> Node:
        self.expect_op("[")
        if self.accept_op("]"):
            return lambda v: (y for x in node(v) for y in _iterate(x))
        if self.accept_op(":"):
            end = self.pipe()
            self.expect_op("]")
            return lambda v: (_slice(x, None, e) for x in node(v) for e in end(v))
        key = self.pipe()
        if self.accept_op(":"):
            if self.accept_op("]"):
                return lambda v: (_slice(x, s, None) for x in node(v) for s in key(v))
            end = self.pipe()
            self.expect_op("]")
            return lambda v: (
                _slice(x, s, e) for x in node(v) for s in key(v) for e in end(v)
            )
        self.expect_op("]")
        return lambda v: (_index(x, k) for x in node(v) for k in key(v))

    @staticmethod
    def _string(literal: str) -> str:
        if "\\(" in literal:
            raise JQError("string interpolation is not supported")
        try:
            return json.loads(literal)
        except ValueError as exc:
            raise JQError(f"invalid string literal {literal}") from exc

    def term(self) -> Node:
        kind, text = self.next()
        if kind == "num":
            value: Any = float(text) if any(c in text for c in ".eE") else int(text)
            return lambda v: iter((value,))
        if kind == "str":
            s = self._string(text)
            return lambda v: iter((s,))
        if kind == "field":
            key = text[1:]
            return lambda v: iter((_index(v, key),))
        if kind == "op":
            if text == ".":
                if self.peek()[0] == "str":
                    key = self._string(self.next()[1])
                    return lambda v: iter((_index(v, key),))
                return lambda v: iter((v,))
            if text == "..":
                return _recurse
            if text == "(":
                inner = self.pipe()
                self.expect_op(")")
                return inner
            if text == "[":
                if self.accept_op("]"):
                    return lambda v: iter(([],))
                inner = self.pipe()
                self.expect_op("]")
                return lambda v: iter((list(inner(v)),))
            if text == "{":
                return self.object()
        if kind == "ident":
            return self.word(text)
        raise JQError(f"unexpected token {text or 'end of query'!r}")

    def word(self, name: str) -> Node:
        if name == "null":
            return lambda v: iter((None,))
        if name in ("true", "false"):
            flag = name == "true"
            return lambda v: iter((flag,))
        if name == "if":
            return self.conditional()
        if name == "try":
            return self.try_()
        if name in _UNSUPPORTED:
            raise JQError(f"{name!r} is not supported")
        args: list[Node] = []
        if self.accept_op("("):
            args.append(self.pipe())
            while self.accept_op(";"):
                args.append(self.pipe())
            self.expect_op(")")
        impl = _FUNCTIONS.get((name, len(args)))
        if impl is None:
            raise JQError(f"function not defined: {name}/{len(args)}")
        return lambda v: impl(v, args)

    def conditional(self) -> Node:
        cond = self.pipe()
        self.expect_word("then")
        then = self.pipe()
        if self.at_word("elif"):
            self.pos += 1
            otherwise = self.conditional()
        else:
            if self.at_word("else"):
                self.pos += 1
                otherwise = self.pipe()
            else:
                otherwise = lambda v: iter((v,))
            self.expect_word("end")

        def run(v: Any) -> Iterator[Any]:
            for c in cond(v):
                yield from (then if _truthy(c) else otherwise)(v)

        return run

    def try_(self) -> Node:
        body = self.postfix()
        handler: Node | None = None
        if self.at_word("catch"):
            self.pos += 1
            handler = self.postfix()

        def run(v: Any) -> Iterator[Any]:
            try:
                yield from body(v)
            except JQError as exc:
                if handler is not None:
                    yield from handler(str(exc))

        return run

    def object(self) -> Node:
        entries: list[tuple[Node, Node]] = []
        if not self.accept_op("}"):
            while True:
                entries.append(self.object_entry())
                if self.accept_op("}"):
                    break
                self.expect_op(",")

        def run(v: Any) -> Iterator[Any]:
            results: list[dict] = [{}]
            for key_node, value_node in entries:
                expanded = []
                for partial in results:
                    for key in key_node(v):
                        if not isinstance(key, str):
                            raise JQError(f"Cannot use {_type_name(key)} as object key")
                        for value in value_node(v):
                            expanded.append({**partial, key: value})
                results = expanded
            return iter(results)

        return run

    def object_entry(self) -> tuple[Node, Node]:
        kind, text = self.next()
        if kind in ("ident", "str"):
            key = text if kind == "ident" else self._string(text)
            key_node: Node = lambda v: iter((key,))
            default: Node = lambda v: iter((_index(v, key),))
        elif kind == "op" and text == "(":
            key_node = self.pipe()
            self.expect_op(")")
            default = None
        else:
            raise JQError(f"unexpected token {text or 'end of query'!r} in object")
        if self.accept_op(":"):
            return key_node, self.object_value()
        if default is None:
            raise JQError("expected ':' after computed object key")
        return key_node, default

    def object_value(self) -> Node:
        left = self.alt()
        if self.accept_op("|"):
            right = self.object_value()
            return lambda v: (y for x in left(v) for y in right(x))
        return left


class Query:
    """A parsed jq query."""

    def __init__(self, text: str, node: Node) -> None:
        self.text = text
        self._node = node

    def run(self, data: Any) -> Iterator[Any]:
        """Yield every result of the query applied to ``data``."""
        try:
            yield from self._node(data)
        except RecursionError as exc:
            raise JQError("query nesting too deep") from exc

    def __repr__(self) -> str:
        return f"Query({self.text!r})"


def parse(query: str) -> Query:
    """Parse ``query``, raising :class:`JQError` on a syntax error."""
    return Query(query, _Parser(query).parse())


def jq(query: str, data: Any) -> str:
    """Run ``query`` on ``data`` and return the compact JSON of all results."""
    return "".join(dumps(v) for v in parse(query).run(data))


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _is_blank(s: str) -> bool:
    return len(s.strip()) == 0


def func_map() -> dict[str, Callable[..., Any]]:
    """Return a fresh copy of the template helper functions."""
    return {"now": _now, "empty": _is_blank, "jq": jq}