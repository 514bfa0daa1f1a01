"""Templates whose values are jq queries wrapped in delimiters."""

from __future__ import annotations

import re
from typing import Any

from snowplow.encoder import dumps
from snowplow.jq import parse

__all__ = ["JQTemplate"]

_SIMPLE_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
}
_HEX = frozenset("0123456789abcdefABCDEF")


def _valid_rune(code: int) -> bool:
    return 0 <= code <= 0x10FFFF and not 0xD800 <= code <= 0xDFFF


def _unquote_body(body: str, quote: str) -> str | None:
    """Decode the escapes of a quoted literal's body, or return None if invalid."""
    out: list[str] = []
    i = 0
    n = len(body)
    while i < n:
        ch = body[i]
        if ch == quote or ch == "\n":
            return None
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        if i + 1 >= n:
            return None
        esc = body[i + 1]
        i += 2
        if esc in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[esc])
        elif esc == quote:
            out.append(esc)
        elif esc in ("x", "u", "U"):
            width = {"x": 2, "u": 4, "U": 8}[esc]
            digits = body[i : i + width]
            if len(digits) != width or any(d not in _HEX for d in digits):
                return None
            code = int(digits, 16)
            i += width
            if esc == "x":
                # a single byte; only meaningful as part of UTF-8 text
                if code >= 0x80:
                    return None
                out.append(chr(code))
            else:
                if not _valid_rune(code):
                    return None
                out.append(chr(code))
        elif "0" <= esc <= "7":
            digits = body[i - 1 : i + 2]
            if len(digits) != 3 or any(not "0" <= d <= "7" for d in digits):
                return None
            code = int(digits, 8)
            if code > 0xFF or code >= 0x80:
                return None
            out.append(chr(code))
            i += 2
        else:
            return None
    return "".join(out)


def _unquote(text: str) -> str | None:
    """Interpret ``text`` as a quoted string literal; None when it is not one."""
    if len(text) < 2:
        return None
    first, last = text[0], text[-1]
    if first != last:
        return None
    body = text[1:-1]
    if first == "`":
        if "`" in body:
            return None
        return body.replace("\r", "")
    if first == '"':
        return _unquote_body(body, '"')
    if first == "'":
        decoded = _unquote_body(body, "'")
        if decoded is None or len(decoded) != 1:
            return None
        return decoded
    return None


class JQTemplate:
    """Evaluates strings of the form ``<left> query<right>`` as jq queries."""

    def __init__(self, left_delim: str, right_delim: str) -> None:
        self._pattern = re.compile(
            "^" + re.escape(left_delim) + r"[\t\n\f\r ]+(.*)" + re.escape(right_delim)
        )
        self.unquote = True

    def q(self, query: str, data: Any) -> list[Any]:
        """Run a bare jq ``query`` on ``data`` and return every result."""
        if not query:
            return []
        return list(parse(query).run(data))

    def execute(self, query: str, data: Any) -> str:
        """Evaluate a delimited query on ``data``; other text is returned unchanged.

        The results are JSON encoded and concatenated; a single string result
        is returned without its quotes.
        """
        body, ok = self.parse_query(query)
        if not ok:
            return body

        result = "".join(dumps(v) for v in parse(body).run(data))
        if self.unquote:
            unquoted = _unquote(result)
            if unquoted is not None:
                result = unquoted
        return result

    def parse_query(self, query: str) -> tuple[str, bool]:
        """Return the query inside the delimiters and True, or the input and False."""
        match = self._pattern.match(query)
        if match is None:
            return query, False
        return match.group(1).strip(), True