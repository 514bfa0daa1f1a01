"""Compact, deterministic JSON encoding of query results.

Object keys are sorted, non-ASCII text is kept as is, NaN becomes
``null`` and infinities are clamped to the largest finite float.
"""

from __future__ import annotations

import math
import sys
from decimal import Decimal
from typing import Any

__all__ = ["dumps"]

_MAX_FLOAT = sys.float_info.max
_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _encode_float(f: float) -> str:
    if math.isnan(f):
        return "null"
    if f >= _MAX_FLOAT:
        f = _MAX_FLOAT
    elif f <= -_MAX_FLOAT:
        f = -_MAX_FLOAT
    x = abs(f)
    exponential = (x != 0 and x < 1e-6) or x >= 1e21
    dec = Decimal(repr(f))
    if not exponential:
        text = format(dec, "f")
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        return text
    sign, digits, exp = dec.as_tuple()
    mantissa_digits = "".join(str(d) for d in digits).rstrip("0") or "0"
    power = len(digits) - 1 + exp
    mantissa = mantissa_digits[0]
    if len(mantissa_digits) > 1:
        mantissa += "." + mantissa_digits[1:]
    exp_sign = "-" if power < 0 else "+"
    exp_text = str(abs(power))
    if len(exp_text) < 2 and exp_sign == "+":
        exp_text = exp_text.zfill(2)
    return f"{'-' if sign else ''}{mantissa}e{exp_sign}{exp_text}"


def _encode_string(s: str) -> str:
    out = ['"']
    for ch in s:
        code = ord(ch)
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif code < 0x20 or code == 0x7F:
            out.append(f"\\u00{code:02x}")
        elif 0xD800 <= code <= 0xDFFF:
            out.append("\\ufffd")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


class _Encoder:
    def __init__(self, indent: int, tab: bool) -> None:
        self.indent = indent
        self.unit = "\t" if tab else " "
        self.parts: list[str] = []
        self.depth = 0

    def newline(self) -> None:
        self.parts.append("\n" + self.unit * self.depth)

    def encode(self, v: Any) -> None:
        if v is None:
            self.parts.append("null")
        elif isinstance(v, bool):
            self.parts.append("true" if v else "false")
        elif isinstance(v, int):
            self.parts.append(str(v))
        elif isinstance(v, float):
            self.parts.append(_encode_float(v))
        elif isinstance(v, str):
            self.parts.append(_encode_string(v))
        elif isinstance(v, list):
            self.sequence("[", "]", [(None, item) for item in v])
        elif isinstance(v, dict):
            for key in v:
                if not isinstance(key, str):
                    raise TypeError(f"invalid object key: {key!r}")
            self.sequence("{", "}", sorted(v.items()))
        else:
            raise TypeError(f"invalid type: {type(v).__name__} ({v!r})")

    def sequence(self, open_: str, close: str, items: list) -> None:
        self.parts.append(open_)
        self.depth += self.indent
        for i, (key, item) in enumerate(items):
            if i:
                self.parts.append(",")
            if self.indent:
                self.newline()
            if key is not None:
                self.parts.append(_encode_string(key))
                self.parts.append(": " if self.indent else ":")
            self.encode(item)
        self.depth -= self.indent
        if items and self.indent:
            self.newline()
        self.parts.append(close)


def dumps(value: Any, indent: int = 0, tab: bool = False) -> str:
    """Encode ``value``; ``indent`` > 0 lays it out over several lines."""
    if indent < 0:
        raise ValueError("indent must not be negative")
    enc = _Encoder(indent, tab)
    enc.encode(value)
    return "".join(enc.parts)