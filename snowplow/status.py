"""Status objects returned by calls that produce no other object."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from snowplow.chain import Response

__all__ = [
    "STATUS_SUCCESS",
    "STATUS_FAILURE",
    "StatusReason",
    "Status",
    "encode",
    "unauthorized",
    "internal_error",
    "service_unavailable",
    "bad_request",
    "method_not_allowed",
    "not_found",
    "forbidden",
]

STATUS_SUCCESS = "Success"
STATUS_FAILURE = "Failure"


class StatusReason(str, Enum):
    """Machine-readable causes of a failure."""

    UNKNOWN = ""
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    CONFLICT = "Conflict"
    GONE = "Gone"
    INVALID = "Invalid"
    TIMEOUT = "Timeout"
    TOO_MANY_REQUESTS = "TooManyRequests"
    BAD_REQUEST = "BadRequest"
    METHOD_NOT_ALLOWED = "MethodNotAllowed"
    NOT_ACCEPTABLE = "NotAcceptable"
    REQUEST_ENTITY_TOO_LARGE = "RequestEntityTooLarge"
    UNSUPPORTED_MEDIA_TYPE = "UnsupportedMediaType"
    INTERNAL_ERROR = "InternalError"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"


_FAILURE_REASONS = {
    401: StatusReason.UNAUTHORIZED,
    403: StatusReason.FORBIDDEN,
    404: StatusReason.NOT_FOUND,
    409: StatusReason.CONFLICT,
    410: StatusReason.GONE,
    501: StatusReason.INVALID,
    503: StatusReason.SERVICE_UNAVAILABLE,
    406: StatusReason.NOT_ACCEPTABLE,
    405: StatusReason.METHOD_NOT_ALLOWED,
    500: StatusReason.INTERNAL_ERROR,
    413: StatusReason.REQUEST_ENTITY_TOO_LARGE,
    415: StatusReason.UNSUPPORTED_MEDIA_TYPE,
}


def _reason_value(reason: str) -> str:
    return reason.value if isinstance(reason, StatusReason) else reason


def _go_json(obj: Any) -> str:
    text = json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


@dataclass
class Status:
    """The outcome of an operation, with a suggested HTTP code."""

    kind: str = ""
    api_version: str = ""
    status: str = ""
    message: str = ""
    reason: str = StatusReason.UNKNOWN
    code: int = 0

    @classmethod
    def from_code(cls, code: int, error: object | None = None) -> Status:
        """Build a status for HTTP ``code``, taking the message from ``error``."""
        reason = _FAILURE_REASONS.get(code)
        return cls(
            kind="Status",
            api_version="v1",
            status=STATUS_FAILURE if reason is not None else STATUS_SUCCESS,
            message=str(error) if error is not None else "",
            reason=reason if reason is not None else StatusReason.UNKNOWN,
            code=code,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form, leaving out empty fields."""
        fields = (
            ("kind", self.kind),
            ("apiVersion", self.api_version),
            ("status", self.status),
            ("message", self.message),
            ("reason", _reason_value(self.reason)),
            ("code", self.code),
        )
        return {key: value for key, value in fields if value}

    @classmethod
    def from_dict(cls, data: Any) -> Status:
        """Build a status from its wire form."""
        if not isinstance(data, dict):
            raise TypeError("status must be a JSON object")

        def text(key: str) -> str:
            value = data.get(key, "")
            if value is None:
                return ""
            if not isinstance(value, str):
                raise TypeError(f"status field {key!r} must be a string")
            return value

        code = data.get("code", 0)
        if code is None:
            code = 0
        if isinstance(code, bool) or not isinstance(code, int):
            raise TypeError("status field 'code' must be an integer")

        reason_text = text("reason")
        try:
            reason: str = StatusReason(reason_text)
        except ValueError:
            reason = reason_text

        return cls(
            kind=text("kind"),
            api_version=text("apiVersion"),
            status=text("status"),
            message=text("message"),
            reason=reason,
            code=code,
        )

    def to_json(self) -> str:
        return _go_json(self.to_dict())


def encode(response: Response, status: Status) -> None:
    """Write ``status`` as a JSON response with its code."""
    response.headers.set("Content-Type", "application/json")
    response.write_header(status.code)
    response.write(status.to_json() + "\n")


def unauthorized(response: Response, error: object | None) -> None:
    encode(response, Status.from_code(401, error))


def internal_error(response: Response, error: object | None) -> None:
    encode(response, Status.from_code(500, error))


def service_unavailable(response: Response, error: object | None) -> None:
    encode(response, Status.from_code(503, error))


def bad_request(response: Response, error: object | None) -> None:
    encode(response, Status.from_code(400, error))


def method_not_allowed(response: Response, error: object | None) -> None:
    encode(response, Status.from_code(405, error))


def not_found(response: Response, error: object | None) -> None:
    encode(response, Status.from_code(404, error))


def forbidden(response: Response, error: object | None) -> None:
    encode(response, Status.from_code(403, error))