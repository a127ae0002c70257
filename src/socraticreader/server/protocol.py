"""JSON-lines protocol messages exchanged with reader front ends.

Requests carry an ``id``; responses echo it with either ``result`` or an
``error`` message plus a machine-readable ``code``. Notifications are pushed
by the engine and carry no id.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from socraticreader.engine.document_loader import DocumentError
from socraticreader.engine.stat_store import TrackingError


class ErrorCode(str, Enum):
    PARSE_ERROR = "parse_error"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN_METHOD = "unknown_method"
    INVALID_PARAMS = "invalid_params"
    INTERNAL_ERROR = "internal_error"


class ProtocolError(ValueError):
    """A request the bridge refuses before any engine state is touched."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INVALID_REQUEST):
        super().__init__(message)
        self.code = code


class UnknownMethodError(ProtocolError):
    def __init__(self, method: str):
        super().__init__(f"Unknown method: {method}", ErrorCode.UNKNOWN_METHOD)
        self.method = method


# Failures caused by what the front end sent rather than by the engine
_CLIENT_ERRORS = (KeyError, TypeError, ValueError, DocumentError, TrackingError)


def error_code_for(exc: Exception) -> ErrorCode:
    if isinstance(exc, ProtocolError):
        return exc.code
    if isinstance(exc, _CLIENT_ERRORS):
        return ErrorCode.INVALID_PARAMS
    return ErrorCode.INTERNAL_ERROR


def _describe(exc: Exception) -> str:
    if isinstance(exc, KeyError):
        return f"Missing parameter: {exc.args[0]}"
    return str(exc)


def _encode(payload: dict[str, Any]) -> str:
    return json.dumps(payload) + "\n"


@dataclass
class Request:
    id: int
    method: str
    params: dict = field(default_factory=dict)

    @classmethod
    def from_line(cls, line: str) -> Request:
        """Parse one stdin line. Raises ProtocolError on malformed input."""
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Invalid JSON: {e}", ErrorCode.PARSE_ERROR) from e
        if not isinstance(data, dict) or "method" not in data:
            raise ProtocolError("Request must be an object with a method")
        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise ProtocolError("Request params must be an object")
        return cls(id=data.get("id", 0), method=data["method"], params=params)


@dataclass
class Response:
    id: int
    result: Optional[dict] = None
    error: Optional[str] = None
    code: Optional[ErrorCode] = None

    @classmethod
    def failure(cls, request_id: int, exc: Exception) -> Response:
        return cls(id=request_id, error=_describe(exc), code=error_code_for(exc))

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_json_line(self) -> str:
        if self.ok:
            return _encode({"id": self.id, "result": self.result})
        code = self.code or ErrorCode.INTERNAL_ERROR
        return _encode({"id": self.id, "error": self.error, "code": code.value})


@dataclass
class Notification:
    """Engine event pushed to the front end (no id, no response expected)."""
    method: str
    params: dict = field(default_factory=dict)

    def to_json_line(self) -> str:
        return _encode({"method": self.method, "params": self.params})
