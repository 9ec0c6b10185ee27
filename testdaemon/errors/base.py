"""DaemonError, the base class for every error raised by testdaemon.

Each error carries a stable code of the form CATEGORY_### (e.g. DOCKER_003),
a free-form context mapping, an optional cause, and a severity tag.
Errors round-trip through plain dicts so they can cross process boundaries
(IPC, log shipping, JSON reports) and be rebuilt on the other side.
"""

from __future__ import annotations

import json
import traceback
from enum import StrEnum
from typing import Any, Optional

ErrorContext = dict[str, Any]


class Severity(StrEnum):
    """How a failure affects the caller's workflow.

    FATAL failures abort the current run (environment not ready).
    ADVISORY failures are logged and the workflow continues.
    """

    FATAL = "fatal"
    ADVISORY = "advisory"


class DaemonError(Exception):
    """Base error with a stable code, structured context and cause chaining."""

    default_code = "DAEMON_001"
    severity: Severity = Severity.FATAL

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.context: ErrorContext = dict(context or {})
        self.name = type(self).__name__
        self._stack: Optional[str] = None
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    @property
    def stack(self) -> Optional[str]:
        if self._stack is not None:
            return self._stack
        if self.__traceback__ is None:
            return None
        return "".join(traceback.format_exception(type(self), self, self.__traceback__))

    def is_error_code(self, code: str) -> bool:
        return self.code == code

    def is_error_category(self, category: str) -> bool:
        """Match on the code prefix, e.g. ``is_error_category("DOCKER")``."""
        return self.code.startswith(category)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "message": self.message,
            "code": self.code,
            "severity": self.severity.value,
            "context": self.context,
            "cause": _serialize_cause(self.__cause__),
            "stack": self.stack,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DaemonError":
        """Rebuild an error from ``to_dict()`` output.

        The concrete subclass is not reconstructed: the result is always a
        plain DaemonError whose ``name`` reports the original class.
        """
        cause_data = data.get("cause")
        cause: Optional[BaseException] = None
        if isinstance(cause_data, dict):
            cause = DaemonError(
                str(cause_data.get("message", "")),
                code=cause_data.get("code") or DaemonError.default_code,
            )
            cause.name = str(cause_data.get("name", "Error"))

        error = DaemonError(
            str(data.get("message", "")),
            code=data.get("code") or cls.default_code,
            context=data.get("context") or {},
            cause=cause,
        )
        error.name = str(data.get("name", "DaemonError"))
        error._stack = data.get("stack")
        severity = data.get("severity")
        if severity in (Severity.FATAL.value, Severity.ADVISORY.value):
            error.severity = Severity(severity)
        return error

    @classmethod
    def from_json(cls, raw: str) -> "DaemonError":
        return cls.from_dict(json.loads(raw))

    def __repr__(self) -> str:
        return f"{self.name}(code={self.code!r}, message={self.message!r})"


def _serialize_cause(cause: Optional[BaseException]) -> Optional[dict[str, Any]]:
    if cause is None:
        return None
    if isinstance(cause, DaemonError):
        return {"name": cause.name, "message": cause.message, "code": cause.code}
    return {"name": type(cause).__name__, "message": str(cause), "code": None}
