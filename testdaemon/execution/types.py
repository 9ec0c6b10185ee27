"""Types for command execution.

CommandOptions/CommandResult describe a single command run.
CommandOutcome is the discriminated success/failure value returned by
``CommandExecutor.execute``: exactly one of ``data`` or ``error`` is set.
CommandDefinition/ParallelExecutionResult describe a batch run.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from testdaemon.errors.command import CommandExecutionError
from testdaemon.execution.limits import ResourceLimits

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_RETRIES = 0
DEFAULT_MAX_BUFFER = 1024 * 1024
DEFAULT_RETRY_DELAY_MS = 1_000
DEFAULT_BACKOFF_MULTIPLIER = 2.0
MAX_RETRY_DELAY_MS = 30_000


@dataclass
class CommandOptions:
    """Per-call options. ``None`` means "use the executor's default".

    env is merged over the ambient environment, never replacing it.
    cancel_event, when set, aborts the running attempt and any pending
    retries with CommandCancelledError.
    """

    timeout: Optional[int] = None
    retries: Optional[int] = None
    cwd: Optional[str] = None
    env: Optional[dict[str, str]] = None
    max_buffer: Optional[int] = None
    retry_delay: Optional[int] = None
    retry_backoff_multiplier: Optional[float] = None
    cancel_event: Optional[asyncio.Event] = None
    resource_limits: Optional[ResourceLimits] = None


@dataclass
class CommandResult:
    """Captured output of one command. Duration is in milliseconds."""

    success: bool
    stdout: str
    stderr: str
    exit_code: Optional[int]
    duration: int
    command: str
    attempts: int = 1
    error: Optional[CommandExecutionError] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "duration": self.duration,
            "command": self.command,
            "attempts": self.attempts,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class CommandOutcome:
    success: bool
    data: Optional[CommandResult] = None
    error: Optional[CommandExecutionError] = None

    @classmethod
    def ok(cls, data: CommandResult) -> "CommandOutcome":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: CommandExecutionError) -> "CommandOutcome":
        return cls(success=False, error=error)


@dataclass
class CommandDefinition:
    id: str
    command: str
    options: Optional[CommandOptions] = None


@dataclass
class ParallelOptions:
    """Batch options.

    concurrency=None runs every command in a single group.
    stop_on_error and cancel_event only keep *new* groups from starting;
    commands already dispatched in the current group always finish.
    """

    concurrency: Optional[int] = None
    stop_on_error: bool = False
    cancel_event: Optional[asyncio.Event] = None


@dataclass
class ParallelExecutionResult:
    results: dict[str, CommandResult] = field(default_factory=dict)
    success: bool = True
    duration: int = 0
    successful: int = 0
    failed: int = 0
    total: int = 0

    @property
    def skipped(self) -> int:
        return self.total - len(self.results)

    def to_dict(self) -> dict:
        return {
            "results": {key: r.to_dict() for key, r in self.results.items()},
            "success": self.success,
            "duration": self.duration,
            "successful": self.successful,
            "failed": self.failed,
            "total": self.total,
        }
