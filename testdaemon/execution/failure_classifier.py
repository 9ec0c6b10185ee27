"""Failure classification for a single command attempt.

Structured signals are checked first:
  1. the timeout timer won the race          -> CommandTimeoutError
  2. the cancel event won the race           -> CommandCancelledError
  3. spawn raised FileNotFoundError, or the
     shell reported exit 127                 -> CommandNotFoundError
Only then does the classifier fall back to matching stderr text, since
messages differ between shells, platforms and locales.
"""

from dataclasses import dataclass
from typing import Optional

from testdaemon.errors.command import (
    CommandCancelledError,
    CommandExecutionError,
    CommandFailedError,
    CommandNotFoundError,
    CommandTimeoutError,
)

# POSIX shells exit with 127 when the command cannot be found.
EXIT_COMMAND_NOT_FOUND = 127

NOT_FOUND_MARKERS: tuple[str, ...] = (
    "command not found",
    "not found",
    "no such file or directory",
    "is not recognized as an internal or external command",
    "executable file not found",
)


@dataclass
class AttemptFailure:
    """Raw facts about one failed attempt, before classification."""

    command: str
    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    cancelled: bool = False
    timeout: int = 0
    spawn_error: Optional[BaseException] = None
    max_buffer_exceeded: bool = False


def classify_failure(failure: AttemptFailure) -> CommandExecutionError:
    """Map a failed attempt onto the command error taxonomy."""
    if failure.timed_out:
        return CommandTimeoutError(
            failure.command,
            failure.timeout,
            stdout=failure.stdout,
            stderr=failure.stderr,
        )

    if failure.cancelled:
        return CommandCancelledError(
            failure.command, stdout=failure.stdout, stderr=failure.stderr
        )

    if isinstance(failure.spawn_error, FileNotFoundError):
        return CommandNotFoundError(
            failure.command, stderr=str(failure.spawn_error), cause=failure.spawn_error
        )

    if failure.spawn_error is not None:
        return CommandExecutionError(
            f"Failed to spawn command: {failure.spawn_error}",
            failure.command,
            stderr=str(failure.spawn_error),
            cause=failure.spawn_error,
        )

    if failure.max_buffer_exceeded:
        return CommandExecutionError(
            f"Output exceeded max_buffer: {failure.command}",
            failure.command,
            exit_code=failure.exit_code,
            stdout=failure.stdout,
            stderr=failure.stderr,
            context={"max_buffer_exceeded": True},
        )

    if failure.exit_code == EXIT_COMMAND_NOT_FOUND:
        return CommandNotFoundError(
            failure.command, exit_code=failure.exit_code, stderr=failure.stderr
        )

    if _contains_any(failure.stderr.lower(), NOT_FOUND_MARKERS):
        return CommandNotFoundError(
            failure.command, exit_code=failure.exit_code, stderr=failure.stderr
        )

    return CommandFailedError(
        failure.command,
        failure.exit_code if failure.exit_code is not None else -1,
        stdout=failure.stdout,
        stderr=failure.stderr,
    )


def _contains_any(text: str, patterns: tuple[str, ...]) -> bool:
    return any(pattern in text for pattern in patterns)
