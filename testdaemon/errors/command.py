"""Command execution errors.

Error codes:
  COMMAND_001  generic command execution error
  COMMAND_002  command not found
  COMMAND_003  command timed out
  COMMAND_004  non-zero exit code
  COMMAND_005  invalid command arguments
  COMMAND_006  command cancelled
"""

from typing import Optional

from testdaemon.errors.base import DaemonError, ErrorContext


class CommandExecutionError(DaemonError):
    """Base class for command failures. Carries the captured process output."""

    default_code = "COMMAND_001"

    def __init__(
        self,
        message: str,
        command: str,
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        code: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
    ):
        merged: ErrorContext = {
            "command": command,
            "exit_code": exit_code,
            "stdout": stdout,
            "stderr": stderr,
        }
        merged.update(context or {})
        super().__init__(message, code=code, context=merged, cause=cause)
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    def is_non_zero_exit(self) -> bool:
        return self.exit_code is not None and self.exit_code != 0


class CommandNotFoundError(CommandExecutionError):
    default_code = "COMMAND_002"

    def __init__(
        self,
        command: str,
        exit_code: Optional[int] = None,
        stderr: str = "",
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            f"Command not found: {command}",
            command,
            exit_code=exit_code,
            stderr=stderr,
            context=context,
            cause=cause,
        )


class CommandTimeoutError(CommandExecutionError):
    default_code = "COMMAND_003"

    def __init__(
        self,
        command: str,
        timeout: int,
        stdout: str = "",
        stderr: str = "",
        context: Optional[ErrorContext] = None,
    ):
        merged: ErrorContext = {"timeout": timeout}
        merged.update(context or {})
        super().__init__(
            f"Command timed out after {timeout}ms: {command}",
            command,
            stdout=stdout,
            stderr=stderr,
            context=merged,
        )
        self.timeout = timeout


class CommandFailedError(CommandExecutionError):
    default_code = "COMMAND_004"

    def __init__(
        self,
        command: str,
        exit_code: int,
        stdout: str = "",
        stderr: str = "",
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            f"Command failed with exit code {exit_code}: {command}",
            command,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            context=context,
        )


class InvalidCommandArgumentsError(CommandExecutionError):
    default_code = "COMMAND_005"

    def __init__(self, command: str, reason: str, context: Optional[ErrorContext] = None):
        merged: ErrorContext = {"reason": reason}
        merged.update(context or {})
        super().__init__(
            f"Invalid command arguments for {command!r}: {reason}",
            command,
            context=merged,
        )
        self.reason = reason


class CommandCancelledError(CommandExecutionError):
    default_code = "COMMAND_006"

    def __init__(
        self,
        command: str,
        stdout: str = "",
        stderr: str = "",
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            f"Command cancelled: {command}",
            command,
            stdout=stdout,
            stderr=stderr,
            context=context,
        )
