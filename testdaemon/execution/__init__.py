"""Async command execution with timeouts, retries and batch runs."""

from testdaemon.execution.executor import CommandExecutor, calculate_retry_delay
from testdaemon.execution.failure_classifier import AttemptFailure, classify_failure
from testdaemon.execution.limits import ResourceLimits
from testdaemon.execution.types import (
    CommandDefinition,
    CommandOptions,
    CommandOutcome,
    CommandResult,
    ParallelExecutionResult,
    ParallelOptions,
)

__all__ = [
    "AttemptFailure",
    "CommandDefinition",
    "CommandExecutor",
    "CommandOptions",
    "CommandOutcome",
    "CommandResult",
    "ParallelExecutionResult",
    "ParallelOptions",
    "ResourceLimits",
    "calculate_retry_delay",
    "classify_failure",
]
