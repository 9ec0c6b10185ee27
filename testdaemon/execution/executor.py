"""Async command executor.

Runs shell commands as subprocesses with timeout enforcement, bounded
retries with exponential backoff, optional cancellation, and full
stdout/stderr capture. ``execute`` never raises: every failure comes back
as a classified CommandExecutionError inside a CommandOutcome.

Timeouts race the process against a timer. When the timer wins, the
process group is sent SIGKILL (``proc.kill()`` on Windows) and the attempt
is reported as timed out; the executor waits only briefly for the exit and
does not verify that every grandchild is gone.

Batches run in fixed-size groups. Each group is awaited in full before the
next one starts, so one slow command holds back the following group even
when other slots are idle.
"""

import asyncio
import contextlib
import dataclasses
import logging
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from testdaemon.errors.command import (
    CommandCancelledError,
    CommandExecutionError,
    InvalidCommandArgumentsError,
)
from testdaemon.errors.validation import ValueOutOfRangeError
from testdaemon.execution.failure_classifier import AttemptFailure, classify_failure
from testdaemon.execution.limits import ResourceLimits
from testdaemon.execution.types import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_MAX_BUFFER,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
    MAX_RETRY_DELAY_MS,
    CommandDefinition,
    CommandOptions,
    CommandOutcome,
    CommandResult,
    ParallelExecutionResult,
    ParallelOptions,
)

logger = logging.getLogger(__name__)

# Grace period for a killed process to be reaped (seconds)
_KILL_WAIT_SECONDS = 1.0


def calculate_retry_delay(attempt: int, base_delay: int, multiplier: float) -> int:
    """Backoff delay in ms before ``attempt``, capped at 30 seconds."""
    return int(min(base_delay * (multiplier ** attempt), MAX_RETRY_DELAY_MS))


@dataclass
class _ResolvedOptions:
    timeout: int
    retries: int
    cwd: str
    env: dict[str, str]
    max_buffer: int
    retry_delay: int
    retry_backoff_multiplier: float
    cancel_event: Optional[asyncio.Event]
    resource_limits: Optional[ResourceLimits]


class CommandExecutor:
    """Executes commands with per-call options layered over instance defaults."""

    def __init__(self, defaults: Optional[CommandOptions] = None):
        self.defaults = defaults or CommandOptions()

    @classmethod
    def from_settings(cls, settings) -> "CommandExecutor":
        limits = ResourceLimits.from_settings(settings)
        return cls(
            CommandOptions(
                timeout=settings.command_timeout_ms,
                resource_limits=None if limits.is_empty else limits,
            )
        )

    async def execute(
        self,
        command: str,
        options: Optional[CommandOptions] = None,
    ) -> CommandOutcome:
        """Run ``command`` up to ``retries + 1`` times.

        The first successful attempt short-circuits the remaining retries.
        If every attempt fails, the last attempt's classified error is
        returned. Never raises.
        """
        try:
            resolved = self._resolve(command, options or CommandOptions())
        except InvalidCommandArgumentsError as exc:
            return CommandOutcome.fail(exc)

        max_attempts = resolved.retries + 1
        last_error: Optional[CommandExecutionError] = None
        attempts = 0

        for attempt in range(max_attempts):
            if attempt > 0:
                delay = calculate_retry_delay(
                    attempt, resolved.retry_delay, resolved.retry_backoff_multiplier
                )
                logger.info(
                    "Retrying command in %dms (attempt %d/%d): %s",
                    delay, attempt + 1, max_attempts, command,
                )
                if await self._wait_backoff(delay, resolved.cancel_event):
                    last_error = CommandCancelledError(command)
                    break

            attempts = attempt + 1
            outcome = await self._execute_single(command, resolved)
            if outcome.success and outcome.data is not None:
                outcome.data.attempts = attempts
                return outcome

            last_error = outcome.error
            if isinstance(last_error, CommandCancelledError):
                break

        if last_error is None:
            last_error = CommandExecutionError(f"Command failed: {command}", command)
        last_error.context["attempts"] = attempts
        return CommandOutcome.fail(last_error)

    async def execute_parallel(
        self,
        commands: list[CommandDefinition],
        options: Optional[ParallelOptions] = None,
    ) -> ParallelExecutionResult:
        """Run ``commands`` in groups of ``concurrency``.

        Raises ValueOutOfRangeError for a concurrency below 1; command
        failures are reported in the result, never raised.
        """
        options = options or ParallelOptions()
        if options.concurrency is not None and options.concurrency < 1:
            raise ValueOutOfRangeError("concurrency", 1, float("inf"), options.concurrency)

        start = time.monotonic()
        group_size = options.concurrency or max(len(commands), 1)
        result = ParallelExecutionResult(total=len(commands))
        should_stop = False

        for offset in range(0, len(commands), group_size):
            if should_stop:
                break
            if options.cancel_event is not None and options.cancel_event.is_set():
                logger.info("Batch cancelled; %d command(s) not started", len(commands) - offset)
                break

            group = commands[offset:offset + group_size]
            group_results = await asyncio.gather(
                *(self._run_definition(definition, options.cancel_event) for definition in group)
            )

            for definition, command_result in zip(group, group_results):
                result.results[definition.id] = command_result
                if command_result.success:
                    result.successful += 1
                else:
                    result.failed += 1
                    if options.stop_on_error:
                        should_stop = True

        result.success = result.failed == 0
        result.duration = _elapsed_ms(start)
        logger.info(
            "Batch complete: %d/%d succeeded, %d failed (%dms)",
            result.successful, result.total, result.failed, result.duration,
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_definition(
        self,
        definition: CommandDefinition,
        cancel_event: Optional[asyncio.Event],
    ) -> CommandResult:
        options = definition.options or CommandOptions()
        if options.cancel_event is None and cancel_event is not None:
            options = dataclasses.replace(options, cancel_event=cancel_event)

        start = time.monotonic()
        outcome = await self.execute(definition.command, options)
        if outcome.success and outcome.data is not None:
            return outcome.data

        error = outcome.error
        return CommandResult(
            success=False,
            stdout=error.stdout if error else "",
            stderr=error.stderr if error else "",
            exit_code=error.exit_code if error else None,
            duration=_elapsed_ms(start),
            command=definition.command,
            attempts=int(error.context.get("attempts", 1)) if error else 1,
            error=error,
        )

    def _resolve(self, command: str, options: CommandOptions) -> _ResolvedOptions:
        if not command or not command.strip():
            raise InvalidCommandArgumentsError(command or "", "command must not be empty")

        def pick(name, fallback):
            value = getattr(options, name)
            if value is None:
                value = getattr(self.defaults, name)
            return fallback if value is None else value

        timeout = int(pick("timeout", DEFAULT_TIMEOUT_MS))
        retries = int(pick("retries", DEFAULT_RETRIES))
        max_buffer = int(pick("max_buffer", DEFAULT_MAX_BUFFER))
        retry_delay = int(pick("retry_delay", DEFAULT_RETRY_DELAY_MS))

        for field_name, value in (
            ("timeout", timeout),
            ("retries", retries),
            ("retry_delay", retry_delay),
        ):
            if value < 0:
                raise InvalidCommandArgumentsError(
                    command,
                    f"{field_name} must be >= 0",
                    context={"field": field_name, "value": value},
                ) from ValueOutOfRangeError(field_name, 0, float("inf"), value)
        if max_buffer < 1:
            raise InvalidCommandArgumentsError(
                command, "max_buffer must be >= 1", context={"field": "max_buffer", "value": max_buffer}
            )

        cwd = str(pick("cwd", os.getcwd()))
        if not Path(cwd).is_dir():
            raise InvalidCommandArgumentsError(
                command, f"working directory does not exist: {cwd}", context={"cwd": cwd}
            )

        env = dict(self.defaults.env or {})
        env.update(options.env or {})

        return _ResolvedOptions(
            timeout=timeout,
            retries=retries,
            cwd=cwd,
            env=env,
            max_buffer=max_buffer,
            retry_delay=retry_delay,
            retry_backoff_multiplier=float(
                pick("retry_backoff_multiplier", DEFAULT_BACKOFF_MULTIPLIER)
            ),
            cancel_event=pick("cancel_event", None),
            resource_limits=pick("resource_limits", None),
        )

    async def _execute_single(self, command: str, options: _ResolvedOptions) -> CommandOutcome:
        logger.debug("Running command: %s (cwd=%s)", command, options.cwd)
        start = time.monotonic()

        if options.cancel_event is not None and options.cancel_event.is_set():
            return CommandOutcome.fail(
                classify_failure(AttemptFailure(command=command, cancelled=True))
            )

        preexec_fn = None
        if options.resource_limits is not None and not options.resource_limits.is_empty:
            preexec_fn = options.resource_limits.apply

        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=options.cwd,
                env={**os.environ, **options.env},
                start_new_session=os.name == "posix",
                preexec_fn=preexec_fn,
            )
        except OSError as exc:
            logger.warning("Failed to spawn %r: %s", command, exc)
            return CommandOutcome.fail(
                classify_failure(AttemptFailure(command=command, spawn_error=exc))
            )

        communicate = asyncio.ensure_future(proc.communicate())
        waiters: set[asyncio.Future] = {communicate}
        cancel_waiter: Optional[asyncio.Future] = None
        if options.cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(options.cancel_event.wait())
            waiters.add(cancel_waiter)

        timeout_seconds = options.timeout / 1000 if options.timeout > 0 else None
        done, _ = await asyncio.wait(
            waiters, timeout=timeout_seconds, return_when=asyncio.FIRST_COMPLETED
        )
        if cancel_waiter is not None and not cancel_waiter.done():
            cancel_waiter.cancel()

        if communicate not in done:
            cancelled = cancel_waiter is not None and cancel_waiter in done
            await self._terminate(proc)
            communicate.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await communicate

            duration = _elapsed_ms(start)
            logger.warning(
                "Command %s after %dms: %s",
                "cancelled" if cancelled else "timed out", duration, command,
            )
            return CommandOutcome.fail(
                classify_failure(
                    AttemptFailure(
                        command=command,
                        timed_out=not cancelled,
                        cancelled=cancelled,
                        timeout=options.timeout,
                    )
                )
            )

        stdout_bytes, stderr_bytes = communicate.result()
        duration = _elapsed_ms(start)
        exceeded = len(stdout_bytes) > options.max_buffer or len(stderr_bytes) > options.max_buffer
        stdout = stdout_bytes[:options.max_buffer].decode("utf-8", errors="replace")
        stderr = stderr_bytes[:options.max_buffer].decode("utf-8", errors="replace")
        exit_code = proc.returncode

        if exit_code == 0 and not exceeded:
            logger.debug("Command OK (%dms): %s", duration, command)
            return CommandOutcome.ok(
                CommandResult(
                    success=True,
                    stdout=stdout,
                    stderr=stderr,
                    exit_code=0,
                    duration=duration,
                    command=command,
                )
            )

        logger.warning("Command FAILED (exit=%s, %dms): %s", exit_code, duration, command)
        if stderr:
            logger.debug("stderr (tail):\n%s", _truncate_output(stderr))

        return CommandOutcome.fail(
            classify_failure(
                AttemptFailure(
                    command=command,
                    exit_code=exit_code,
                    stdout=stdout,
                    stderr=stderr,
                    max_buffer_exceeded=exceeded,
                )
            )
        )

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            if os.name == "posix":
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(proc.wait(), timeout=_KILL_WAIT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Process %d did not exit after kill", proc.pid)

    async def _wait_backoff(self, delay_ms: int, cancel_event: Optional[asyncio.Event]) -> bool:
        """Sleep ``delay_ms``. Returns True if cancelled while waiting."""
        if cancel_event is None:
            await asyncio.sleep(delay_ms / 1000)
            return False
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay_ms / 1000)
        except asyncio.TimeoutError:
            return False
        return True


def _elapsed_ms(start: float) -> int:
    return int(round((time.monotonic() - start) * 1000))


def _truncate_output(text: str, max_lines: int = 60, max_chars: int = 4000) -> str:
    """Return a concise tail of command output for logs."""
    if not text:
        return ""
    tail = "\n".join(text.splitlines()[-max_lines:])
    if len(tail) > max_chars:
        tail = tail[-max_chars:]
    return tail
