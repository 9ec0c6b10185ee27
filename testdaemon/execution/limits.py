"""Resource limits for spawned commands.

``ResourceLimits.apply`` is a `preexec_fn`-compatible callable that sets hard
rlimits on the child after `fork()` and before `exec()`. The wall-clock
timeout in the executor is the primary guard; rlimits additionally bound
CPU time and address space for runaway test tools.

Platform notes:
  - Linux / macOS: `resource` module is available and rlimits are enforced.
  - Windows: `resource` is unavailable and `apply()` is a no-op.

A limit of 0 (or negative) leaves that rlimit untouched.
"""

import logging
import sys
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceLimits:
    memory_bytes: int = 0
    cpu_seconds: int = 0

    @property
    def is_empty(self) -> bool:
        return self.memory_bytes <= 0 and self.cpu_seconds <= 0

    @classmethod
    def from_settings(cls, settings) -> "ResourceLimits":
        return cls(
            memory_bytes=max(0, int(settings.rlimit_as_bytes)),
            cpu_seconds=max(0, int(settings.rlimit_cpu_seconds)),
        )

    def apply(self) -> None:
        """Set per-process limits before exec. No-op on Windows."""
        if sys.platform == "win32":
            return

        try:
            import resource

            if self.memory_bytes > 0:
                resource.setrlimit(
                    resource.RLIMIT_AS, (self.memory_bytes, resource.RLIM_INFINITY)
                )
            if self.cpu_seconds > 0:
                resource.setrlimit(
                    resource.RLIMIT_CPU, (self.cpu_seconds, resource.RLIM_INFINITY)
                )

            logger.debug(
                "Resource limits applied: mem=%s cpu=%s",
                f"{self.memory_bytes / (1024**3):.1f}GB" if self.memory_bytes > 0 else "unlimited",
                f"{self.cpu_seconds}s" if self.cpu_seconds > 0 else "unlimited",
            )

        except (ImportError, ValueError, OSError) as exc:
            logger.warning("Failed to apply resource limits: %s", exc)
