"""Types for the container lifecycle manager.

Durations are milliseconds. Port mappings are container port -> host port.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Callable, Optional

from testdaemon.core.config import DEFAULT_CONTAINER_NAME, DEFAULT_IMAGE_NAME
from testdaemon.errors.base import DaemonError, Severity


class ContainerStatus(StrEnum):
    UNKNOWN = "unknown"
    CREATED = "created"
    RUNNING = "running"
    PAUSED = "paused"
    RESTARTING = "restarting"
    EXITED = "exited"
    REMOVING = "removing"
    DEAD = "dead"

    @classmethod
    def parse(cls, raw: str) -> "ContainerStatus":
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class SetupStatus(StrEnum):
    RUNNING = "running"
    STARTED = "started"
    CREATED = "created"
    BUILT = "built"


@dataclass
class ContainerConfig:
    container_name: str = DEFAULT_CONTAINER_NAME
    image_name: str = DEFAULT_IMAGE_NAME
    dockerfile_path: Optional[str] = None
    build_context: Optional[str] = None
    port_mappings: dict[int, int] = field(default_factory=dict)
    volume_mappings: dict[str, str] = field(default_factory=dict)
    environment: dict[str, str] = field(default_factory=dict)
    network: Optional[str] = None
    auto_remove: bool = False
    detach: bool = True


@dataclass
class BuildOptions:
    timeout: Optional[int] = None
    no_cache: bool = False
    pull: bool = False
    quiet: bool = False
    platform: Optional[str] = None
    target: Optional[str] = None
    build_args: dict[str, str] = field(default_factory=dict)
    cache_from: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    context: Optional[str] = None
    dockerfile: Optional[str] = None


@dataclass
class BuildResult:
    success: bool
    duration: int
    image_id: Optional[str] = None


@dataclass
class HealthCheck:
    command: list[str]
    interval: Optional[str] = None  # docker duration, e.g. "30s"
    timeout: Optional[str] = None
    retries: Optional[int] = None
    start_period: Optional[str] = None


@dataclass
class CreateOptions:
    """Overrides for ``docker run``. ``None`` falls back to the ContainerConfig."""

    name: Optional[str] = None
    ports: dict[int, int] = field(default_factory=dict)
    volumes: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    env_files: list[str] = field(default_factory=list)
    workdir: Optional[str] = None
    user: Optional[str] = None
    hostname: Optional[str] = None
    auto_remove: Optional[bool] = None
    detach: Optional[bool] = None
    interactive: bool = False
    tty: bool = False
    network: Optional[str] = None
    command: list[str] = field(default_factory=list)
    healthcheck: Optional[HealthCheck] = None


@dataclass
class ExecOptions:
    workdir: Optional[str] = None
    env: dict[str, str] = field(default_factory=dict)
    user: Optional[str] = None
    timeout: Optional[int] = None


@dataclass
class DockerExecResult:
    """Result of ``docker exec``.

    ``dispatched`` is False when the command never ran to an exit code
    (timeout, cancelled, spawn failure). A command that ran and exited
    non-zero, even with 127 or "not found" output, was dispatched;
    ``success`` alone cannot tell a failing test run from a broken
    environment.
    """

    success: bool
    stdout: str
    stderr: str
    exit_code: int
    duration: int
    dispatched: bool = True


@dataclass
class LogOptions:
    tail: int = 100
    follow: bool = False  # accepted, served as a one-shot read
    timestamps: bool = False
    since: Optional[str] = None
    until: Optional[str] = None


@dataclass
class SetupOptions:
    on_build_start: Optional[Callable[[], None]] = None
    on_build_complete: Optional[Callable[[], None]] = None
    on_build_error: Optional[Callable[[Exception], None]] = None
    build: Optional[BuildOptions] = None
    create: Optional[CreateOptions] = None


@dataclass
class SetupResult:
    status: SetupStatus
    duration: int
    image_built: bool = False

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "duration": self.duration,
            "image_built": self.image_built,
        }


@dataclass
class OperationOutcome:
    """Result of a best-effort operation (stop, remove). Never raised."""

    success: bool
    skipped: bool = False
    error: Optional[DaemonError] = None
    severity: Severity = Severity.ADVISORY
