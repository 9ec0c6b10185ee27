"""Container lifecycle management over the docker CLI."""

from testdaemon.container.config import container_config_for
from testdaemon.container.manager import ContainerManager
from testdaemon.container.types import (
    BuildOptions,
    BuildResult,
    ContainerConfig,
    ContainerStatus,
    CreateOptions,
    DockerExecResult,
    ExecOptions,
    HealthCheck,
    LogOptions,
    OperationOutcome,
    SetupOptions,
    SetupResult,
    SetupStatus,
)

__all__ = [
    "BuildOptions",
    "BuildResult",
    "ContainerConfig",
    "ContainerManager",
    "ContainerStatus",
    "CreateOptions",
    "DockerExecResult",
    "ExecOptions",
    "HealthCheck",
    "LogOptions",
    "OperationOutcome",
    "SetupOptions",
    "SetupResult",
    "SetupStatus",
    "container_config_for",
]
