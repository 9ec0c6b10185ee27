"""Error taxonomy for testdaemon.

Categories: DAEMON, DOCKER, DETECTION, COMMAND, VALIDATION, FILE.
"""

from testdaemon.errors.base import DaemonError, ErrorContext, Severity
from testdaemon.errors.command import (
    CommandCancelledError,
    CommandExecutionError,
    CommandFailedError,
    CommandNotFoundError,
    CommandTimeoutError,
    InvalidCommandArgumentsError,
)
from testdaemon.errors.detection import (
    AmbiguousFrameworkError,
    DetectionError,
    InvalidProjectStructureError,
    NoFrameworkDetectedError,
    UnsupportedFrameworkError,
)
from testdaemon.errors.docker import (
    ContainerAlreadyExistsError,
    ContainerCreateError,
    ContainerExecError,
    ContainerNotFoundError,
    ContainerStartError,
    ContainerStopError,
    DockerDaemonUnavailableError,
    DockerError,
    ImageBuildError,
    ImagePullError,
)
from testdaemon.errors.file import (
    DirectoryCreationError,
    FileCopyError,
    FilePermissionError,
    FileReadError,
    FileSearchError,
    FileSystemError,
    FileWriteError,
    InvalidJsonError,
    PathNotFoundError,
)
from testdaemon.errors.validation import (
    ConfigurationValidationError,
    InvalidFormatError,
    RequiredFieldError,
    SchemaValidationError,
    ValidationError,
    ValidationErrorDetail,
    ValueOutOfRangeError,
)

__all__ = [
    "AmbiguousFrameworkError",
    "CommandCancelledError",
    "CommandExecutionError",
    "CommandFailedError",
    "CommandNotFoundError",
    "CommandTimeoutError",
    "ConfigurationValidationError",
    "ContainerAlreadyExistsError",
    "ContainerCreateError",
    "ContainerExecError",
    "ContainerNotFoundError",
    "ContainerStartError",
    "ContainerStopError",
    "DaemonError",
    "DetectionError",
    "DirectoryCreationError",
    "DockerDaemonUnavailableError",
    "DockerError",
    "ErrorContext",
    "FileCopyError",
    "FilePermissionError",
    "FileReadError",
    "FileSearchError",
    "FileSystemError",
    "FileWriteError",
    "ImageBuildError",
    "ImagePullError",
    "InvalidCommandArgumentsError",
    "InvalidFormatError",
    "InvalidJsonError",
    "InvalidProjectStructureError",
    "NoFrameworkDetectedError",
    "PathNotFoundError",
    "RequiredFieldError",
    "SchemaValidationError",
    "Severity",
    "UnsupportedFrameworkError",
    "ValidationError",
    "ValidationErrorDetail",
    "ValueOutOfRangeError",
]
