"""Container engine errors.

Error codes:
  DOCKER_001  generic engine error
  DOCKER_002  container not found
  DOCKER_003  image build failed
  DOCKER_004  container already exists
  DOCKER_005  container start failed
  DOCKER_006  container stop failed
  DOCKER_007  engine daemon unavailable
  DOCKER_008  image pull failed
  DOCKER_009  exec dispatch failed
  DOCKER_010  container create failed

Stop failures are advisory: the lifecycle manager logs them instead of
raising, but the type exists so the outcome can still carry a coded error.
"""

from typing import Optional

from testdaemon.errors.base import DaemonError, ErrorContext, Severity


class DockerError(DaemonError):
    default_code = "DOCKER_001"


class ContainerNotFoundError(DockerError):
    default_code = "DOCKER_002"

    def __init__(self, container_name: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Container not found: {container_name}",
            context={"container_name": container_name},
            cause=cause,
        )
        self.container_name = container_name


class ImageBuildError(DockerError):
    default_code = "DOCKER_003"

    def __init__(self, build_path: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Image build failed for {build_path}: {reason}",
            context={"build_path": build_path, "reason": reason},
            cause=cause,
        )
        self.build_path = build_path
        self.reason = reason


class ContainerAlreadyExistsError(DockerError):
    default_code = "DOCKER_004"

    def __init__(self, container_name: str):
        super().__init__(
            f"Container already exists: {container_name}",
            context={"container_name": container_name},
        )
        self.container_name = container_name


class ContainerStartError(DockerError):
    default_code = "DOCKER_005"

    def __init__(self, container_name: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to start container {container_name}: {reason}",
            context={"container_name": container_name, "reason": reason},
            cause=cause,
        )
        self.container_name = container_name
        self.reason = reason


class ContainerStopError(DockerError):
    default_code = "DOCKER_006"
    severity = Severity.ADVISORY

    def __init__(self, container_name: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to stop container {container_name}: {reason}",
            context={"container_name": container_name, "reason": reason},
            cause=cause,
        )
        self.container_name = container_name
        self.reason = reason


class DockerDaemonUnavailableError(DockerError):
    default_code = "DOCKER_007"

    def __init__(self, reason: Optional[str] = None, context: Optional[ErrorContext] = None):
        message = (
            f"Docker daemon unavailable: {reason}"
            if reason
            else "Docker daemon is not running or not accessible"
        )
        super().__init__(message, context=context)


class ImagePullError(DockerError):
    default_code = "DOCKER_008"

    def __init__(self, image_name: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to pull image {image_name}: {reason}",
            context={"image_name": image_name, "reason": reason},
            cause=cause,
        )
        self.image_name = image_name
        self.reason = reason


class ContainerExecError(DockerError):
    default_code = "DOCKER_009"

    def __init__(self, container_name: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Command execution failed in container {container_name}: {reason}",
            context={"container_name": container_name, "reason": reason},
            cause=cause,
        )
        self.container_name = container_name
        self.reason = reason


class ContainerCreateError(DockerError):
    default_code = "DOCKER_010"

    def __init__(self, container_name: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Failed to create container {container_name}: {reason}",
            context={"container_name": container_name, "reason": reason},
            cause=cause,
        )
        self.container_name = container_name
        self.reason = reason
