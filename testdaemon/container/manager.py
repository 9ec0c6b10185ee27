"""Container lifecycle manager.

Drives the ``docker`` CLI through the CommandExecutor; it never spawns
processes itself. Failures split into two tiers:

  Fatal (raised):     daemon unreachable, image build, container create,
                      container start/restart.
  Advisory (logged):  stop, remove, log retrieval. These return a safe
                      value (OperationOutcome, "") and never raise.

``get_container_status`` overlaps with the boolean probes
``container_exists`` / ``is_container_running``; each issues its own docker
call and they are not derived from one another.
"""

import logging
import shlex
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Optional

from testdaemon.container.types import (
    BuildOptions,
    BuildResult,
    ContainerConfig,
    ContainerStatus,
    CreateOptions,
    DockerExecResult,
    ExecOptions,
    LogOptions,
    OperationOutcome,
    SetupOptions,
    SetupResult,
    SetupStatus,
)
from testdaemon.errors.base import DaemonError
from testdaemon.errors.command import CommandExecutionError
from testdaemon.errors.docker import (
    ContainerAlreadyExistsError,
    ContainerCreateError,
    ContainerNotFoundError,
    ContainerStartError,
    ContainerStopError,
    DockerDaemonUnavailableError,
    DockerError,
    ImageBuildError,
)
from testdaemon.execution.executor import CommandExecutor
from testdaemon.execution.types import CommandOptions, CommandOutcome

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_MS = 5_000
BUILD_TIMEOUT_MS = 600_000
LIFECYCLE_TIMEOUT_MS = 30_000
REMOVE_TIMEOUT_MS = 10_000
EXEC_TIMEOUT_MS = 60_000


class ContainerManager:
    """Manages one named image and container."""

    def __init__(
        self,
        config: Optional[ContainerConfig] = None,
        executor: Optional[CommandExecutor] = None,
        platform: str = sys.platform,
        probe_timeout_ms: int = PROBE_TIMEOUT_MS,
        build_timeout_ms: int = BUILD_TIMEOUT_MS,
    ):
        self._config = config or ContainerConfig()
        self.executor = executor or CommandExecutor()
        self.platform = platform
        self.probe_timeout_ms = probe_timeout_ms
        self.build_timeout_ms = build_timeout_ms

    @classmethod
    def from_settings(
        cls,
        settings,
        config: ContainerConfig,
        executor: Optional[CommandExecutor] = None,
    ) -> "ContainerManager":
        return cls(
            config=config,
            executor=executor or CommandExecutor.from_settings(settings),
            probe_timeout_ms=settings.probe_timeout_ms,
            build_timeout_ms=settings.build_timeout_ms,
        )

    @property
    def name(self) -> str:
        return self._config.container_name

    # ------------------------------------------------------------------
    # Engine and image
    # ------------------------------------------------------------------

    async def is_daemon_running(self) -> bool:
        """True when the docker engine answers ``docker info``."""
        outcome = await self._run("docker info", self.probe_timeout_ms)
        return outcome.success

    async def is_image_built(self) -> bool:
        outcome = await self._run(
            f"docker images -q {shlex.quote(self._config.image_name)}", self.probe_timeout_ms
        )
        return outcome.success and bool(outcome.data and outcome.data.stdout.strip())

    async def build(self, options: Optional[BuildOptions] = None) -> BuildResult:
        """Build the image. Raises ImageBuildError on failure."""
        options = options or BuildOptions()
        start = time.monotonic()

        dockerfile = options.dockerfile or self._config.dockerfile_path
        context = options.context or self._config.build_context
        if not context:
            context = str(Path(dockerfile).parent) if dockerfile else "."
        tags = options.tags or [self._config.image_name]

        args = ["docker", "build"]
        for tag in tags:
            args += ["-t", shlex.quote(tag)]
        if dockerfile:
            args += ["-f", shlex.quote(dockerfile)]
        if options.no_cache:
            args.append("--no-cache")
        if options.pull:
            args.append("--pull")
        if options.quiet:
            args.append("--quiet")
        if options.platform:
            args += ["--platform", shlex.quote(options.platform)]
        if options.target:
            args += ["--target", shlex.quote(options.target)]
        for key, value in options.build_args.items():
            args += ["--build-arg", shlex.quote(f"{key}={value}")]
        for image in options.cache_from:
            args += ["--cache-from", shlex.quote(image)]
        args.append(shlex.quote(context))

        logger.info("Building image %s from %s", self._config.image_name, context)
        outcome = await self._run(" ".join(args), options.timeout or self.build_timeout_ms)
        duration = _elapsed_ms(start)

        if not outcome.success:
            reason = outcome.error.message if outcome.error else "unknown error"
            logger.error("Image build failed after %dms: %s", duration, reason)
            raise ImageBuildError(context, reason, cause=outcome.error)

        logger.info("Image built in %dms", duration)
        image_id = outcome.data.stdout.strip() if options.quiet and outcome.data else None
        return BuildResult(success=True, duration=duration, image_id=image_id or None)

    # ------------------------------------------------------------------
    # Container probes
    # ------------------------------------------------------------------

    async def container_exists(self, name: Optional[str] = None) -> bool:
        return await self._name_listed(name or self.name, all_containers=True)

    async def is_container_running(self, name: Optional[str] = None) -> bool:
        return await self._name_listed(name or self.name, all_containers=False)

    async def get_container_status(self) -> ContainerStatus:
        outcome = await self._run(
            f"docker inspect -f '{{{{.State.Status}}}}' {shlex.quote(self.name)}",
            self.probe_timeout_ms,
        )
        if not outcome.success or outcome.data is None:
            return ContainerStatus.UNKNOWN
        return ContainerStatus.parse(outcome.data.stdout)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create(self, options: Optional[CreateOptions] = None) -> None:
        """``docker run`` a new container.

        Raises ContainerAlreadyExistsError if the name is taken and
        ContainerCreateError if docker fails. ``options.name`` overrides the
        configured container name for both the check and the run.
        """
        options = options or CreateOptions()
        name = options.name or self.name
        if await self.container_exists(name):
            raise ContainerAlreadyExistsError(name)

        command = "docker run " + " ".join(self._create_args(options))
        logger.info("Creating container %s", name)

        outcome = await self._run(command, LIFECYCLE_TIMEOUT_MS)
        if not outcome.success:
            reason = outcome.error.message if outcome.error else "unknown error"
            logger.error("Failed to create container %s: %s", name, reason)
            raise ContainerCreateError(name, reason, cause=outcome.error)

        logger.info("Container created: %s", name)

    async def start(self) -> SetupStatus:
        """Bring the container up.

        Returns RUNNING if it already was (no further docker calls),
        CREATED if it had to be created, STARTED otherwise.
        """
        if await self.is_container_running():
            logger.debug("Container already running: %s", self.name)
            return SetupStatus.RUNNING

        if not await self.container_exists():
            await self.create()
            return SetupStatus.CREATED

        logger.info("Starting container %s", self.name)
        outcome = await self._run(f"docker start {shlex.quote(self.name)}", LIFECYCLE_TIMEOUT_MS)
        if not outcome.success:
            reason = outcome.error.message if outcome.error else "unknown error"
            raise ContainerStartError(self.name, reason, cause=outcome.error)

        logger.info("Container started: %s", self.name)
        return SetupStatus.STARTED

    async def stop(self) -> OperationOutcome:
        """Stop the container. Never raises."""
        if not await self.is_container_running():
            logger.debug("Container not running: %s", self.name)
            return OperationOutcome(success=True, skipped=True)

        logger.info("Stopping container %s", self.name)
        return await self._best_effort(
            f"docker stop {shlex.quote(self.name)}",
            LIFECYCLE_TIMEOUT_MS,
            lambda reason, cause: ContainerStopError(self.name, reason, cause=cause),
        )

    async def remove(self, force: bool = False) -> OperationOutcome:
        """Remove the container. Never raises."""
        if not await self.container_exists():
            logger.debug("Container does not exist: %s", self.name)
            return OperationOutcome(success=True, skipped=True)

        logger.info("Removing container %s", self.name)
        flag = " -f" if force else ""
        return await self._best_effort(
            f"docker rm{flag} {shlex.quote(self.name)}",
            REMOVE_TIMEOUT_MS,
            lambda reason, cause: DockerError(
                f"Failed to remove container {self.name}: {reason}",
                context={"container_name": self.name, "reason": reason},
                cause=cause,
            ),
        )

    async def restart(self) -> None:
        """Restart the container.

        Raises ContainerNotFoundError if it does not exist and
        ContainerStartError if docker fails.
        """
        if not await self.container_exists():
            raise ContainerNotFoundError(self.name)

        logger.info("Restarting container %s", self.name)
        outcome = await self._run(f"docker restart {shlex.quote(self.name)}", LIFECYCLE_TIMEOUT_MS)
        if not outcome.success:
            reason = outcome.error.message if outcome.error else "unknown error"
            logger.error("Failed to restart container %s: %s", self.name, reason)
            raise ContainerStartError(self.name, reason, cause=outcome.error)

    async def exec(self, command: str, options: Optional[ExecOptions] = None) -> DockerExecResult:
        """Run ``command`` through ``sh -c`` inside the running container.

        Raises ContainerStartError if the container is not running. A
        non-zero exit is reported in the result, not raised.
        """
        if not await self.is_container_running():
            raise ContainerStartError(self.name, "Container is not running")

        options = options or ExecOptions()
        args = ["docker", "exec"]
        if options.workdir:
            args += ["-w", shlex.quote(options.workdir)]
        if options.user:
            args += ["-u", shlex.quote(options.user)]
        for key, value in options.env.items():
            args += ["-e", shlex.quote(f"{key}={value}")]
        args += [shlex.quote(self.name), "sh", "-c", shlex.quote(command)]

        logger.debug("Exec in %s: %s", self.name, command)
        start = time.monotonic()
        outcome = await self._run(" ".join(args), options.timeout or EXEC_TIMEOUT_MS)
        duration = _elapsed_ms(start)

        if outcome.success and outcome.data is not None:
            return DockerExecResult(
                success=True,
                stdout=outcome.data.stdout,
                stderr=outcome.data.stderr,
                exit_code=outcome.data.exit_code or 0,
                duration=duration,
            )

        error = outcome.error
        return DockerExecResult(
            success=False,
            stdout=error.stdout if error else "",
            stderr=(error.stderr or error.message) if error else "Unknown error",
            exit_code=error.exit_code if error and error.exit_code is not None else -1,
            duration=duration,
            # An exit code means the command ran, whatever the error class
            dispatched=error is not None and error.exit_code is not None,
        )

    async def get_logs(self, options: Optional[LogOptions] = None) -> str:
        """Container logs, or "" on any failure.

        Output is buffered, so ``follow`` cannot stream: ``docker logs -f``
        would only end at the probe timeout. A follow request is served as
        a one-shot read of the current tail.
        """
        options = options or LogOptions()
        args = ["docker", "logs"]
        if options.follow:
            logger.debug("Log follow not supported for buffered reads; returning current tail")
        if options.timestamps:
            args.append("-t")
        if options.since:
            args.append(shlex.quote(f"--since={options.since}"))
        if options.until:
            args.append(shlex.quote(f"--until={options.until}"))
        args += [f"--tail={options.tail}", shlex.quote(self.name)]

        outcome = await self._run(" ".join(args), self.probe_timeout_ms)
        if not outcome.success or outcome.data is None:
            logger.warning(
                "Could not read logs for %s: %s",
                self.name,
                outcome.error.message if outcome.error else "unknown error",
            )
            return ""
        return outcome.data.stdout

    async def setup(self, options: Optional[SetupOptions] = None) -> SetupResult:
        """Idempotent bring-up: daemon check, image build, container up.

        Raises DockerDaemonUnavailableError, ImageBuildError,
        ContainerCreateError or ContainerStartError.
        """
        options = options or SetupOptions()
        start = time.monotonic()

        if not await self.is_daemon_running():
            raise DockerDaemonUnavailableError()

        image_built = False
        if not await self.is_image_built():
            if options.on_build_start:
                options.on_build_start()
            try:
                await self.build(options.build)
            except ImageBuildError as exc:
                if options.on_build_error:
                    options.on_build_error(exc)
                raise
            if options.on_build_complete:
                options.on_build_complete()
            image_built = True

        if await self.is_container_running():
            status = SetupStatus.RUNNING
        elif await self.container_exists():
            status = await self.start()
        else:
            await self.create(options.create)
            status = SetupStatus.CREATED

        if image_built:
            status = SetupStatus.BUILT

        result = SetupResult(status=status, duration=_elapsed_ms(start), image_built=image_built)
        logger.info("Container %s ready: %s (%dms)", self.name, result.status, result.duration)
        return result

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    def get_config(self) -> ContainerConfig:
        return replace(self._config)

    def update_config(self, **changes) -> None:
        self._config = replace(self._config, **changes)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, command: str, timeout: int) -> CommandOutcome:
        return await self.executor.execute(command, CommandOptions(timeout=timeout))

    async def _name_listed(self, name: str, all_containers: bool) -> bool:
        flag = " -a" if all_containers else ""
        name_filter = shlex.quote(f"name=^{name}$")
        outcome = await self._run(
            f"docker ps{flag} --filter {name_filter} --format '{{{{.Names}}}}'",
            self.probe_timeout_ms,
        )
        if not outcome.success or outcome.data is None:
            return False
        return name in outcome.data.stdout.split()

    async def _best_effort(self, command: str, timeout: int, make_error) -> OperationOutcome:
        try:
            outcome = await self._run(command, timeout)
        except DaemonError as exc:
            outcome = CommandOutcome.fail(
                CommandExecutionError(exc.message, command, cause=exc)
            )

        if outcome.success:
            logger.info("%s: ok", command)
            return OperationOutcome(success=True)

        reason = outcome.error.message if outcome.error else "unknown error"
        error = make_error(reason, outcome.error)
        logger.warning("%s failed (ignored): %s", command, reason)
        return OperationOutcome(success=False, error=error)

    def _create_args(self, options: CreateOptions) -> list[str]:
        config = self._config
        args = ["--name", shlex.quote(options.name or config.container_name)]

        if options.detach if options.detach is not None else config.detach:
            args.append("-d")
        if options.auto_remove if options.auto_remove is not None else config.auto_remove:
            args.append("--rm")

        ports = {**config.port_mappings, **options.ports}
        for container_port, host_port in ports.items():
            args += ["-p", f"{int(host_port)}:{int(container_port)}"]

        for volume in options.volumes:
            args += ["-v", shlex.quote(volume)]
        for host_path, container_path in config.volume_mappings.items():
            args += ["-v", shlex.quote(f"{host_path}:{container_path}")]

        env = {**config.environment, **options.env}
        for key, value in env.items():
            args += ["-e", shlex.quote(f"{key}={value}")]
        for env_file in options.env_files:
            args += ["--env-file", shlex.quote(env_file)]

        if options.workdir:
            args += ["-w", shlex.quote(options.workdir)]
        if options.user:
            args += ["-u", shlex.quote(options.user)]
        if options.hostname:
            args += ["--hostname", shlex.quote(options.hostname)]
        if options.interactive:
            args.append("-i")
        if options.tty:
            args.append("-t")

        network = options.network or config.network
        if network:
            args += ["--network", shlex.quote(network)]
        elif self.platform.startswith("linux"):
            # Host networking only exists on Linux engines
            args.append("--network=host")

        if options.healthcheck:
            hc = options.healthcheck
            args += ["--health-cmd", shlex.quote(" ".join(hc.command))]
            if hc.interval:
                args += ["--health-interval", shlex.quote(hc.interval)]
            if hc.timeout:
                args += ["--health-timeout", shlex.quote(hc.timeout)]
            if hc.retries:
                args += ["--health-retries", str(int(hc.retries))]
            if hc.start_period:
                args += ["--health-start-period", shlex.quote(hc.start_period)]

        args.append(shlex.quote(config.image_name))
        args += [shlex.quote(part) for part in options.command]
        return args


def _elapsed_ms(start: float) -> int:
    return int(round((time.monotonic() - start) * 1000))
