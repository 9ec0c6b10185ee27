"""Unit tests for ContainerManager.

The docker CLI is never invoked: a scripted executor answers each command
by prefix and records what was sent.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from testdaemon.container import (
    BuildOptions,
    ContainerConfig,
    ContainerManager,
    ContainerStatus,
    CreateOptions,
    ExecOptions,
    HealthCheck,
    LogOptions,
    SetupOptions,
    SetupStatus,
)
from testdaemon.errors import (
    CommandFailedError,
    CommandTimeoutError,
    ContainerAlreadyExistsError,
    ContainerCreateError,
    ContainerNotFoundError,
    ContainerStartError,
    ContainerStopError,
    DaemonError,
    DockerDaemonUnavailableError,
    DockerError,
    ImageBuildError,
    Severity,
)
from testdaemon.execution import AttemptFailure, CommandOutcome, CommandResult, classify_failure

RUNNING_PS = "docker ps --filter"
ALL_PS = "docker ps -a --filter"


def _ok(stdout: str = "") -> CommandOutcome:
    return CommandOutcome.ok(
        CommandResult(success=True, stdout=stdout, stderr="", exit_code=0, duration=1, command="docker")
    )


def _fail(exit_code: int = 1, stderr: str = "Error response from daemon") -> CommandOutcome:
    return CommandOutcome.fail(CommandFailedError("docker", exit_code, stderr=stderr))


class ScriptedExecutor:
    """Answers ``execute`` from (prefix, outcome) rules; the latest rule wins."""

    def __init__(self):
        self.rules: list[tuple[str, object]] = []
        self.calls: list[str] = []
        self.timeouts: list[int] = []

    def on(self, prefix: str, outcome) -> "ScriptedExecutor":
        self.rules.insert(0, (prefix, outcome))
        return self

    async def execute(self, command, options=None):
        self.calls.append(command)
        self.timeouts.append(options.timeout if options else None)
        for prefix, outcome in self.rules:
            if command.startswith(prefix):
                return outcome(command) if callable(outcome) else outcome
        return _ok()

    def sent(self, prefix: str) -> list[str]:
        return [c for c in self.calls if c.startswith(prefix)]


@pytest.fixture
def docker() -> ScriptedExecutor:
    return ScriptedExecutor()


@pytest.fixture
def config() -> ContainerConfig:
    return ContainerConfig(container_name="app", image_name="acme/app")


@pytest.fixture
def manager(config, docker) -> ContainerManager:
    return ContainerManager(config=config, executor=docker, platform="linux")


class TestProbes:
    @pytest.mark.asyncio
    async def test_daemon_running(self, manager, docker):
        assert await manager.is_daemon_running()
        docker.on("docker info", _fail())
        assert not await manager.is_daemon_running()
        assert docker.timeouts[0] == 5000

    @pytest.mark.asyncio
    async def test_image_built(self, manager, docker):
        assert not await manager.is_image_built()
        docker.on("docker images -q acme/app", _ok("3f2a1b\n"))
        assert await manager.is_image_built()

    @pytest.mark.asyncio
    async def test_name_must_match_exactly(self, manager, docker):
        docker.on(ALL_PS, _ok("app-old\napp2\n"))
        assert not await manager.container_exists()

        docker.on(ALL_PS, _ok("app\n"))
        assert await manager.container_exists()
        assert docker.calls[-1] == "docker ps -a --filter 'name=^app$' --format '{{.Names}}'"

    @pytest.mark.asyncio
    async def test_probe_failure_means_absent(self, manager, docker):
        docker.on(RUNNING_PS, _fail())
        assert not await manager.is_container_running()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "outcome, expected",
        [
            (_ok("running\n"), ContainerStatus.RUNNING),
            (_ok("exited"), ContainerStatus.EXITED),
            (_ok("something-new"), ContainerStatus.UNKNOWN),
            (_fail(), ContainerStatus.UNKNOWN),
        ],
    )
    async def test_container_status(self, manager, docker, outcome, expected):
        docker.on("docker inspect", outcome)
        assert await manager.get_container_status() == expected
        assert docker.calls == ["docker inspect -f '{{.State.Status}}' app"]


class TestBuild:
    @pytest.mark.asyncio
    async def test_default_command(self, docker):
        manager = ContainerManager(
            ContainerConfig(image_name="acme/app", dockerfile_path="docker/Dockerfile"),
            executor=docker,
        )
        result = await manager.build()

        assert result.success
        assert result.image_id is None
        assert docker.calls == ["docker build -t acme/app -f docker/Dockerfile docker"]
        assert docker.timeouts == [600_000]

    @pytest.mark.asyncio
    async def test_all_flags(self, manager, docker):
        docker.on("docker build", _ok("sha256:abc\n"))
        options = BuildOptions(
            timeout=1000,
            no_cache=True,
            pull=True,
            quiet=True,
            platform="linux/amd64",
            target="test",
            build_args={"NODE_VERSION": "20"},
            cache_from=["acme/app:cache"],
            tags=["acme/app:1", "acme/app:latest"],
            context="./ctx",
        )

        result = await manager.build(options)

        assert docker.calls == [
            "docker build -t acme/app:1 -t acme/app:latest --no-cache --pull --quiet "
            "--platform linux/amd64 --target test --build-arg NODE_VERSION=20 "
            "--cache-from acme/app:cache ./ctx"
        ]
        assert docker.timeouts == [1000]
        assert result.image_id == "sha256:abc"

    @pytest.mark.asyncio
    async def test_context_defaults_to_cwd(self, manager, docker):
        await manager.build()
        assert docker.calls == ["docker build -t acme/app ."]

    @pytest.mark.asyncio
    async def test_failure_raises(self, manager, docker):
        failure = _fail(stderr="no such file")
        docker.on("docker build", failure)

        with pytest.raises(ImageBuildError) as exc_info:
            await manager.build()

        assert exc_info.value.code == "DOCKER_003"
        assert exc_info.value.cause is failure.error


class TestCreate:
    @pytest.mark.asyncio
    async def test_run_args(self, docker):
        config = ContainerConfig(
            container_name="app",
            image_name="acme/app",
            port_mappings={3000: 3000},
            volume_mappings={"/work/project": "/app"},
            environment={"TEST_DIR": "tests"},
        )
        manager = ContainerManager(config=config, executor=docker, platform="linux")

        await manager.create(
            CreateOptions(
                ports={9229: 19229},
                volumes=["cache:/root/.npm"],
                env={"CI": "true"},
                env_files=[".env.test"],
                workdir="/app",
                user="node",
                auto_remove=True,
                command=["sleep", "infinity"],
            )
        )

        assert docker.sent("docker run") == [
            "docker run --name app -d --rm -p 3000:3000 -p 19229:9229 -v cache:/root/.npm "
            "-v /work/project:/app -e TEST_DIR=tests -e CI=true --env-file .env.test "
            "-w /app -u node --network=host acme/app sleep infinity"
        ]

    @pytest.mark.asyncio
    async def test_no_host_network_off_linux(self, config, docker):
        manager = ContainerManager(config=config, executor=docker, platform="darwin")
        await manager.create()
        assert docker.sent("docker run") == ["docker run --name app -d acme/app"]

    @pytest.mark.asyncio
    async def test_explicit_network(self, config, docker):
        manager = ContainerManager(config=config, executor=docker, platform="linux")
        await manager.create(CreateOptions(network="ci-net", detach=False))
        assert docker.sent("docker run") == ["docker run --name app --network ci-net acme/app"]

    @pytest.mark.asyncio
    async def test_healthcheck_and_tty(self, config, docker):
        manager = ContainerManager(config=config, executor=docker, platform="darwin")
        await manager.create(
            CreateOptions(
                hostname="runner",
                interactive=True,
                tty=True,
                healthcheck=HealthCheck(["node", "-e", "1"], interval="5s", retries=3),
            )
        )
        assert docker.sent("docker run") == [
            "docker run --name app -d --hostname runner -i -t "
            "--health-cmd 'node -e 1' --health-interval 5s --health-retries 3 acme/app"
        ]

    @pytest.mark.asyncio
    async def test_already_exists(self, manager, docker):
        docker.on(ALL_PS, _ok("app\n"))
        with pytest.raises(ContainerAlreadyExistsError):
            await manager.create()
        assert docker.sent("docker run") == []

    @pytest.mark.asyncio
    async def test_failure_raises_create_error(self, manager, docker):
        docker.on("docker run", _fail(stderr="port is already allocated"))
        with pytest.raises(ContainerCreateError) as exc_info:
            await manager.create()
        assert exc_info.value.code == "DOCKER_010"

    @pytest.mark.asyncio
    async def test_name_override_checked_for_conflict(self, manager, docker):
        docker.on(f"{ALL_PS} 'name=^other$'", _ok("other\n"))

        with pytest.raises(ContainerAlreadyExistsError) as exc_info:
            await manager.create(CreateOptions(name="other"))

        assert exc_info.value.container_name == "other"
        assert docker.sent("docker run") == []

    @pytest.mark.asyncio
    async def test_name_override_ignores_configured_container(self, manager, docker):
        docker.on(f"{ALL_PS} 'name=^app$'", _ok("app\n"))

        await manager.create(CreateOptions(name="other"))

        assert docker.sent(ALL_PS) == [
            "docker ps -a --filter 'name=^other$' --format '{{.Names}}'"
        ]
        assert docker.sent("docker run")[0].startswith("docker run --name other ")

    @pytest.mark.asyncio
    async def test_name_override_in_create_error(self, manager, docker):
        docker.on("docker run", _fail(exit_code=125))

        with pytest.raises(ContainerCreateError) as exc_info:
            await manager.create(CreateOptions(name="other"))

        assert exc_info.value.container_name == "other"


class TestStart:
    @pytest.mark.asyncio
    async def test_already_running_makes_one_call(self, manager, docker):
        docker.on(RUNNING_PS, _ok("app\n"))

        assert await manager.start() == SetupStatus.RUNNING
        assert len(docker.calls) == 1

    @pytest.mark.asyncio
    async def test_absent_is_created_once(self, manager, docker):
        assert await manager.start() == SetupStatus.CREATED
        assert len(docker.sent("docker run")) == 1
        assert docker.sent("docker start") == []

    @pytest.mark.asyncio
    async def test_stopped_is_started(self, manager, docker):
        docker.on(ALL_PS, _ok("app\n"))

        assert await manager.start() == SetupStatus.STARTED
        assert docker.sent("docker start") == ["docker start app"]

    @pytest.mark.asyncio
    async def test_start_failure(self, manager, docker):
        docker.on(ALL_PS, _ok("app\n")).on("docker start", _fail())
        with pytest.raises(ContainerStartError):
            await manager.start()


class TestAdvisoryOperations:
    @pytest.mark.asyncio
    async def test_stop_not_running_is_skipped(self, manager, docker):
        outcome = await manager.stop()
        assert outcome.success and outcome.skipped
        assert docker.sent("docker stop") == []

    @pytest.mark.asyncio
    async def test_stop_failure_does_not_raise(self, manager, docker):
        docker.on(RUNNING_PS, _ok("app")).on("docker stop", _fail())

        outcome = await manager.stop()

        assert not outcome.success
        assert isinstance(outcome.error, ContainerStopError)
        assert outcome.severity == Severity.ADVISORY

    @pytest.mark.asyncio
    async def test_stop_survives_executor_exception(self, manager, docker):
        def _explode(command):
            raise DaemonError("executor crashed")

        docker.on(RUNNING_PS, _ok("app")).on("docker stop", _explode)

        outcome = await manager.stop()

        assert not outcome.success
        assert isinstance(outcome.error, ContainerStopError)

    @pytest.mark.asyncio
    async def test_remove_absent_is_skipped(self, manager, docker):
        outcome = await manager.remove()
        assert outcome.skipped
        assert docker.sent("docker rm") == []

    @pytest.mark.asyncio
    async def test_remove_force(self, manager, docker):
        docker.on(ALL_PS, _ok("app"))
        outcome = await manager.remove(force=True)
        assert outcome.success
        assert docker.sent("docker rm") == ["docker rm -f app"]
        assert docker.timeouts[-1] == 10_000

    @pytest.mark.asyncio
    async def test_remove_failure(self, manager, docker):
        docker.on(ALL_PS, _ok("app")).on("docker rm", _fail())
        outcome = await manager.remove()
        assert not outcome.success
        assert type(outcome.error) is DockerError

    @pytest.mark.asyncio
    async def test_logs_args(self, manager, docker):
        docker.on("docker logs", _ok("line 1\nline 2\n"))

        logs = await manager.get_logs(LogOptions(tail=20, timestamps=True, since="10m"))

        assert logs == "line 1\nline 2\n"
        assert docker.calls == ["docker logs -t --since=10m --tail=20 app"]

    @pytest.mark.asyncio
    async def test_logs_follow_is_one_shot(self, manager, docker):
        docker.on("docker logs", _ok("ready\n"))

        logs = await manager.get_logs(LogOptions(follow=True))

        assert logs == "ready\n"
        assert docker.calls == ["docker logs --tail=100 app"]

    @pytest.mark.asyncio
    async def test_logs_failure_is_empty(self, manager, docker):
        docker.on("docker logs", _fail())
        assert await manager.get_logs() == ""


class TestRestart:
    @pytest.mark.asyncio
    async def test_missing_container(self, manager):
        with pytest.raises(ContainerNotFoundError):
            await manager.restart()

    @pytest.mark.asyncio
    async def test_restart(self, manager, docker):
        docker.on(ALL_PS, _ok("app"))
        await manager.restart()
        assert docker.sent("docker restart") == ["docker restart app"]

    @pytest.mark.asyncio
    async def test_restart_failure(self, manager, docker):
        docker.on(ALL_PS, _ok("app")).on("docker restart", _fail())
        with pytest.raises(ContainerStartError):
            await manager.restart()


class TestExec:
    @pytest.mark.asyncio
    async def test_requires_running_container(self, manager):
        with pytest.raises(ContainerStartError) as exc_info:
            await manager.exec("npm test")
        assert exc_info.value.reason == "Container is not running"

    @pytest.mark.asyncio
    async def test_success(self, manager, docker):
        docker.on(RUNNING_PS, _ok("app")).on("docker exec", _ok("5 passed\n"))

        result = await manager.exec(
            "npm test -- --reporter=json",
            ExecOptions(workdir="/app", user="node", env={"CI": "1"}, timeout=120_000),
        )

        assert result.success
        assert result.stdout == "5 passed\n"
        assert result.exit_code == 0
        assert docker.sent("docker exec") == [
            "docker exec -w /app -u node -e CI=1 app sh -c 'npm test -- --reporter=json'"
        ]
        assert docker.timeouts[-1] == 120_000

    @pytest.mark.asyncio
    async def test_failing_command_is_dispatched(self, manager, docker):
        docker.on(RUNNING_PS, _ok("app")).on("docker exec", _fail(exit_code=1, stderr="2 failed"))

        result = await manager.exec("npm test")

        assert not result.success
        assert result.dispatched
        assert result.exit_code == 1
        assert result.stderr == "2 failed"

    @pytest.mark.asyncio
    async def test_timeout_is_not_dispatched(self, manager, docker):
        docker.on(RUNNING_PS, _ok("app")).on(
            "docker exec", CommandOutcome.fail(CommandTimeoutError("docker exec", 60_000))
        )

        result = await manager.exec("npm test")

        assert not result.success
        assert not result.dispatched
        assert result.exit_code == -1
        assert "timed out" in result.stderr

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failure, expected_exit",
        [
            (AttemptFailure(command="docker exec", exit_code=1, stderr="Error: Cannot find module 'x' not found"), 1),
            (AttemptFailure(command="docker exec", exit_code=127, stderr="sh: vitest: not found"), 127),
            (AttemptFailure(command="docker exec", exit_code=0, stdout="x" * 64, max_buffer_exceeded=True), 0),
        ],
        ids=["not-found-in-stderr", "exit-127", "output-overflow"],
    )
    async def test_inner_exit_is_dispatched(self, manager, docker, failure, expected_exit):
        docker.on(RUNNING_PS, _ok("app")).on("docker exec", CommandOutcome.fail(classify_failure(failure)))

        result = await manager.exec("npm test")

        assert not result.success
        assert result.dispatched
        assert result.exit_code == expected_exit

    @pytest.mark.asyncio
    async def test_spawn_failure_is_not_dispatched(self, manager, docker):
        failure = AttemptFailure(command="docker exec", spawn_error=FileNotFoundError("docker"))
        docker.on(RUNNING_PS, _ok("app")).on("docker exec", CommandOutcome.fail(classify_failure(failure)))

        result = await manager.exec("npm test")

        assert not result.dispatched
        assert result.exit_code == -1


class TestSetup:
    @pytest.mark.asyncio
    async def test_daemon_down(self, manager, docker):
        docker.on("docker info", _fail())
        with pytest.raises(DockerDaemonUnavailableError):
            await manager.setup()
        assert docker.calls == ["docker info"]

    @pytest.mark.asyncio
    async def test_builds_then_creates(self, manager, docker):
        callbacks = MagicMock()

        result = await manager.setup(
            SetupOptions(
                on_build_start=callbacks.start,
                on_build_complete=callbacks.complete,
                on_build_error=callbacks.error,
            )
        )

        assert result.status == SetupStatus.BUILT
        assert result.image_built
        callbacks.start.assert_called_once_with()
        callbacks.complete.assert_called_once_with()
        callbacks.error.assert_not_called()
        assert len(docker.sent("docker build")) == 1
        assert len(docker.sent("docker run")) == 1

    @pytest.mark.asyncio
    async def test_build_error_callback_and_reraise(self, manager, docker):
        docker.on("docker build", _fail())
        callbacks = MagicMock()

        with pytest.raises(ImageBuildError) as exc_info:
            await manager.setup(SetupOptions(on_build_error=callbacks.error, on_build_complete=callbacks.complete))

        callbacks.error.assert_called_once_with(exc_info.value)
        callbacks.complete.assert_not_called()
        assert docker.sent("docker run") == []

    @pytest.mark.asyncio
    async def test_everything_ready(self, manager, docker):
        docker.on("docker images", _ok("3f2a1b")).on(RUNNING_PS, _ok("app"))

        result = await manager.setup()

        assert result.status == SetupStatus.RUNNING
        assert not result.image_built
        assert docker.sent("docker build") == []
        assert docker.sent("docker run") == []

    @pytest.mark.asyncio
    async def test_existing_container_started(self, manager, docker):
        docker.on("docker images", _ok("3f2a1b")).on(ALL_PS, _ok("app"))
        result = await manager.setup()
        assert result.status == SetupStatus.STARTED

    @pytest.mark.asyncio
    async def test_create_options_passed_through(self, manager, docker):
        docker.on("docker images", _ok("3f2a1b"))

        result = await manager.setup(SetupOptions(create=CreateOptions(user="node")))

        assert result.status == SetupStatus.CREATED
        assert " -u node " in docker.sent("docker run")[0]

    @pytest.mark.asyncio
    async def test_result_to_dict(self, manager, docker):
        docker.on("docker images", _ok("3f2a1b")).on(RUNNING_PS, _ok("app"))
        payload = (await manager.setup()).to_dict()
        assert payload["status"] == "running"
        assert payload["image_built"] is False


class TestConfig:
    def test_get_config_is_a_copy(self, manager):
        copy = manager.get_config()
        copy.container_name = "other"
        assert manager.name == "app"

    def test_update_config(self, manager):
        manager.update_config(container_name="renamed", network="ci")
        assert manager.name == "renamed"
        assert manager.get_config().network == "ci"
        assert manager.get_config().image_name == "acme/app"

    def test_from_settings(self, config):
        settings = SimpleNamespace(
            command_timeout_ms=1000,
            rlimit_as_bytes=0,
            rlimit_cpu_seconds=0,
            probe_timeout_ms=250,
            build_timeout_ms=9000,
        )
        manager = ContainerManager.from_settings(settings, config)

        assert manager.probe_timeout_ms == 250
        assert manager.build_timeout_ms == 9000
        assert manager.executor.defaults.timeout == 1000
