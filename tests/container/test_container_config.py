"""Tests for building a ContainerConfig from settings and package.json."""

import json

import pytest

from testdaemon.container import container_config_for
from testdaemon.core.config import Settings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ("TESTDAEMON_IMAGE_NAME", "TESTDAEMON_CONTAINER_NAME", "TESTDAEMON_NETWORK"):
        monkeypatch.delenv(key, raising=False)


def _write_daemon_section(project, section: dict) -> None:
    (project / "package.json").write_text(json.dumps({"name": "web", "daemon": section}))


class TestContainerConfigFor:
    def test_defaults_without_package_json(self, tmp_path):
        config = container_config_for(tmp_path, Settings(_env_file=None))

        assert config.image_name == "daemon-tools"
        assert config.container_name == "daemon-tools"
        assert config.port_mappings == {3000: 3000}
        assert config.volume_mappings == {str(tmp_path.resolve()): "/app"}
        assert config.environment == {"TEST_DIR": "tests"}
        assert config.network is None

    def test_project_section(self, tmp_path):
        _write_daemon_section(tmp_path, {"imageName": "acme/web-tests", "port": 4000, "testDir": "spec"})

        config = container_config_for(tmp_path, Settings(_env_file=None))

        assert config.image_name == "acme/web-tests"
        assert config.container_name == "acme-web-tests"
        assert config.port_mappings == {4000: 4000}
        assert config.environment == {"TEST_DIR": "spec"}

    def test_explicit_container_name_wins(self, tmp_path):
        _write_daemon_section(tmp_path, {"imageName": "acme/web-tests"})

        config = container_config_for(tmp_path, Settings(_env_file=None, container_name="ci/runner"))

        assert config.container_name == "ci-runner"
        assert config.image_name == "acme/web-tests"

    def test_settings_passthrough(self, tmp_path):
        settings = Settings(
            _env_file=None,
            dockerfile_path="docker/Dockerfile.test",
            build_context="docker",
            network="ci-net",
        )

        config = container_config_for(tmp_path, settings)

        assert config.dockerfile_path == "docker/Dockerfile.test"
        assert config.build_context == "docker"
        assert config.network == "ci-net"

    def test_invalid_section_falls_back(self, tmp_path):
        _write_daemon_section(tmp_path, {"port": 0})
        config = container_config_for(tmp_path, Settings(_env_file=None))
        assert config.port_mappings == {3000: 3000}

    def test_uses_process_settings_by_default(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TESTDAEMON_IMAGE_NAME", "from-env")
        config = container_config_for(tmp_path)
        assert config.image_name == "from-env"
