"""Runtime settings and per-project configuration.

Settings come from environment variables (prefix ``TESTDAEMON_``) or a
``.env`` file. Per-project overrides live under the ``daemon`` key of the
project's package.json:

    {
      "daemon": {
        "imageName": "acme/test-tools",
        "testDir": "tests",
        "srcDir": "src",
        "port": 3000
      }
    }

A missing or malformed package.json is not an error: defaults apply.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_NAME = "daemon-tools"
DEFAULT_CONTAINER_NAME = "daemon-tools"
DEFAULT_TEST_DIR = "tests"
DEFAULT_SRC_DIR = "src"
DEFAULT_TEST_PORT = 3000


def to_container_name(name: str) -> str:
    """Container names cannot contain '/', image names usually do."""
    return name.replace("/", "-")


class Settings(BaseSettings):
    """Process-wide settings loaded from the environment.

    Timeouts are in milliseconds to match the command executor's options.
    Resource limits of 0 disable the corresponding rlimit.
    """

    model_config = SettingsConfigDict(
        env_prefix="TESTDAEMON_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Container
    image_name: str = DEFAULT_IMAGE_NAME
    container_name: str = DEFAULT_CONTAINER_NAME
    dockerfile_path: Optional[str] = None
    build_context: Optional[str] = None
    network: Optional[str] = None

    @field_validator("container_name", mode="before")
    @classmethod
    def normalise_container_name(cls, v: str) -> str:
        return to_container_name(v)

    # Command execution (ms)
    command_timeout_ms: int = Field(default=30_000, ge=0)
    build_timeout_ms: int = Field(default=600_000, ge=0)
    probe_timeout_ms: int = Field(default=5_000, ge=0)

    # Detection
    detection_cache_ttl_ms: int = Field(default=300_000, ge=0)

    # Child process resource limits
    rlimit_as_bytes: int = 0
    rlimit_cpu_seconds: int = 0

    # App
    debug: bool = False


def get_settings() -> Settings:
    return Settings()


class ProjectConfig(BaseModel):
    """The ``daemon`` section of a project's package.json."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    image_name: Optional[str] = Field(default=None, alias="imageName")
    test_dir: str = Field(default=DEFAULT_TEST_DIR, alias="testDir")
    src_dir: Optional[str] = Field(default=None, alias="srcDir")
    port: int = Field(default=DEFAULT_TEST_PORT, ge=1, le=65535)


def load_project_config(project_dir: Path) -> ProjectConfig:
    """Read the ``daemon`` section from package.json, falling back to defaults."""
    pkg_path = Path(project_dir) / "package.json"
    if not pkg_path.is_file():
        return ProjectConfig()

    try:
        data = json.loads(pkg_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Could not read %s: %s", pkg_path, exc)
        return ProjectConfig()

    section = data.get("daemon") if isinstance(data, dict) else None
    if not isinstance(section, dict):
        return ProjectConfig()

    try:
        return ProjectConfig.model_validate(section)
    except PydanticValidationError as exc:
        logger.warning("Ignoring invalid daemon config in %s: %s", pkg_path, exc)
        return ProjectConfig()


def get_src_dir(project_dir: Path) -> str:
    """Configured source dir, else ``app`` when present, else ``src``."""
    config = load_project_config(project_dir)
    if config.src_dir:
        return config.src_dir
    if (Path(project_dir) / "app").is_dir():
        return "app"
    return DEFAULT_SRC_DIR


def find_project_root(start_dir: Path) -> Path:
    """Walk upward to the nearest directory containing package.json.

    Returns ``start_dir`` when no ancestor has one.
    """
    start_dir = Path(start_dir).resolve()
    for candidate in (start_dir, *start_dir.parents):
        if (candidate / "package.json").is_file():
            return candidate
    return start_dir
