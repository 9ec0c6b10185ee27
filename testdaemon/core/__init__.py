"""Settings, project configuration and logging setup."""

from testdaemon.core.config import (
    ProjectConfig,
    Settings,
    find_project_root,
    get_settings,
    get_src_dir,
    load_project_config,
)
from testdaemon.core.logging import configure_logging

__all__ = [
    "ProjectConfig",
    "Settings",
    "configure_logging",
    "find_project_root",
    "get_settings",
    "get_src_dir",
    "load_project_config",
]
