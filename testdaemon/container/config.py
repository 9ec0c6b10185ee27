"""Container configuration from settings and the project's package.json."""

from pathlib import Path
from typing import Optional

from testdaemon.container.types import ContainerConfig
from testdaemon.core.config import Settings, get_settings, load_project_config, to_container_name

PROJECT_MOUNT = "/app"


def container_config_for(project_dir: Path, settings: Optional[Settings] = None) -> ContainerConfig:
    """Merge process settings with the project's ``daemon`` section.

    The project's ``imageName`` wins over the settings image; when it is set
    and the container name was left at its default, the container is named
    after the image. The project directory is mounted at /app and its test
    port is published on the same host port.
    """
    settings = settings or get_settings()
    project_dir = Path(project_dir).resolve()
    project = load_project_config(project_dir)

    image_name = project.image_name or settings.image_name
    container_name = settings.container_name
    if project.image_name and "container_name" not in settings.model_fields_set:
        container_name = to_container_name(project.image_name)

    return ContainerConfig(
        container_name=container_name,
        image_name=image_name,
        dockerfile_path=settings.dockerfile_path,
        build_context=settings.build_context,
        port_mappings={project.port: project.port},
        volume_mappings={str(project_dir): PROJECT_MOUNT},
        environment={"TEST_DIR": project.test_dir},
        network=settings.network,
    )
