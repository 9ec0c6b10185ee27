"""package.json (manifest) reading.

``read_manifest`` is strict and raises file errors. ``load_manifest`` is the
lenient form used during scoring: a missing or malformed manifest is treated
as absent and logged, never raised.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from testdaemon.detector.types import DEFAULT_MANIFEST, DependencyScope
from testdaemon.errors.file import FileReadError, InvalidJsonError, PathNotFoundError

logger = logging.getLogger(__name__)


def read_manifest(project_dir: Path, filename: str = DEFAULT_MANIFEST) -> dict:
    """Read and parse a JSON manifest.

    Raises PathNotFoundError, FileReadError or InvalidJsonError.
    """
    path = Path(project_dir) / filename
    if not path.is_file():
        raise PathNotFoundError(str(path))

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileReadError(str(path), cause=exc) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidJsonError(str(path), str(exc), cause=exc) from exc

    if not isinstance(data, dict):
        raise InvalidJsonError(str(path), "top-level value is not an object")
    return data


def load_manifest(project_dir: Path, filename: str = DEFAULT_MANIFEST) -> Optional[dict]:
    """Lenient variant of ``read_manifest``: returns None instead of raising."""
    try:
        return read_manifest(project_dir, filename)
    except PathNotFoundError:
        logger.debug("No %s found in %s", filename, project_dir)
        return None
    except (FileReadError, InvalidJsonError) as exc:
        logger.warning("Ignoring unreadable %s: %s", filename, exc.message)
        return None


def get_dependencies(manifest: Optional[dict], scope: DependencyScope) -> dict[str, str]:
    """Dependency mapping for ``scope``; devDependencies win on overlap for BOTH."""
    if not manifest:
        return {}
    if scope == DependencyScope.BOTH:
        merged = dict(_mapping(manifest, DependencyScope.DEPENDENCIES))
        merged.update(_mapping(manifest, DependencyScope.DEV_DEPENDENCIES))
        return merged
    return dict(_mapping(manifest, scope))


def _mapping(manifest: dict, scope: DependencyScope) -> dict:
    value = manifest.get(str(scope))
    return value if isinstance(value, dict) else {}
