"""Detection errors.

The detector itself never raises for missing or malformed project files;
these are raised by callers that need a definite answer (see
``PatternDetector.require``) and by catalogue lookups.

Error codes:
  DETECTION_001  generic detection error
  DETECTION_002  unsupported value
  DETECTION_003  nothing detected
  DETECTION_004  ambiguous detection
  DETECTION_005  invalid project structure
"""

from typing import Optional

from testdaemon.errors.base import DaemonError


class DetectionError(DaemonError):
    default_code = "DETECTION_001"


class UnsupportedFrameworkError(DetectionError):
    default_code = "DETECTION_002"

    def __init__(self, framework: str, category: str = "framework"):
        super().__init__(
            f"Unsupported {category}: {framework}",
            context={"framework": framework, "category": category},
        )
        self.framework = framework


class NoFrameworkDetectedError(DetectionError):
    default_code = "DETECTION_003"

    def __init__(self, project_path: str, category: str = "framework", confidence: float = 0.0):
        super().__init__(
            f"No supported {category} detected in {project_path}",
            context={"project_path": project_path, "category": category, "confidence": confidence},
        )
        self.project_path = project_path


class AmbiguousFrameworkError(DetectionError):
    default_code = "DETECTION_004"

    def __init__(self, candidates: list[str], category: str = "framework"):
        super().__init__(
            f"Ambiguous {category} detection: multiple candidates ({', '.join(candidates)})",
            context={"candidates": list(candidates), "category": category},
        )
        self.candidates = list(candidates)


class InvalidProjectStructureError(DetectionError):
    default_code = "DETECTION_005"

    def __init__(self, project_path: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Invalid project structure at {project_path}: {reason}",
            context={"project_path": project_path, "reason": reason},
            cause=cause,
        )
        self.project_path = project_path
        self.reason = reason
