"""Pattern-scoring project detection.

Scores weighted profile catalogues against a project directory to decide
its framework, language, test runner and database.
"""

from testdaemon.detector.cache import DetectionCache
from testdaemon.detector.detector import PatternDetector, ProjectDetector
from testdaemon.detector.types import (
    UNKNOWN,
    ContentMatchPattern,
    DependencyCategory,
    DependencyDetection,
    DependencyScope,
    DetectionResult,
    DetectionResults,
    FileExistsPattern,
    ManifestDependencyPattern,
    Profile,
    ProfileScore,
    TestCountResult,
)

__all__ = [
    "UNKNOWN",
    "ContentMatchPattern",
    "DependencyCategory",
    "DependencyDetection",
    "DependencyScope",
    "DetectionCache",
    "DetectionResult",
    "DetectionResults",
    "FileExistsPattern",
    "ManifestDependencyPattern",
    "PatternDetector",
    "Profile",
    "ProfileScore",
    "ProjectDetector",
    "TestCountResult",
]
