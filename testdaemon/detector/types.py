"""Shared types for the detector module.

Patterns are a closed tagged union: FileExistsPattern, ManifestDependencyPattern
and ContentMatchPattern. They are evaluated in exactly one place,
``testdaemon.detector.scoring.evaluate_pattern``.

Every detector output conforms to DetectionResult, which carries the detected
value along with a confidence in [0, 1] and the evidence behind it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Optional, Union

UNKNOWN = "Unknown"
DEFAULT_MANIFEST = "package.json"


class DependencyScope(StrEnum):
    DEPENDENCIES = "dependencies"
    DEV_DEPENDENCIES = "devDependencies"
    BOTH = "both"


@dataclass(frozen=True)
class FileExistsPattern:
    """Matches when ``file`` exists (or is absent, if should_exist is False).

    ``file`` is relative to the project root and may be a glob such as
    ``next.config.*``.
    """

    file: str
    should_exist: bool = True
    priority: int = 1


@dataclass(frozen=True)
class ManifestDependencyPattern:
    """Regex matched against the JSON-serialized dependency mapping of ``scope``."""

    pattern: str
    scope: DependencyScope = DependencyScope.BOTH
    priority: int = 1
    file: str = DEFAULT_MANIFEST


@dataclass(frozen=True)
class ContentMatchPattern:
    """Regex matched against the text of an arbitrary project file."""

    file: str
    pattern: str
    priority: int = 1


DetectionPattern = Union[FileExistsPattern, ManifestDependencyPattern, ContentMatchPattern]


@dataclass(frozen=True)
class Profile:
    """A named candidate value with its weighted patterns.

    ``excludes`` lists other profile names in the same catalogue; if any of
    them matches at least one pattern, this profile is suppressed.
    """

    name: str
    patterns: tuple[DetectionPattern, ...]
    excludes: tuple[str, ...] = ()
    confidence_threshold: float = 0.5

    @property
    def total_priority(self) -> int:
        return sum(p.priority for p in self.patterns)


@dataclass
class ProfileScore:
    value: str
    score: float  # 0.0 to 1.0
    evidence: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "score": round(self.score, 2),
            "evidence": self.evidence,
        }


@dataclass
class Alternative:
    value: str
    confidence: float


@dataclass
class DetectionResult:
    """Outcome for one category.

    ``confidence`` is 0 only when nothing matched, in which case ``value`` is
    "Unknown". Evidence is never empty.
    """

    value: Optional[str]
    confidence: float
    evidence: list[str] = field(default_factory=list)
    alternatives: list[Alternative] = field(default_factory=list)

    @property
    def is_unknown(self) -> bool:
        return self.value is None or self.value == UNKNOWN

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "confidence": round(self.confidence, 2),
            "evidence": self.evidence,
            "alternatives": [
                {"value": a.value, "confidence": round(a.confidence, 2)}
                for a in self.alternatives
            ],
        }


@dataclass
class TestCountResult:
    __test__ = False  # not a pytest class

    total: int = 0
    in_src: int = 0
    outside_src: int = 0
    by_extension: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "in_src": self.in_src,
            "outside_src": self.outside_src,
            "by_extension": dict(self.by_extension),
        }


class DependencyCategory(StrEnum):
    ROUTER = "Router"
    STATE = "State"
    QUERY = "Query"
    FORMS = "Forms"
    UI = "UI"
    TESTING = "Testing"
    E2E = "E2E"
    OTHER = "Other"


@dataclass
class DependencyDetection:
    category: DependencyCategory
    package_name: str
    version: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "package_name": self.package_name,
            "version": self.version,
        }


@dataclass
class DetectionResults:
    """Complete detection output for a project directory."""

    framework: DetectionResult
    language: DetectionResult
    test_runner: DetectionResult
    database: DetectionResult
    test_counts: TestCountResult
    dependencies: list[DependencyDetection]
    duration: int  # ms
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "framework": self.framework.to_dict(),
            "language": self.language.to_dict(),
            "test_runner": self.test_runner.to_dict(),
            "database": self.database.to_dict(),
            "test_counts": self.test_counts.to_dict(),
            "dependencies": [d.to_dict() for d in self.dependencies],
            "duration": self.duration,
            "timestamp": self.timestamp.isoformat(),
        }
