"""Pattern-scoring detectors.

Detection flow:
1. Score every profile of a category's catalogue against the project tree.
2. Drop excluded profiles and those below their confidence threshold.
3. Return the best profile as the value, the rest as alternatives.

One PatternDetector exists per category (framework, language, test runner,
database). ProjectDetector composes the four and adds test-file counts and
dependency categories.

Detection is synchronous. A cache miss and the following cache write happen
with no await point in between, so coroutines sharing one event loop cannot
interleave there. Threads sharing a detector are not coordinated; the last
writer wins.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from testdaemon.detector.cache import DEFAULT_CACHE_TTL_MS, DetectionCache
from testdaemon.detector.dependencies import categorize_dependencies
from testdaemon.detector.manifest import load_manifest, read_manifest
from testdaemon.detector.patterns import (
    BACKEND_PROFILES,
    DATABASE_PROFILES,
    FRAMEWORK_PROFILES,
    LANGUAGE_PROFILES,
    TEST_RUNNER_PROFILES,
)
from testdaemon.detector.scoring import ScoringContext, rank_profiles
from testdaemon.detector.test_files import count_test_files
from testdaemon.detector.types import (
    UNKNOWN,
    Alternative,
    DetectionResult,
    DetectionResults,
    Profile,
    ProfileScore,
)
from testdaemon.errors.detection import (
    AmbiguousFrameworkError,
    InvalidProjectStructureError,
    NoFrameworkDetectedError,
    UnsupportedFrameworkError,
)
from testdaemon.errors.file import FileReadError, InvalidJsonError, PathNotFoundError

logger = logging.getLogger(__name__)


class PatternDetector:
    """Scores one category's profiles against a project directory."""

    def __init__(
        self,
        category: str,
        profiles: Iterable[Profile],
        cache: Optional[DetectionCache] = None,
    ):
        self.category = category
        self.profiles: list[Profile] = list(profiles)
        self.cache = cache or DetectionCache()

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect(self, project_path: str | Path) -> DetectionResult:
        """Best match for the category. Never raises for filesystem problems."""
        scores = self.detect_with_score(project_path)
        if not scores:
            return self._unknown()

        top, rest = scores[0], scores[1:]
        return DetectionResult(
            value=top.value,
            confidence=top.score,
            evidence=list(top.evidence),
            alternatives=[Alternative(value=s.value, confidence=s.score) for s in rest],
        )

    def detect_with_score(self, project_path: str | Path) -> list[ProfileScore]:
        """Every profile that cleared its threshold, best first.

        A cache hit returns only the previously best profile.
        """
        key = _cache_key(project_path)
        cached = self.cache.get(key)
        if cached is not None and cached.value is not None:
            logger.debug("%s detection cache hit for %s", self.category, key)
            return [ProfileScore(value=cached.value, score=cached.confidence, evidence=list(cached.evidence))]

        scores = self._rank(Path(key))
        if scores:
            best = scores[0]
            self.cache.set(
                key,
                DetectionResult(value=best.value, confidence=best.score, evidence=list(best.evidence)),
            )
        return scores

    def is_value(self, project_path: str | Path, value: str, threshold: float = 0.7) -> bool:
        result = self.detect(project_path)
        return result.value == value and result.confidence >= threshold

    def get_ranked_list(self, project_path: str | Path) -> list[str]:
        return [s.value for s in self.detect_with_score(project_path)]

    def require(self, project_path: str | Path, min_confidence: float = 0.5) -> DetectionResult:
        """Detect, raising when the result is not usable.

        Raises:
            InvalidProjectStructureError: path is not a directory, or its
                manifest exists but cannot be parsed.
            NoFrameworkDetectedError: nothing reached ``min_confidence``.
            AmbiguousFrameworkError: two or more profiles tie for the top score.

        Always scores afresh so that ties are visible; the cache is bypassed.
        """
        path = Path(project_path).resolve()
        if not path.is_dir():
            raise InvalidProjectStructureError(str(path), "not a directory")

        try:
            read_manifest(path)
        except PathNotFoundError:
            pass
        except (FileReadError, InvalidJsonError) as exc:
            raise InvalidProjectStructureError(str(path), exc.message, cause=exc) from exc

        scores = self._rank(path)
        if not scores or scores[0].score < min_confidence:
            confidence = scores[0].score if scores else 0.0
            raise NoFrameworkDetectedError(str(path), category=self.category, confidence=confidence)

        tied = [s.value for s in scores if s.score == scores[0].score]
        if len(tied) > 1:
            raise AmbiguousFrameworkError(tied, category=self.category)

        top = scores[0]
        return DetectionResult(
            value=top.value,
            confidence=top.score,
            evidence=list(top.evidence),
            alternatives=[Alternative(value=s.value, confidence=s.score) for s in scores[1:]],
        )

    # ------------------------------------------------------------------
    # Catalogue and cache
    # ------------------------------------------------------------------

    def get_supported_values(self) -> list[str]:
        return [p.name for p in self.profiles]

    def get_profile(self, name: str) -> Profile:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        raise UnsupportedFrameworkError(name, category=self.category)

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_cache_stats(self) -> dict:
        return self.cache.stats()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _rank(self, project_dir: Path) -> list[ProfileScore]:
        return rank_profiles(ScoringContext(project_dir), self.profiles)

    def _unknown(self) -> DetectionResult:
        return DetectionResult(
            value=UNKNOWN,
            confidence=0.0,
            evidence=[f"No {self.category} patterns matched"],
        )


class ProjectDetector:
    """Runs every category detector over one project directory."""

    def __init__(
        self,
        framework: PatternDetector,
        language: PatternDetector,
        test_runner: PatternDetector,
        database: PatternDetector,
    ):
        self.framework = framework
        self.language = language
        self.test_runner = test_runner
        self.database = database

    @classmethod
    def create(
        cls,
        cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        include_backend: bool = True,
        custom_profiles: Optional[Iterable[Profile]] = None,
    ) -> "ProjectDetector":
        """Build a detector over the built-in catalogues.

        Backend frameworks and ``custom_profiles`` are appended after the
        frontend catalogue, so frontend profiles win ties.
        """
        frameworks = list(FRAMEWORK_PROFILES)
        if include_backend:
            frameworks.extend(BACKEND_PROFILES)
        if custom_profiles:
            frameworks.extend(custom_profiles)

        def _detector(category: str, profiles: list[Profile]) -> PatternDetector:
            return PatternDetector(category, profiles, DetectionCache(ttl_ms=cache_ttl_ms))

        return cls(
            framework=_detector("framework", frameworks),
            language=_detector("language", LANGUAGE_PROFILES),
            test_runner=_detector("test runner", TEST_RUNNER_PROFILES),
            database=_detector("database", DATABASE_PROFILES),
        )

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "ProjectDetector":
        return cls.create(cache_ttl_ms=settings.detection_cache_ttl_ms, **kwargs)

    def detect_all(self, project_path: str | Path) -> DetectionResults:
        """Full detection report for ``project_path``."""
        start = time.monotonic()
        project_dir = Path(project_path).resolve()

        framework = self.framework.detect(project_dir)
        language = self.language.detect(project_dir)
        test_runner = self.test_runner.detect(project_dir)
        database = self.database.detect(project_dir)
        test_counts = count_test_files(project_dir)
        dependencies = categorize_dependencies(load_manifest(project_dir))

        duration = int(round((time.monotonic() - start) * 1000))
        logger.info(
            "Detected %s: framework=%s (%.2f) language=%s test_runner=%s database=%s tests=%d",
            project_dir,
            framework.value,
            framework.confidence,
            language.value,
            test_runner.value,
            database.value,
            test_counts.total,
        )

        return DetectionResults(
            framework=framework,
            language=language,
            test_runner=test_runner,
            database=database,
            test_counts=test_counts,
            dependencies=dependencies,
            duration=duration,
            timestamp=datetime.now(timezone.utc),
        )

    def clear_cache(self) -> None:
        for detector in (self.framework, self.language, self.test_runner, self.database):
            detector.clear_cache()


def _cache_key(project_path: str | Path) -> str:
    return str(Path(project_path).resolve())
