"""Profile scoring.

A profile's score is the summed priority of its matched patterns divided by
its total priority. Missing files and unreadable manifests simply contribute
nothing; scoring never raises for filesystem problems.
"""

import glob
import json
import logging
import re
from pathlib import Path
from typing import Optional, assert_never

from testdaemon.detector.manifest import get_dependencies, load_manifest
from testdaemon.detector.types import (
    ContentMatchPattern,
    DetectionPattern,
    FileExistsPattern,
    ManifestDependencyPattern,
    Profile,
    ProfileScore,
)

logger = logging.getLogger(__name__)


class ScoringContext:
    """Per-run view of a project directory.

    Manifests and file contents are read at most once per run, however many
    patterns refer to them.
    """

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir)
        self._manifests: dict[str, Optional[dict]] = {}
        self._texts: dict[str, Optional[str]] = {}

    def manifest(self, filename: str) -> Optional[dict]:
        if filename not in self._manifests:
            self._manifests[filename] = load_manifest(self.project_dir, filename)
        return self._manifests[filename]

    def read_text(self, filename: str) -> Optional[str]:
        if filename not in self._texts:
            try:
                self._texts[filename] = (self.project_dir / filename).read_text(
                    encoding="utf-8", errors="replace"
                )
            except OSError:
                self._texts[filename] = None
        return self._texts[filename]

    def find(self, file_pattern: str) -> Optional[str]:
        """First existing path matching ``file_pattern``, relative to the root."""
        if glob.has_magic(file_pattern):
            matches = sorted(self.project_dir.glob(file_pattern))
            return matches[0].relative_to(self.project_dir).as_posix() if matches else None
        return file_pattern if (self.project_dir / file_pattern).exists() else None


def evaluate_pattern(ctx: ScoringContext, pattern: DetectionPattern) -> Optional[str]:
    """Return an evidence string if ``pattern`` matches, else None."""
    if isinstance(pattern, FileExistsPattern):
        found = ctx.find(pattern.file)
        if pattern.should_exist:
            return f"Found {found}" if found else None
        return None if found else f"Confirmed {pattern.file} does not exist"

    if isinstance(pattern, ManifestDependencyPattern):
        manifest = ctx.manifest(pattern.file)
        if manifest is None:
            return None
        serialized = json.dumps(get_dependencies(manifest, pattern.scope))
        if re.search(pattern.pattern, serialized):
            return f"Pattern matched in {pattern.file} {pattern.scope}"
        return None

    if isinstance(pattern, ContentMatchPattern):
        text = ctx.read_text(pattern.file)
        if text is not None and re.search(pattern.pattern, text):
            return f"Pattern matched in {pattern.file}"
        return None

    assert_never(pattern)


def score_profile(ctx: ScoringContext, profile: Profile) -> ProfileScore:
    matched = 0
    evidence: list[str] = []

    for pattern in profile.patterns:
        hit = evaluate_pattern(ctx, pattern)
        if hit is not None:
            matched += pattern.priority
            evidence.append(hit)

    total = profile.total_priority
    score = matched / total if total > 0 else 0.0
    return ProfileScore(value=profile.name, score=score, evidence=evidence)


def rank_profiles(ctx: ScoringContext, profiles: list[Profile]) -> list[ProfileScore]:
    """Score every profile, apply exclusions and thresholds, sort best first.

    Exclusion is by name: a profile is dropped when any profile it
    ``excludes`` matched at least one pattern, regardless of how the two
    scores compare.

    Known issue, kept deliberately: a competitor that matched anything
    suppresses the profile even when the competitor itself falls below its
    threshold, so the caller may get "Unknown" for a project that clearly
    matches. Merely being listed in the catalogue does not suppress; that
    would make combined profiles such as "Vite + React" unreachable. Any
    change to this tie-break policy needs sign-off from detection owners.
    """
    raw = [(profile, score_profile(ctx, profile)) for profile in profiles]
    matched_names = {score.value for _, score in raw if score.score > 0}

    ranked: list[ProfileScore] = []
    for profile, score in raw:
        suppressed_by = [name for name in profile.excludes if name in matched_names]
        if suppressed_by:
            logger.debug("%s suppressed by %s", profile.name, ", ".join(suppressed_by))
            continue
        if score.score >= profile.confidence_threshold:
            ranked.append(score)

    # Stable sort: catalogue order breaks ties
    ranked.sort(key=lambda s: s.score, reverse=True)
    return ranked
