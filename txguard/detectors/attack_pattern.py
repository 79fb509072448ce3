"""Multi-stage attack pattern matcher."""

import logging
from typing import Optional

from ..knowledge.attacks import ATTACK_PATTERNS, AttackPattern, AttackStage
from ..knowledge.common import first_match
from ..models import AnalysisContext, DetectedIssue
from .base import StaticDetector

logger = logging.getLogger(__name__)

MAX_CONFIDENCE = 0.95


def stage_matches(stage: AttackStage, context: AnalysisContext) -> bool:
    if first_match(stage.function_patterns, context.function_name):
        return True
    if first_match(stage.event_patterns, *(e.type for e in context.events)):
        return True
    if first_match(stage.state_patterns, *(c.resource for c in context.state_changes)):
        return True
    return False


def match_attack_pattern(pattern: AttackPattern, context: AnalysisContext) -> Optional[list[str]]:
    """Return the names of matched stages, or None if the pattern does not match.

    A required stage that fails ends the match with no partial credit.
    """
    matched = []
    for stage in pattern.stages:
        if stage_matches(stage, context):
            matched.append(stage.name)
        elif stage.required:
            return None
    if len(matched) < pattern.min_stages_required:
        return None
    return matched


class AttackPatternDetector(StaticDetector):
    name = "attack_pattern"

    def __init__(self, patterns: tuple[AttackPattern, ...] = ATTACK_PATTERNS):
        self.patterns = patterns

    def detect(self, context: AnalysisContext) -> list[DetectedIssue]:
        issues = []
        for pattern in self.patterns:
            stages = match_attack_pattern(pattern, context)
            if stages is None:
                continue
            issues.append(DetectedIssue(
                pattern_id=f"attack:{pattern.id}",
                category=pattern.category,
                severity=pattern.severity,
                title=f"Multi-Stage Attack Pattern: {pattern.name}",
                description=(
                    f"{pattern.description} Matched {len(stages)} of {len(pattern.stages)} stages: "
                    f"{', '.join(stages)}."
                ),
                recommendation=(
                    "This transaction follows the shape of a known attack. Do not sign it unless you "
                    "can account for every step."
                ),
                confidence=min(0.7 + 0.1 * len(stages), MAX_CONFIDENCE),
                source=self.name,
                evidence={
                    "attack_id": pattern.id,
                    "stages_matched": stages,
                    "total_stages": len(pattern.stages),
                    "historical_loss": pattern.historical_loss,
                    "affected_protocols": list(pattern.affected_protocols),
                },
            ))
        return issues
