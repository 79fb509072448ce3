"""Ordered event-sequence matcher."""

import logging

from ..knowledge.temporal import TEMPORAL_PATTERNS, Constraint, TemporalPattern
from ..models import AnalysisContext, DetectedIssue, RiskCategory, Severity
from .base import CONFIDENCE_HIGH, StaticDetector

logger = logging.getLogger(__name__)


def match_sequence(pattern: TemporalPattern, event_types: list[str]) -> bool:
    """Walk the event log once; the cursor only ever moves forward."""
    types = [t.lower() for t in event_types]
    cursor = 0
    for step in pattern.sequence:
        needle = step.event_type.lower()
        if step.constraint == Constraint.MUST_NOT_EXIST:
            if any(needle in t for t in types[cursor:]):
                return False
            continue
        for index in range(cursor, len(types)):
            if needle in types[index]:
                cursor = index + 1
                break
        else:
            return False
    return True


class TemporalDetector(StaticDetector):
    name = "temporal"

    def __init__(self, patterns: tuple[TemporalPattern, ...] = TEMPORAL_PATTERNS):
        self.patterns = patterns

    def detect(self, context: AnalysisContext) -> list[DetectedIssue]:
        event_types = [e.type for e in context.events]
        if not event_types:
            return []

        issues = []
        for pattern in self.patterns:
            if not match_sequence(pattern, event_types):
                continue
            if not pattern.is_malicious:
                logger.debug("Benign sequence %r seen in %s", pattern.name, context.function_path)
                continue
            issues.append(DetectedIssue(
                pattern_id=f"temporal:{pattern.slug}",
                category=RiskCategory.EXPLOIT,
                severity=Severity.CRITICAL,
                title=f"Suspicious Event Sequence: {pattern.name}",
                description=pattern.description,
                recommendation="The emitted events follow a known attack ordering. Do not sign.",
                confidence=CONFIDENCE_HIGH,
                source=self.name,
                evidence={
                    "pattern": pattern.name,
                    "sequence": [step.event_type for step in pattern.sequence],
                    "events": event_types,
                },
            ))
        return issues
