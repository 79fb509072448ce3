"""Merging detector output into one verdict."""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Sequence

from .models import DetectedIssue, RiskVerdict, Severity

logger = logging.getLogger(__name__)

DEFAULT_SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 40,
    Severity.HIGH: 25,
    Severity.MEDIUM: 15,
    Severity.LOW: 5,
}


class ScoringPolicy(ABC):
    """Turns a deduplicated issue list into a 0-100 risk score."""

    @abstractmethod
    def score(self, issues: Sequence[DetectedIssue]) -> int:
        ...


class WeightedConfidencePolicy(ScoringPolicy):
    """Sum of severity weight times confidence, clamped to [0, 100]."""

    def __init__(self, weights: Optional[dict] = None, max_score: int = 100):
        self.weights = dict(DEFAULT_SEVERITY_WEIGHTS)
        if weights:
            self.weights.update(weights)
        self.max_score = max_score

    def score(self, issues: Sequence[DetectedIssue]) -> int:
        total = sum(self.weights[issue.severity] * issue.confidence for issue in issues)
        return int(min(self.max_score, max(0, round(total))))


def deduplicate(issues: Iterable[DetectedIssue]) -> list[DetectedIssue]:
    """Keep the first issue for each pattern id."""
    seen = set()
    unique = []
    for issue in issues:
        if issue.pattern_id in seen:
            continue
        seen.add(issue.pattern_id)
        unique.append(issue)
    return unique


def overall_severity(issues: Iterable[DetectedIssue]) -> Severity:
    return max((issue.severity for issue in issues), key=lambda s: s.rank, default=Severity.LOW)


def sort_issues(issues: Iterable[DetectedIssue]) -> list[DetectedIssue]:
    """Most severe first, then most confident."""
    return sorted(issues, key=lambda i: (-i.severity.rank, -i.confidence))


def aggregate(
    issues: Iterable[DetectedIssue],
    failures: Iterable[str] = (),
    policy: Optional[ScoringPolicy] = None,
) -> RiskVerdict:
    """Deduplicate, grade, score and order the issues from every detector."""
    policy = policy or WeightedConfidencePolicy()
    unique = deduplicate(issues)
    score = min(100, max(0, int(policy.score(unique))))
    return RiskVerdict(
        overall_severity=overall_severity(unique),
        risk_score=score,
        issues=tuple(sort_issues(unique)),
        detector_failures=tuple(failures),
    )
