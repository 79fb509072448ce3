"""External reputation check on the called module's address."""

import logging

from ..feeds.threats import ThreatFeedClient, ThreatFeedResult, ThreatFinding
from ..models import AnalysisContext, DetectedIssue, RiskCategory, Severity
from .base import CONFIDENCE_VERY_HIGH, Detector

logger = logging.getLogger(__name__)

MULTI_SOURCE_CRITICAL_SCORE = 75


def category_for(finding_type: str) -> RiskCategory:
    kind = finding_type.lower()
    if "honeypot" in kind or "fake" in kind:
        return RiskCategory.RUG_PULL
    if "exploit" in kind or "hack" in kind:
        return RiskCategory.EXPLOIT
    return RiskCategory.PERMISSION


class ThreatFeedDetector(Detector):
    name = "threat_feed"

    def __init__(self, client: ThreatFeedClient):
        self.client = client

    async def run(self, context: AnalysisContext) -> list[DetectedIssue]:
        result = await self.client.query(context.module_address, context.network)
        if not result.is_malicious:
            logger.debug("Threat feeds clean for %s (score %d)", context.module_address, result.risk_score)
            return []

        issues = [self._finding_issue(f, result) for f in result.findings]

        sources = result.flagging_sources
        if len(sources) > 1:
            issues.append(DetectedIssue(
                pattern_id="threatfeed:multi_source_alert",
                category=RiskCategory.EXPLOIT,
                severity=Severity.CRITICAL if result.risk_score > MULTI_SOURCE_CRITICAL_SCORE else Severity.HIGH,
                title="Multiple Threat Sources Flagged This Address",
                description=(
                    f"{len(result.findings)} findings from {len(sources)} independent sources "
                    f"({', '.join(sources)}). Combined score {result.risk_score}/100."
                ),
                recommendation="Independent services agree this address is dangerous. Avoid interacting with it.",
                confidence=CONFIDENCE_VERY_HIGH,
                source=self.name,
                evidence={"sources": sources, "risk_score": result.risk_score},
            ))
        return issues

    def _finding_issue(self, finding: ThreatFinding, result: ThreatFeedResult) -> DetectedIssue:
        if finding.severity == Severity.CRITICAL:
            recommendation = "Do not interact with this address. Security services have flagged it."
        else:
            recommendation = "Exercise extreme caution. This address has been flagged."
        return DetectedIssue(
            pattern_id=f"threatfeed:{finding.type}",
            category=category_for(finding.type),
            severity=finding.severity,
            title=f"Threat Intelligence: {finding.type.replace('_', ' ').upper()}",
            description=finding.description,
            recommendation=recommendation,
            confidence=finding.confidence,
            source=self.name,
            evidence={
                "reported_by": finding.source,
                "reported_at": finding.reported_at,
                "loss_amount": finding.loss_amount,
                "risk_score": result.risk_score,
                "failed_sources": list(result.failed_sources),
            },
        )
