"""Lookups against the local scam database."""

import logging
from typing import Optional

from ..knowledge.common import first_match
from ..knowledge.scam_db import (
    EXPLOIT_PATTERNS,
    MODULE_IMPERSONATION_PATTERNS,
    MALICIOUS_SIGNATURES,
    ExploitPattern,
    MaliciousSignature,
    find_malicious_address,
)
from ..models import AnalysisContext, DetectedIssue, RiskCategory, Severity, normalize_address
from .base import CONFIDENCE_HIGH, CONFIDENCE_VERY_HIGH, StaticDetector, flatten_arguments

logger = logging.getLogger(__name__)


def match_malicious_signature(function_path: str) -> Optional[MaliciousSignature]:
    """First matching entry wins; a legitimate entry means no match at all."""
    for entry in MALICIOUS_SIGNATURES:
        if entry.pattern.search(function_path):
            return None if entry.legitimate else entry
    return None


def match_exploit_pattern(context: AnalysisContext) -> Optional[ExploitPattern]:
    args = list(flatten_arguments(context.arguments))
    events = [e.type for e in context.events]
    for exploit in EXPLOIT_PATTERNS:
        if exploit.function_patterns and not first_match(exploit.function_patterns, context.function_name):
            continue
        if exploit.arg_patterns and not first_match(exploit.arg_patterns, *args):
            continue
        if exploit.event_patterns and not first_match(exploit.event_patterns, *events):
            continue
        return exploit
    return None


class ScamDatabaseDetector(StaticDetector):
    name = "scam_db"

    def detect(self, context: AnalysisContext) -> list[DetectedIssue]:
        issues = []

        known = find_malicious_address(context.module_address, context.network)
        if known:
            issues.append(DetectedIssue(
                pattern_id=f"scam_db:address:{known.slug}",
                category=known.category,
                severity=known.severity,
                title=f"Known Malicious Address: {known.label}",
                description=known.description,
                recommendation="Do not interact with this module. Its address is on a scam list.",
                confidence=CONFIDENCE_VERY_HIGH,
                source=self.name,
                evidence={
                    "address": known.address,
                    "reported_at": known.reported_at,
                    "reported_by": known.source,
                },
            ))

        signature = match_malicious_signature(context.function_path)
        if signature:
            issues.append(DetectedIssue(
                pattern_id=f"scam_db:signature:{signature.slug}",
                category=signature.category,
                severity=signature.severity,
                title=f"Known Scam Function: {signature.name}",
                description=signature.description,
                recommendation="This function name is typical of phishing contracts. Verify the project independently.",
                confidence=CONFIDENCE_HIGH,
                source=self.name,
                evidence={"function": context.function_path, "pattern": signature.pattern.pattern},
            ))

        exploit = match_exploit_pattern(context)
        if exploit:
            issues.append(DetectedIssue(
                pattern_id=exploit.id,
                category=exploit.category,
                severity=exploit.severity,
                title=f"Known Exploit Pattern: {exploit.name}",
                description=exploit.description,
                recommendation="This call matches a catalogued exploit. Do not sign it.",
                confidence=CONFIDENCE_HIGH,
                source=self.name,
                evidence={"function": context.function_path},
            ))

        address = normalize_address(context.module_address)
        for pattern in MODULE_IMPERSONATION_PATTERNS:
            if not pattern.legitimate_addresses or not pattern.module_pattern.search(context.module_name):
                continue
            legitimate = {normalize_address(a) for a in pattern.legitimate_addresses}
            if address in legitimate:
                continue
            issues.append(DetectedIssue(
                pattern_id="scam_db:impersonation",
                category=RiskCategory.RUG_PULL,
                severity=Severity.CRITICAL,
                title=f"Module Impersonation: {pattern.name}",
                description=(
                    f"Module {context.module_name} at {context.module_address} uses the name of "
                    f"{pattern.name}, which only lives at {', '.join(pattern.legitimate_addresses)}."
                ),
                recommendation="This module copies a trusted name from the wrong address. Do not interact.",
                confidence=CONFIDENCE_HIGH,
                source=self.name,
                evidence={
                    "module": context.module_id,
                    "legitimate_addresses": list(pattern.legitimate_addresses),
                },
            ))
            break

        return issues
