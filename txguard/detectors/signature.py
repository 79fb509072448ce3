"""Signature and ABI matcher."""

import logging
from typing import Optional

from ..knowledge.common import first_match
from ..knowledge.signatures import (
    APPROVAL_FUNCTION_PATTERNS,
    LARGE_APPROVAL_THRESHOLD,
    OWNERSHIP_FUNCTION_PATTERNS,
    PERMISSION_RISKS,
    THREAT_SIGNATURES,
    UNLIMITED_AMOUNTS,
    UNLIMITED_HEX_PATTERN,
    AbiCheck,
    ThreatSignature,
)
from ..models import AbiInfo, AnalysisContext, DetectedIssue, RiskCategory, Severity
from .base import (
    CONFIDENCE_HIGH,
    CONFIDENCE_VERY_HIGH,
    HEX_ADDRESS_RE,
    StaticDetector,
    flatten_arguments,
    parse_uint,
)

logger = logging.getLogger(__name__)


def recommendation_for(sig: ThreatSignature) -> str:
    if sig.category == RiskCategory.EXPLOIT:
        text = "This pattern matches known exploit techniques. "
        if sig.false_positive_risk == "high":
            text += "This could be a false positive, verify the contract source."
        else:
            text += "Proceed with extreme caution."
        if sig.references:
            text += f" Reference: {sig.references[0]}"
        return text
    if sig.category == RiskCategory.RUG_PULL:
        return ("This pattern is associated with scams and rug pulls. Do not proceed unless you "
                "fully trust the contract and have verified its source code.")
    if sig.category == RiskCategory.PERMISSION:
        return ("This transaction grants significant permissions. Make sure you trust the "
                "recipient and understand exactly what access you are granting.")
    if sig.category == RiskCategory.EXCESSIVE_COST:
        return "This transaction may cost far more gas than expected. Check the gas estimate before signing."
    return "Review this transaction carefully before signing."


def check_abi(check: AbiCheck, abi: AbiInfo) -> tuple[bool, list[str]]:
    """Return whether every configured criterion holds, with the reasons it does.

    Criteria the ABI does not report are skipped, except the mutable-reference
    trigger which must be known to count.
    """
    reasons = []

    if check.has_ability:
        if not all(a in abi.abilities for a in check.has_ability):
            return False, []
        reasons.append(f"has abilities: {', '.join(check.has_ability)}")

    if check.lacks_ability:
        if any(a in abi.abilities for a in check.lacks_ability):
            return False, []
        reasons.append(f"lacks abilities: {', '.join(check.lacks_ability)}")

    if check.has_public_mut_ref is not None:
        if abi.has_public_mut_ref is None or abi.has_public_mut_ref != check.has_public_mut_ref:
            return False, []
        reasons.append("exposes a public &mut reference")

    if check.is_entry is not None and abi.is_entry is not None:
        if abi.is_entry != check.is_entry:
            return False, []
        reasons.append("entry function" if abi.is_entry else "non-entry function")

    if check.is_view is not None and abi.is_view is not None:
        if abi.is_view != check.is_view:
            return False, []
        reasons.append("view function" if abi.is_view else "non-view function")

    if check.param_count is not None and abi.param_count is not None:
        if not check.param_count.contains(abi.param_count):
            return False, []
        reasons.append(f"param count {abi.param_count} in {check.param_count}")

    if check.generic_count is not None and abi.generic_count is not None:
        if not check.generic_count.contains(abi.generic_count):
            return False, []
        reasons.append(f"generic count {abi.generic_count} in {check.generic_count}")

    return True, reasons


def match_signature(sig: ThreatSignature, context: AnalysisContext) -> list[str]:
    """Return the reasons sig fires for context, or an empty list."""
    d = sig.detection
    reasons = []

    pattern = first_match(d.function_patterns, context.function_name)
    if pattern:
        reasons.append(f"function name matches /{pattern.pattern}/")

    pattern = first_match(d.module_patterns, context.module_id, context.module_name)
    if pattern:
        reasons.append(f"module matches /{pattern.pattern}/")

    pattern = first_match(d.type_arg_patterns, *context.type_arguments)
    if pattern:
        reasons.append(f"type argument matches /{pattern.pattern}/")

    pattern = first_match(d.arg_patterns, *flatten_arguments(context.arguments))
    if pattern:
        reasons.append(f"argument matches /{pattern.pattern}/")

    pattern = first_match(d.event_patterns, *(e.type for e in context.events))
    if pattern:
        reasons.append(f"event matches /{pattern.pattern}/")

    if d.abi is not None and context.abi is not None:
        held, abi_reasons = check_abi(d.abi, context.abi)
        if d.abi.has_trigger:
            if held:
                reasons.extend(abi_reasons)
        elif reasons:
            # Qualifier-only checks narrow a name match, they never fire alone.
            if not held:
                return []
            reasons.extend(abi_reasons)

    return reasons


class SignatureDetector(StaticDetector):
    """Matches the threat signature table plus approval and ownership heuristics."""

    name = "signature"

    def __init__(self, signatures: tuple[ThreatSignature, ...] = THREAT_SIGNATURES):
        self.signatures = signatures

    def detect(self, context: AnalysisContext) -> list[DetectedIssue]:
        issues = []

        for sig in self.signatures:
            reasons = match_signature(sig, context)
            if reasons:
                issues.append(DetectedIssue(
                    pattern_id=f"threat:{sig.id}",
                    category=sig.category,
                    severity=sig.severity,
                    title=sig.name,
                    description=sig.description,
                    recommendation=recommendation_for(sig),
                    confidence=sig.confidence,
                    source=self.name,
                    evidence={
                        "signature_id": sig.id,
                        "attack_vector": sig.attack_vector,
                        "match_reasons": reasons,
                        "false_positive_risk": sig.false_positive_risk,
                        "tags": list(sig.tags),
                    },
                ))

        issues.extend(self._approval_issues(context))
        issues.extend(self._ownership_issues(context))
        issues.extend(self._permission_issues(context))

        logger.debug("Signature matcher found %d issues for %s", len(issues), context.function_path)
        return issues

    def _approval_issues(self, context: AnalysisContext) -> list[DetectedIssue]:
        if not first_match(APPROVAL_FUNCTION_PATTERNS, context.function_name):
            return []

        args = list(flatten_arguments(context.arguments))
        unlimited = next(
            (a for a in args if a in UNLIMITED_AMOUNTS or UNLIMITED_HEX_PATTERN.match(a)),
            None,
        )
        spender = next(
            (a for a in args if HEX_ADDRESS_RE.match(a) and not UNLIMITED_HEX_PATTERN.match(a)),
            None,
        )
        token = context.type_arguments[0] if context.type_arguments else None
        evidence = {"function": context.function_path, "spender": spender, "token": token}

        if unlimited is not None:
            return [DetectedIssue(
                pattern_id="sig:unlimited_approval",
                category=RiskCategory.EXPLOIT,
                severity=Severity.CRITICAL,
                title="Unlimited Token Approval",
                description=(
                    f"Grants {spender or 'the spender'} permission to move an unlimited amount of "
                    f"{token or 'your tokens'}."
                ),
                recommendation="Approve only the exact amount this interaction needs, and revoke afterwards.",
                confidence=CONFIDENCE_VERY_HIGH,
                source=self.name,
                evidence={**evidence, "amount": unlimited},
            )]

        amounts = [n for n in map(parse_uint, args) if n is not None]
        largest = max(amounts, default=0)
        if largest > LARGE_APPROVAL_THRESHOLD:
            return [DetectedIssue(
                pattern_id="sig:large_approval",
                category=RiskCategory.PERMISSION,
                severity=Severity.HIGH,
                title="Large Token Approval",
                description=f"Approves {largest} base units for {spender or 'the spender'}.",
                recommendation="Check that the approved amount matches what you intend to spend.",
                confidence=CONFIDENCE_HIGH,
                source=self.name,
                evidence={**evidence, "amount": str(largest)},
            )]
        return []

    def _ownership_issues(self, context: AnalysisContext) -> list[DetectedIssue]:
        pattern = first_match(OWNERSHIP_FUNCTION_PATTERNS, context.function_name)
        if not pattern:
            return []
        new_owner = next(
            (a for a in flatten_arguments(context.arguments) if HEX_ADDRESS_RE.match(a)),
            None,
        )
        return [DetectedIssue(
            pattern_id="sig:ownership_change",
            category=RiskCategory.RUG_PULL,
            severity=Severity.CRITICAL,
            title="Ownership Change",
            description=f"{context.function_path} changes who controls the module"
                        + (f" (new owner {new_owner})." if new_owner else "."),
            recommendation="Only sign ownership changes you initiated and whose new owner you control.",
            confidence=CONFIDENCE_VERY_HIGH,
            source=self.name,
            evidence={"function": context.function_path, "new_owner": new_owner, "pattern": pattern.pattern},
        )]

    def _permission_issues(self, context: AnalysisContext) -> list[DetectedIssue]:
        severity: Optional[Severity] = None
        matched = None
        for pattern, risk in PERMISSION_RISKS:
            if pattern.search(context.function_name):
                severity, matched = risk, pattern.pattern
                break
        if severity is None or severity == Severity.LOW:
            return []
        return [DetectedIssue(
            pattern_id="sig:permission_grant",
            category=RiskCategory.PERMISSION,
            severity=severity,
            title="Permission Grant",
            description=f"{context.function_name} grants another party rights over your assets or account.",
            recommendation="Confirm the recipient of these permissions and limit their scope where possible.",
            confidence=CONFIDENCE_HIGH,
            source=self.name,
            evidence={"function": context.function_path, "pattern": matched},
        )]
