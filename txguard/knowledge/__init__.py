"""Static rule tables shared by every analysis."""
from ..exceptions import KnowledgeBaseError
from .attacks import ATTACK_PATTERNS, AttackPattern, AttackStage
from .risk_patterns import RISK_PATTERNS, RiskPattern
from .scam_db import (
    EXPLOIT_PATTERNS,
    MALICIOUS_ADDRESSES,
    MALICIOUS_SIGNATURES,
    MODULE_IMPERSONATION_PATTERNS,
)
from .signatures import THREAT_SIGNATURES, AbiCheck, SignatureDetection, ThreatSignature
from .temporal import TEMPORAL_PATTERNS, Constraint, EventStep, TemporalPattern
from .whitelist import NEVER_WHITELIST, WhitelistResult, check_whitelist


def _check_confidence(owner: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise KnowledgeBaseError(f"{owner}: confidence {value} outside [0, 1]")


def _check_unique(kind: str, ids: list[str]) -> None:
    seen = set()
    for item in ids:
        if item in seen:
            raise KnowledgeBaseError(f"Duplicate {kind} id {item!r}")
        seen.add(item)


def validate_knowledge_base(
    signatures=THREAT_SIGNATURES,
    attack_patterns=ATTACK_PATTERNS,
    temporal_patterns=TEMPORAL_PATTERNS,
    risk_patterns=RISK_PATTERNS,
) -> None:
    """Raise KnowledgeBaseError if any rule table is inconsistent."""
    _check_unique("signature", [s.id for s in signatures])
    for sig in signatures:
        _check_confidence(sig.id, sig.confidence)
        d = sig.detection
        if not any((d.function_patterns, d.module_patterns, d.type_arg_patterns,
                    d.arg_patterns, d.event_patterns)) and not (d.abi and d.abi.has_trigger):
            raise KnowledgeBaseError(f"{sig.id}: signature has nothing that can match")

    _check_unique("attack pattern", [p.id for p in attack_patterns])
    for pattern in attack_patterns:
        if not pattern.stages:
            raise KnowledgeBaseError(f"{pattern.id}: attack pattern has no stages")
        if not 1 <= pattern.min_stages_required <= len(pattern.stages):
            raise KnowledgeBaseError(
                f"{pattern.id}: min_stages_required={pattern.min_stages_required} "
                f"with {len(pattern.stages)} stages"
            )

    _check_unique("temporal pattern", [p.name for p in temporal_patterns])
    for pattern in temporal_patterns:
        if not pattern.sequence:
            raise KnowledgeBaseError(f"{pattern.name}: temporal pattern has no events")

    _check_unique("risk pattern", [p.id for p in risk_patterns])
    for pattern in risk_patterns:
        if not pattern.function_keywords and pattern.threshold is None:
            raise KnowledgeBaseError(f"{pattern.id}: risk pattern has nothing that can match")

    _check_unique("exploit pattern", [p.id for p in EXPLOIT_PATTERNS])
    for exploit in EXPLOIT_PATTERNS:
        if not any((exploit.function_patterns, exploit.arg_patterns, exploit.event_patterns)):
            raise KnowledgeBaseError(f"{exploit.id}: exploit pattern has no criteria")


__all__ = [
    "ATTACK_PATTERNS",
    "EXPLOIT_PATTERNS",
    "MALICIOUS_ADDRESSES",
    "MALICIOUS_SIGNATURES",
    "MODULE_IMPERSONATION_PATTERNS",
    "NEVER_WHITELIST",
    "RISK_PATTERNS",
    "TEMPORAL_PATTERNS",
    "THREAT_SIGNATURES",
    "AbiCheck",
    "AttackPattern",
    "AttackStage",
    "Constraint",
    "EventStep",
    "RiskPattern",
    "SignatureDetection",
    "TemporalPattern",
    "ThreatSignature",
    "WhitelistResult",
    "check_whitelist",
    "validate_knowledge_base",
]
