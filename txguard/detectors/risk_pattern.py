"""Rug-pull and trade-cost rules.

Each rule in ``RISK_PATTERNS`` is checked by the evaluator registered under its
id. An evaluator returns the severity, confidence and evidence of a match, or
None.
"""

import logging
from typing import Callable, Optional

from ..exceptions import KnowledgeBaseError
from ..knowledge.common import first_match
from ..knowledge.risk_patterns import (
    BATCH_EVENT_THRESHOLD,
    BATCH_VECTOR_THRESHOLD,
    DEADLINE_RANGE,
    GAS_SPIKE_TIERS,
    LIQUIDITY_EVENT_PATTERNS,
    PRICE_CHECK_EVENT_PATTERNS,
    RISK_PATTERNS,
    SLIPPAGE_CRITICAL_PERCENT,
    RiskPattern,
)
from ..models import AnalysisContext, DetectedIssue, Severity
from .base import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_MEDIUM,
    CONFIDENCE_MINIMAL,
    HEX_ADDRESS_RE,
    StaticDetector,
    flatten_arguments,
    parse_uint,
)

logger = logging.getLogger(__name__)

Match = tuple[Severity, float, dict]


def amounts(arguments) -> list[int]:
    """Decimal amounts among the top-level arguments, in order."""
    return [n for n in map(parse_uint, arguments) if n is not None]


def _liquidity_removal(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    if not pattern.matches_name(context.function_name):
        return None
    large = any(n > pattern.threshold for n in amounts(context.arguments))
    evidence = {
        "large_removal": large,
        "liquidity_event": any(first_match(LIQUIDITY_EVENT_PATTERNS, e.type) for e in context.events),
    }
    if large:
        return Severity.CRITICAL, 0.9, evidence
    return pattern.severity, 0.75, evidence


def _blacklist(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    if not pattern.matches_name(context.function_name):
        return None
    targets = [a for a in flatten_arguments(context.arguments) if HEX_ADDRESS_RE.match(a)]
    return pattern.severity, 0.9, {"targets": targets}


def _mint(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    if not pattern.matches_name(context.function_name):
        return None
    largest = max(amounts(context.arguments), default=None)
    evidence = {"amount": None if largest is None else str(largest)}
    if largest is not None and largest > pattern.threshold:
        return Severity.CRITICAL, 0.9, evidence
    return pattern.severity, CONFIDENCE_MEDIUM, evidence


def _emergency_drain(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    if not pattern.matches_name(context.function_name):
        return None
    return pattern.severity, CONFIDENCE_HIGH, {"sender": context.sender or None}


def _fee_change(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    if not pattern.matches_name(context.function_name):
        return None
    values = amounts(context.arguments)
    high = any(n > pattern.threshold for n in values)
    evidence = {"high_fee": high, "fee_values": values}
    return (Severity.CRITICAL if high else pattern.severity), 0.8, evidence


def _gas_spike(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    if context.simulation is None:
        return None
    gas = context.simulation.gas_used
    for limit, severity, confidence in GAS_SPIKE_TIERS:
        if gas > limit:
            return severity, confidence, {
                "gas_used": gas,
                "threshold": pattern.threshold,
                "multiplier": round(gas / pattern.threshold, 2),
            }
    return None


def _slippage(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    if not pattern.matches_name(context.function_name):
        return None
    args = context.arguments
    amount_in = parse_uint(args[0]) if len(args) >= 2 else None
    if amount_in:
        min_out = next(
            (n for n in map(parse_uint, args[1:]) if n is not None and 0 < n < amount_in),
            None,
        )
        if min_out is not None:
            percent = (amount_in - min_out) * 10000 // amount_in / 100
            if percent > pattern.threshold:
                severity = Severity.CRITICAL if percent > SLIPPAGE_CRITICAL_PERCENT else Severity.HIGH
                return severity, CONFIDENCE_HIGH, {
                    "amount_in": str(amount_in),
                    "min_out": str(min_out),
                    "estimated_slippage": f"{percent:.2f}%",
                }
    return pattern.severity, CONFIDENCE_MINIMAL, {"note": "Swap detected but slippage parameters unclear"}


def _large_trade(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    if not pattern.matches_name(context.function_name):
        return None
    largest = max(amounts(context.arguments), default=0)
    if largest <= pattern.threshold:
        return None
    return pattern.severity, CONFIDENCE_MEDIUM, {"amount": str(largest)}


def _no_price_check(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    if not pattern.matches_name(context.function_name):
        return None
    low, high = DEADLINE_RANGE
    if any(first_match(PRICE_CHECK_EVENT_PATTERNS, e.type) for e in context.events):
        return None
    if any(low < n < high for n in amounts(context.arguments)):
        return None
    return pattern.severity, CONFIDENCE_MINIMAL, {"price_event": False, "deadline": False}


def _batch(pattern: RiskPattern, context: AnalysisContext) -> Optional[Match]:
    named = pattern.matches_name(context.function_name)
    event_count = len(context.events)
    long_vector = any(
        isinstance(arg, (list, tuple)) and len(arg) > BATCH_VECTOR_THRESHOLD for arg in context.arguments
    )
    if not (named or event_count > BATCH_EVENT_THRESHOLD or long_vector):
        return None
    return pattern.severity, CONFIDENCE_LOW, {
        "batch_function": named,
        "event_count": event_count,
        "long_vector_argument": long_vector,
    }


EVALUATORS: dict[str, Callable[[RiskPattern, AnalysisContext], Optional[Match]]] = {
    "rugpull:lp:remove_liquidity": _liquidity_removal,
    "rugpull:blacklist:add": _blacklist,
    "rugpull:mint:unlimited": _mint,
    "rugpull:emergency:drain": _emergency_drain,
    "rugpull:fee:hidden_increase": _fee_change,
    "cost:gas:spike": _gas_spike,
    "cost:slippage:high": _slippage,
    "cost:size:large_trade": _large_trade,
    "cost:dex:no_price_check": _no_price_check,
    "cost:batch:multiple_ops": _batch,
}


class RiskPatternDetector(StaticDetector):
    name = "risk_pattern"

    def __init__(self, patterns: tuple[RiskPattern, ...] = RISK_PATTERNS):
        missing = [p.id for p in patterns if p.id not in EVALUATORS]
        if missing:
            raise KnowledgeBaseError(f"No evaluator for risk patterns: {', '.join(missing)}")
        self.patterns = patterns

    def detect(self, context: AnalysisContext) -> list[DetectedIssue]:
        issues = []
        for pattern in self.patterns:
            match = EVALUATORS[pattern.id](pattern, context)
            if match is None:
                continue
            severity, confidence, evidence = match
            logger.debug("Risk pattern %s matched %s", pattern.id, context.function_path)
            issues.append(DetectedIssue(
                pattern_id=pattern.id,
                category=pattern.category,
                severity=severity,
                title=pattern.title,
                description=pattern.description,
                recommendation=pattern.recommendation,
                confidence=confidence,
                source=self.name,
                evidence={"function": context.function_path, **evidence},
            ))
        return issues
