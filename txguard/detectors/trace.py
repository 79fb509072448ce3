"""Execution-trace analysis over a simulation result.

Three independent passes over the same trace: token flow from balance
deltas, the shape of the event log, and gas consumption.
"""

import logging
import re
from collections import Counter, defaultdict
from typing import Optional

from ..models import (
    AnalysisContext,
    DetectedIssue,
    RiskCategory,
    Severity,
    SimulationTrace,
    normalize_address,
)
from .base import CONFIDENCE_HIGH, CONFIDENCE_MEDIUM, CONFIDENCE_VERY_HIGH, StaticDetector

logger = logging.getLogger(__name__)

COIN_STORE_RE = re.compile(r"0x0*1::coin::CoinStore<(.+)>")
FUNGIBLE_ASSET_RE = re.compile(r"0x0*1::fungible_asset::")

LARGE_OUTGOING_THRESHOLD = 10 ** 18
REPEATED_EVENT_THRESHOLD = 5
FLASH_LOAN_MIN_GAP = 2
GAS_CEILING = 50_000_000
GAS_PER_OPERATION_CEILING = 500_000

WITHDRAW_EVENT_RE = re.compile(r"withdraw|borrow", re.IGNORECASE)
DEPOSIT_EVENT_RE = re.compile(r"deposit|repay", re.IGNORECASE)
PRICE_EVENT_RE = re.compile(r"price|oracle", re.IGNORECASE)


def token_for_resource(resource: str) -> Optional[str]:
    match = COIN_STORE_RE.search(resource)
    if match:
        return match.group(1)
    if FUNGIBLE_ASSET_RE.search(resource):
        return "FungibleAsset"
    return None


def extract_balance(data) -> Optional[int]:
    """Pull a numeric balance from a resource snapshot."""
    if not isinstance(data, dict):
        return None
    coin = data.get("coin")
    if isinstance(coin, dict) and "value" in coin:
        raw = coin["value"]
    elif "value" in data:
        raw = data["value"]
    elif "balance" in data:
        raw = data["balance"]
    else:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def balance_deltas(trace: SimulationTrace) -> dict[tuple[str, str], int]:
    """Signed balance change per (address, token)."""
    deltas: dict[tuple[str, str], int] = defaultdict(int)
    for change in trace.state_changes:
        token = token_for_resource(change.resource)
        if token is None or change.before is None or change.after is None:
            continue
        before = extract_balance(change.before)
        after = extract_balance(change.after)
        if before is None or after is None:
            continue
        deltas[(normalize_address(change.address), token)] += after - before
    return dict(deltas)


class TraceDetector(StaticDetector):
    name = "execution_trace"

    def detect(self, context: AnalysisContext) -> list[DetectedIssue]:
        trace = context.simulation
        if trace is None:
            return []
        issues = []
        issues.extend(self._token_flow(context, trace))
        issues.extend(self._event_sequence(trace))
        issues.extend(self._gas(trace))
        return issues

    def _token_flow(self, context: AnalysisContext, trace: SimulationTrace) -> list[DetectedIssue]:
        deltas = balance_deltas(trace)
        if not deltas or not context.sender:
            return []

        sender = normalize_address(context.sender)
        sender_deltas = {token: d for (addr, token), d in deltas.items() if addr == sender}
        issues = []

        outgoing = {t: d for t, d in sender_deltas.items() if d < -LARGE_OUTGOING_THRESHOLD}
        if outgoing:
            token, delta = min(outgoing.items(), key=lambda item: item[1])
            issues.append(DetectedIssue(
                pattern_id="trace:token_flow:large_outgoing",
                category=RiskCategory.RUG_PULL,
                severity=Severity.HIGH,
                title="Large Outgoing Transfer",
                description=f"The sender loses {-delta} base units of {token}.",
                recommendation="Confirm you intend to move this amount before signing.",
                confidence=CONFIDENCE_VERY_HIGH,
                source=self.name,
                evidence={"token": token, "delta": str(delta),
                          "tokens": {t: str(d) for t, d in outgoing.items()}},
            ))

        recipients = [
            {"address": addr, "token": token, "delta": str(delta)}
            for (addr, token), delta in deltas.items()
            if addr != sender and delta > 0 and sender_deltas.get(token, 0) < 0
        ]
        if recipients:
            issues.append(DetectedIssue(
                pattern_id="trace:token_flow:fund_movement",
                category=RiskCategory.EXPLOIT,
                severity=Severity.MEDIUM,
                title="Funds Moved to Third Party",
                description=f"{len(recipients)} other account(s) gain what the sender loses.",
                recommendation="Check that every receiving address is one you expect.",
                confidence=CONFIDENCE_HIGH,
                source=self.name,
                evidence={"recipients": recipients},
            ))
        return issues

    def _event_sequence(self, trace: SimulationTrace) -> list[DetectedIssue]:
        types = [e.type for e in trace.events]
        if not types:
            return []
        issues = []

        repeated = {t: n for t, n in Counter(types).items() if n > REPEATED_EVENT_THRESHOLD}
        if repeated:
            issues.append(DetectedIssue(
                pattern_id="trace:event_sequence:repeated_event",
                category=RiskCategory.EXPLOIT,
                severity=Severity.HIGH,
                title="Repeated Events",
                description="The same event fires many times, which points at a loop or reentrancy.",
                recommendation="Review why the contract repeats this operation within one call.",
                confidence=CONFIDENCE_HIGH,
                source=self.name,
                evidence={"counts": repeated},
            ))

        withdraw_index = next((i for i, t in enumerate(types) if WITHDRAW_EVENT_RE.search(t)), None)
        deposit_index = next(
            (i for i in range(len(types) - 1, -1, -1) if DEPOSIT_EVENT_RE.search(types[i])),
            None,
        )
        if (
            withdraw_index is not None
            and deposit_index is not None
            and deposit_index - withdraw_index > FLASH_LOAN_MIN_GAP
        ):
            issues.append(DetectedIssue(
                pattern_id="trace:event_sequence:flash_loan_pattern",
                category=RiskCategory.EXPLOIT,
                severity=Severity.HIGH,
                title="Flash Loan Shape",
                description="Funds are borrowed and returned with other operations in between.",
                recommendation="Make sure you understand what happens between the borrow and the repayment.",
                confidence=CONFIDENCE_HIGH,
                source=self.name,
                evidence={
                    "borrow_event": types[withdraw_index],
                    "repay_event": types[deposit_index],
                    "intervening_events": deposit_index - withdraw_index - 1,
                },
            ))

        price_events = [t for t in types if PRICE_EVENT_RE.search(t)]
        if len(price_events) > 1:
            issues.append(DetectedIssue(
                pattern_id="trace:event_sequence:multiple_price_updates",
                category=RiskCategory.EXPLOIT,
                severity=Severity.CRITICAL,
                title="Multiple Price Updates",
                description=f"{len(price_events)} price or oracle updates in one transaction.",
                recommendation="Several oracle writes in one call is a classic manipulation shape. Do not sign.",
                confidence=CONFIDENCE_VERY_HIGH,
                source=self.name,
                evidence={"events": price_events},
            ))
        return issues

    def _gas(self, trace: SimulationTrace) -> list[DetectedIssue]:
        issues = []
        if trace.gas_used > GAS_CEILING:
            issues.append(DetectedIssue(
                pattern_id="trace:gas:excessive",
                category=RiskCategory.EXCESSIVE_COST,
                severity=Severity.HIGH,
                title="Excessive Gas Usage",
                description=f"The simulation used {trace.gas_used:,} gas units.",
                recommendation="Unusually expensive calls can hide work you did not ask for.",
                confidence=CONFIDENCE_HIGH,
                source=self.name,
                evidence={"gas_used": trace.gas_used, "ceiling": GAS_CEILING},
            ))

        operations = len(trace.events) + len(trace.state_changes)
        if operations > 0:
            per_operation = trace.gas_used / operations
            if per_operation > GAS_PER_OPERATION_CEILING:
                issues.append(DetectedIssue(
                    pattern_id="trace:gas:inefficient",
                    category=RiskCategory.EXCESSIVE_COST,
                    severity=Severity.MEDIUM,
                    title="Hidden Computation",
                    description=f"{per_operation:,.0f} gas per visible operation.",
                    recommendation="The call burns far more gas than its visible effects explain.",
                    confidence=CONFIDENCE_MEDIUM,
                    source=self.name,
                    evidence={"gas_per_operation": round(per_operation), "operations": operations},
                ))
        return issues
