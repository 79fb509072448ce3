"""Simulation-evasion ("red pill") detection.

A contract that reads block height, timestamps, chain id or randomness can
behave well in a dry run and differently on chain. Two signals are checked:
static hints in the call and its events, and divergence between two
simulations of the same call under different environment values.
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..feeds.ledger import LedgerClient, LedgerInfo
from ..models import AnalysisContext, DetectedIssue, RiskCategory, Severity, SimulationTrace
from .base import CONFIDENCE_MEDIUM, CONFIDENCE_VERY_HIGH, Detector

logger = logging.getLogger(__name__)

ENVIRONMENT_ACCESS = (
    "block::get_current_block_height",
    "timestamp::now_seconds",
    "timestamp::now_microseconds",
    "chain_id::get",
    "block::get_epoch",
    "transaction_context::get_transaction_hash",
    "transaction_context::generate_unique_address",
    "randomness::u64_range",
    "randomness::permutation",
)

CONDITIONAL_EVENTS = ("SimulationDetected", "EnvironmentCheck", "BlockValidation")

GAS_TOLERANCE = 0.2


def compare_traces(first: SimulationTrace, second: SimulationTrace) -> Optional[tuple[str, Severity, str]]:
    """Return (aspect, severity, detail) for the first difference, or None."""
    if first.success != second.success:
        return (
            "outcome",
            Severity.CRITICAL,
            f"One run {'succeeded' if first.success else 'failed'}, the other "
            f"{'succeeded' if second.success else 'failed'}",
        )

    mean_gas = (first.gas_used + second.gas_used) / 2
    if mean_gas and abs(first.gas_used - second.gas_used) > GAS_TOLERANCE * mean_gas:
        return "gas", Severity.HIGH, f"Gas used {first.gas_used} vs {second.gas_used}"

    if len(first.events) != len(second.events):
        return "events", Severity.HIGH, f"{len(first.events)} events vs {len(second.events)}"

    if len(first.state_changes) != len(second.state_changes):
        return (
            "state_changes",
            Severity.CRITICAL,
            f"{len(first.state_changes)} state changes vs {len(second.state_changes)}",
        )
    return None


class RedPillDetector(Detector):
    name = "red_pill"

    def __init__(self, ledger: Optional[LedgerClient] = None, probe_timeout: float = 1.5):
        self.ledger = ledger
        self.probe_timeout = probe_timeout

    async def run(self, context: AnalysisContext) -> list[DetectedIssue]:
        findings = []

        call = f"{context.module_name}::{context.function_name}".lower()
        event_types = [e.type.lower() for e in context.events]
        accessed = [
            p for p in ENVIRONMENT_ACCESS
            if p in call or any(p in t for t in event_types)
        ]
        if accessed:
            findings.append(dict(
                pattern_id="redpill:rp-env-access",
                category=RiskCategory.EXPLOIT,
                severity=Severity.MEDIUM,
                title="Environment-Dependent Logic",
                description="The call reads values that differ between simulation and production: "
                            + ", ".join(accessed),
                recommendation="Simulation results may not reflect what happens on chain.",
                confidence=CONFIDENCE_MEDIUM,
                evidence={"accessed": accessed},
            ))

        conditional = [
            e.type for e in context.events
            if any(marker.lower() in e.type.lower() for marker in CONDITIONAL_EVENTS)
        ]
        if conditional:
            findings.append(dict(
                pattern_id="redpill:rp-cond-event",
                category=RiskCategory.EXPLOIT,
                severity=Severity.HIGH,
                title="Environment Check Event",
                description="The contract emits events that suggest it checks whether it is being simulated.",
                recommendation="Treat the simulation as untrustworthy for this contract.",
                confidence=CONFIDENCE_MEDIUM,
                evidence={"events": conditional},
            ))

        if context.simulation and context.comparison_simulation:
            divergence = compare_traces(context.simulation, context.comparison_simulation)
            if divergence:
                aspect, severity, detail = divergence
                findings.append(dict(
                    pattern_id="redpill:behavioral_divergence",
                    category=RiskCategory.EXPLOIT,
                    severity=severity,
                    title="Behavioral Divergence Between Simulations",
                    description=f"The same call behaves differently under different environments. {detail}.",
                    recommendation="The contract is likely evading simulation. Do not sign.",
                    confidence=CONFIDENCE_VERY_HIGH,
                    evidence={"aspect": aspect, "detail": detail},
                ))

        if not findings:
            return []

        environment = await self._probe_environment(context.network)
        issues = []
        for finding in findings:
            evidence = finding.pop("evidence")
            if environment is not None:
                evidence["ledger"] = {
                    "chain_id": environment.chain_id,
                    "block_height": environment.block_height,
                    "ledger_timestamp": environment.ledger_timestamp,
                }
            issues.append(DetectedIssue(source=self.name, evidence=evidence, **finding))
        return issues

    async def _probe_environment(self, network: str) -> Optional[LedgerInfo]:
        """Best effort; the detector's findings never depend on it."""
        if self.ledger is None:
            return None
        try:
            return await asyncio.wait_for(self.ledger.get_ledger_info(network), self.probe_timeout)
        except (httpx.HTTPError, ValueError, asyncio.TimeoutError) as e:
            logger.warning("Ledger probe for %s failed: %s", network, e)
            return None
