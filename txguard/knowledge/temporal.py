"""Ordered event-sequence patterns over a single transaction's event log."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Constraint(str, Enum):
    MUST_PRECEDE = "must_precede"
    MUST_FOLLOW = "must_follow"
    MUST_NOT_EXIST = "must_not_exist"


@dataclass(frozen=True)
class EventStep:
    """One event type in a sequence, matched as a case-insensitive substring."""
    event_type: str
    constraint: Optional[Constraint] = None


@dataclass(frozen=True)
class TemporalPattern:
    name: str
    description: str
    sequence: tuple[EventStep, ...]
    is_malicious: bool

    @property
    def slug(self) -> str:
        return "_".join(self.name.lower().split())


TEMPORAL_PATTERNS: tuple[TemporalPattern, ...] = (
    TemporalPattern(
        name="Oracle Manipulation",
        description="Price update followed by a swap that trades against the new price.",
        sequence=(
            EventStep("PriceUpdate", Constraint.MUST_PRECEDE),
            EventStep("Swap", Constraint.MUST_FOLLOW),
        ),
        is_malicious=True,
    ),
    TemporalPattern(
        name="Flash Loan Attack",
        description="Flash loan, swap and repayment inside one transaction.",
        sequence=(
            EventStep("FlashLoan"),
            EventStep("Swap"),
            EventStep("FlashLoanRepay"),
        ),
        is_malicious=False,
    ),
    TemporalPattern(
        name="Sandwich Attack",
        description="A user swap bracketed by two swaps from the same actor.",
        sequence=(
            EventStep("Swap"),
            EventStep("UserSwap"),
            EventStep("Swap"),
        ),
        is_malicious=True,
    ),
    TemporalPattern(
        name="Reentrancy Pattern",
        description="External call observed before the state update it should follow.",
        sequence=(
            EventStep("ExternalCall"),
            EventStep("StateUpdate"),
        ),
        is_malicious=True,
    ),
    TemporalPattern(
        name="Legitimate Ownership Transfer",
        description="Ownership change that went through a timelock.",
        sequence=(
            EventStep("OwnershipTransferRequested"),
            EventStep("TimelockStart"),
            EventStep("OwnershipTransferExecuted"),
        ),
        is_malicious=False,
    ),
    TemporalPattern(
        name="Instant Ownership Transfer",
        description="Ownership changed with no timelock.",
        sequence=(
            EventStep("OwnershipTransferred"),
        ),
        is_malicious=True,
    ),
)
