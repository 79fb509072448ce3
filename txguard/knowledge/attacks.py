"""Multi-stage attack patterns built from historical incidents."""

from dataclasses import dataclass

from ..models import RiskCategory, Severity
from .common import compile_patterns


@dataclass(frozen=True)
class AttackStage:
    name: str
    required: bool
    function_patterns: tuple = ()
    event_patterns: tuple = ()
    state_patterns: tuple = ()


@dataclass(frozen=True)
class AttackPattern:
    id: str
    name: str
    description: str
    severity: Severity
    category: RiskCategory
    stages: tuple[AttackStage, ...]
    min_stages_required: int
    historical_loss: str = ""
    affected_protocols: tuple[str, ...] = ()
    references: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


ATTACK_PATTERNS: tuple[AttackPattern, ...] = (
    AttackPattern(
        id="ATK-001",
        name="Flash Loan Price Manipulation",
        description="Borrow, move an oracle price, profit against it and repay within one transaction.",
        severity=Severity.CRITICAL,
        category=RiskCategory.EXPLOIT,
        stages=(
            AttackStage(
                name="Flash Borrow",
                required=True,
                function_patterns=compile_patterns(r"flash_loan", r"flash_borrow"),
                event_patterns=compile_patterns(r"FlashBorrow", r"FlashLoan"),
            ),
            AttackStage(
                name="Price/Oracle Update",
                required=True,
                function_patterns=compile_patterns(r"update_price", r"set_price", r"oracle"),
                event_patterns=compile_patterns(r"PriceUpdate", r"OracleUpdate"),
            ),
            AttackStage(
                name="Profit Extraction",
                required=False,
                function_patterns=compile_patterns(r"swap", r"liquidate", r"borrow", r"withdraw"),
            ),
            AttackStage(
                name="Flash Repay",
                required=True,
                function_patterns=compile_patterns(r"repay", r"flash_repay"),
                event_patterns=compile_patterns(r"FlashRepay"),
            ),
        ),
        min_stages_required=3,
        historical_loss="$403M+ across 2022-2024 incidents",
        affected_protocols=("Mango Markets", "Cream Finance", "Harvest Finance"),
        references=("https://github.com/SunWeb3Sec/DeFiHackLabs",),
        tags=("flash-loan", "oracle"),
    ),
    AttackPattern(
        id="ATK-002",
        name="Governance Takeover",
        description="Accumulate voting power, pass a proposal and execute it before anyone reacts.",
        severity=Severity.CRITICAL,
        category=RiskCategory.EXPLOIT,
        stages=(
            AttackStage(
                name="Token Accumulation",
                required=True,
                function_patterns=compile_patterns(r"flash_loan", r"transfer", r"delegate"),
            ),
            AttackStage(
                name="Proposal/Vote",
                required=True,
                function_patterns=compile_patterns(r"propose", r"vote", r"cast_vote", r"create_proposal"),
                event_patterns=compile_patterns(r"ProposalCreated", r"VoteCast"),
            ),
            AttackStage(
                name="Execution",
                required=True,
                function_patterns=compile_patterns(r"execute", r"execute_proposal"),
                event_patterns=compile_patterns(r"ProposalExecuted"),
            ),
        ),
        min_stages_required=2,
        historical_loss="$182M (Beanstalk, 2022)",
        affected_protocols=("Beanstalk", "Tornado Cash governance"),
        tags=("governance", "flash-loan"),
    ),
    AttackPattern(
        id="ATK-003",
        name="Approval and Transfer Drain",
        description="An approval followed by a transferFrom that empties the approver.",
        severity=Severity.CRITICAL,
        category=RiskCategory.EXPLOIT,
        stages=(
            AttackStage(
                name="Approval",
                required=True,
                function_patterns=compile_patterns(r"approve", r"permit", r"setApprovalForAll"),
                event_patterns=compile_patterns(r"Approval"),
            ),
            AttackStage(
                name="Transfer",
                required=True,
                function_patterns=compile_patterns(r"transfer_from", r"transferFrom", r"safeTransferFrom"),
                event_patterns=compile_patterns(r"Transfer"),
            ),
        ),
        min_stages_required=2,
        historical_loss="$1B+ in wallet drainer campaigns",
        affected_protocols=("Inferno Drainer victims", "Pink Drainer victims"),
        tags=("approval", "drainer"),
    ),
    AttackPattern(
        id="ATK-004",
        name="Rug Pull Sequence",
        description="Admin disables exits, withdraws the treasury and walks away from ownership.",
        severity=Severity.CRITICAL,
        category=RiskCategory.RUG_PULL,
        stages=(
            AttackStage(
                name="Disable Withdrawals",
                required=False,
                function_patterns=compile_patterns(r"pause", r"freeze", r"disable_withdraw"),
            ),
            AttackStage(
                name="Admin Withdrawal",
                required=True,
                function_patterns=compile_patterns(r"emergency_withdraw", r"admin_withdraw", r"rescue"),
            ),
            AttackStage(
                name="Ownership Renounce",
                required=False,
                function_patterns=compile_patterns(r"renounce", r"transfer_owner.*0x0"),
            ),
        ),
        min_stages_required=1,
        historical_loss="$2.8B in 2021 rug pulls",
        tags=("rug-pull", "admin"),
    ),
)
