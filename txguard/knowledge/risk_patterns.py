"""Rug-pull and trade-cost rules keyed on the called function's name."""

from dataclasses import dataclass
from typing import Optional

from ..models import RiskCategory, Severity
from .common import compile_patterns


# Amounts are base units unless noted.
LIQUIDITY_REMOVAL_THRESHOLD = 1_000_000_000
MINT_THRESHOLD = 10 ** 12
FEE_BASIS_POINTS_THRESHOLD = 1000  # 10%
LARGE_TRADE_THRESHOLD = 10 ** 14
SLIPPAGE_PERCENT_THRESHOLD = 5
SLIPPAGE_CRITICAL_PERCENT = 20
BATCH_EVENT_THRESHOLD = 10
BATCH_VECTOR_THRESHOLD = 5

GAS_SPIKE_TIERS: tuple[tuple[int, Severity, float], ...] = (
    (2_000_000, Severity.HIGH, 0.95),
    (1_000_000, Severity.HIGH, 0.9),
    (500_000, Severity.MEDIUM, 0.8),
)

# Unix seconds between late 2023 and 2033: an argument in this range is read
# as a swap deadline.
DEADLINE_RANGE = (1_700_000_000, 2_000_000_000)

LIQUIDITY_EVENT_PATTERNS = compile_patterns(r"liquidity", r"lp", r"pool")
PRICE_CHECK_EVENT_PATTERNS = compile_patterns(r"price", r"oracle", r"quote")


@dataclass(frozen=True)
class RiskPattern:
    """A rule that fires when the function name contains one of the keywords.

    ``severity`` is the level of a plain match; the detector escalates it when
    the call's amounts cross ``threshold``. Patterns without keywords decide
    from the simulation alone.
    """
    id: str
    name: str
    category: RiskCategory
    severity: Severity
    title: str
    description: str
    recommendation: str
    function_keywords: tuple[str, ...] = ()
    threshold: Optional[int] = None

    def matches_name(self, function_name: str) -> bool:
        name = function_name.lower()
        return any(keyword in name for keyword in self.function_keywords)


RISK_PATTERNS: tuple[RiskPattern, ...] = (
    # Rug pulls
    RiskPattern(
        id="rugpull:lp:remove_liquidity",
        name="Liquidity Removal",
        category=RiskCategory.RUG_PULL,
        severity=Severity.HIGH,
        title="Large Liquidity Removal Detected",
        description=(
            "This transaction removes liquidity from a pool. Large liquidity removals can move "
            "the token price sharply and may indicate a rug pull."
        ),
        recommendation=(
            "Verify this is an authorized action. Check that the sender is a trusted address and "
            "that the removal fits the project roadmap."
        ),
        function_keywords=("remove_liquidity", "withdraw_liquidity", "burn_lp", "exit_pool"),
        threshold=LIQUIDITY_REMOVAL_THRESHOLD,
    ),
    RiskPattern(
        id="rugpull:blacklist:add",
        name="Blacklist Function",
        category=RiskCategory.RUG_PULL,
        severity=Severity.HIGH,
        title="Blacklist Function Called",
        description=(
            "This transaction adds addresses to a blacklist so they can no longer transact. "
            "Tokens with blacklist functions can lock holders out."
        ),
        recommendation=(
            "Be cautious of tokens with blacklist functionality. Verify this is a legitimate "
            "anti-spam or compliance action and not targeted blocking."
        ),
        function_keywords=("blacklist", "block_address", "freeze", "ban"),
    ),
    RiskPattern(
        id="rugpull:mint:unlimited",
        name="Unlimited Minting",
        category=RiskCategory.RUG_PULL,
        severity=Severity.HIGH,
        title="Large Token Minting Detected",
        description=(
            "A significant amount of tokens is being minted. Unrestricted minting dilutes the "
            "token's value and is a common rug pull vector."
        ),
        recommendation=(
            "Check the mint against the published tokenomics and look for minting caps or "
            "governance controls."
        ),
        function_keywords=("mint", "issue", "create_token"),
        threshold=MINT_THRESHOLD,
    ),
    RiskPattern(
        id="rugpull:emergency:drain",
        name="Emergency Drain",
        category=RiskCategory.RUG_PULL,
        severity=Severity.CRITICAL,
        title="Emergency Fund Drain Detected",
        description=(
            "This transaction calls an emergency withdrawal or fund recovery function. These "
            "can empty the protocol's reserves in one call."
        ),
        recommendation=(
            "Verify this is a legitimate emergency action with governance approval, and watch "
            "for unusual fund movements."
        ),
        function_keywords=("emergency", "drain", "rescue", "sweep", "withdraw_all"),
    ),
    RiskPattern(
        id="rugpull:fee:hidden_increase",
        name="Fee Modification",
        category=RiskCategory.RUG_PULL,
        severity=Severity.HIGH,
        title="Fee Modification Detected",
        description=(
            "Transaction fees are being modified. Hidden or excessive fee increases extract "
            "value from holders and are typical of honeypots."
        ),
        recommendation=(
            "Review the new fee structure. Fees above 5-10% are suspicious, and fee changes "
            "should require governance approval."
        ),
        function_keywords=("fee", "tax", "commission"),
        threshold=FEE_BASIS_POINTS_THRESHOLD,
    ),

    # Trade cost
    RiskPattern(
        id="cost:gas:spike",
        name="Gas Spike",
        category=RiskCategory.EXCESSIVE_COST,
        severity=Severity.MEDIUM,
        title="High Gas Consumption",
        description=(
            "This transaction consumes far more gas than typical transactions, which points at "
            "complex operations or inefficient code."
        ),
        recommendation="Check that this gas usage is expected for the operation before signing.",
        threshold=GAS_SPIKE_TIERS[-1][0],
    ),
    RiskPattern(
        id="cost:slippage:high",
        name="High Slippage",
        category=RiskCategory.EXCESSIVE_COST,
        severity=Severity.LOW,
        title="High Slippage Tolerance",
        description=(
            "This trade accepts a minimum output well below its input, so you may receive much "
            "less than expected and the trade is open to front-running."
        ),
        recommendation=(
            "Lower the slippage tolerance. Use smaller trades or a private transaction pool for "
            "large swaps."
        ),
        function_keywords=("swap", "exchange", "trade"),
        threshold=SLIPPAGE_PERCENT_THRESHOLD,
    ),
    RiskPattern(
        id="cost:size:large_trade",
        name="Large Trade",
        category=RiskCategory.EXCESSIVE_COST,
        severity=Severity.MEDIUM,
        title="Large Transaction Size",
        description=(
            "This trade is large enough to move the market price. Large trades see more "
            "slippage and attract MEV bots."
        ),
        recommendation="Split the trade or use a TWAP strategy, and use MEV protection for large trades.",
        function_keywords=("swap", "liquidity", "trade"),
        threshold=LARGE_TRADE_THRESHOLD,
    ),
    RiskPattern(
        id="cost:dex:no_price_check",
        name="No Price Check",
        category=RiskCategory.EXCESSIVE_COST,
        severity=Severity.LOW,
        title="No Price Verification Detected",
        description=(
            "This DEX interaction neither reads an oracle nor sets a deadline, so it may "
            "execute at an unfavorable price."
        ),
        recommendation="Use a DEX with oracle price checks, or verify the price yourself before large trades.",
        function_keywords=("swap", "liquidity"),
    ),
    RiskPattern(
        id="cost:batch:multiple_ops",
        name="Batch Operation",
        category=RiskCategory.EXCESSIVE_COST,
        severity=Severity.LOW,
        title="Batch Operation Detected",
        description=(
            "This transaction performs many operations at once. Batching saves gas, but a "
            "complex batch is harder to review and all of it executes together."
        ),
        recommendation="Review every operation in the batch before signing.",
        function_keywords=("batch", "multi", "bulk"),
    ),
)
