"""Known malicious addresses, phishing signatures, exploit shapes and impersonated modules."""

from dataclasses import dataclass
from typing import Optional

from ..models import RiskCategory, Severity, normalize_address
from .common import compile_patterns
from .signatures import U128_MAX, U64_MAX


@dataclass(frozen=True)
class MaliciousAddress:
    address: str
    label: str
    description: str
    severity: Severity
    category: RiskCategory
    networks: tuple[str, ...] = ()  # empty means every network
    reported_at: str = ""
    source: str = ""

    @property
    def slug(self) -> str:
        return "_".join(self.label.lower().split())

    def applies_to(self, network: str) -> bool:
        return not self.networks or network in self.networks


@dataclass(frozen=True)
class MaliciousSignature:
    name: str
    pattern: object
    severity: Severity
    category: RiskCategory
    description: str
    legitimate: bool = False

    @property
    def slug(self) -> str:
        return "_".join(self.name.lower().split())


@dataclass(frozen=True)
class ExploitPattern:
    """Every configured class must match for the pattern to fire."""
    id: str
    name: str
    description: str
    severity: Severity
    function_patterns: tuple = ()
    arg_patterns: tuple = ()
    event_patterns: tuple = ()
    category: RiskCategory = RiskCategory.EXPLOIT


@dataclass(frozen=True)
class ModuleImpersonationPattern:
    name: str
    module_pattern: object
    legitimate_addresses: tuple[str, ...]
    description: str = ""


MALICIOUS_ADDRESSES: tuple[MaliciousAddress, ...] = (
    MaliciousAddress(
        address="0x" + "deadbeef" * 8,
        label="Example Honeypot",
        description="Token contract whose transfers revert for everyone except the deployer.",
        severity=Severity.CRITICAL,
        category=RiskCategory.RUG_PULL,
        reported_at="2024-01-01",
        source="community report",
    ),
    MaliciousAddress(
        address="0x8d87a65ba30e09357fa2edea2c80dbac296e5dec2b18287113500b902942929d",
        label="Thala Exploiter",
        description="Account that drained Thala Protocol's v1 farming contracts.",
        severity=Severity.CRITICAL,
        category=RiskCategory.EXPLOIT,
        networks=("mainnet",),
        reported_at="2024-11-15",
        source="DeFiHackLabs",
    ),
)

# First match wins; a legitimate entry suppresses every broader one below it.
MALICIOUS_SIGNATURES: tuple[MaliciousSignature, ...] = (
    MaliciousSignature(
        name="Framework Coin Operation",
        pattern=compile_patterns(r"^0x1::(?:coin|aptos_coin)::.*(?:transfer|mint|burn)$")[0],
        severity=Severity.LOW,
        category=RiskCategory.OTHER,
        description="Core framework coin function.",
        legitimate=True,
    ),
    MaliciousSignature(
        name="DEX Phishing",
        pattern=compile_patterns(r"(?:pancake|uni|sushi)swap.*(?:claim|airdrop|reward)")[0],
        severity=Severity.CRITICAL,
        category=RiskCategory.RUG_PULL,
        description="Claim function dressed up as a well-known DEX reward.",
    ),
    MaliciousSignature(
        name="Fake Airdrop",
        pattern=compile_patterns(r"(?:free|claim|get).*(?:nft|token|coin|airdrop)")[0],
        severity=Severity.HIGH,
        category=RiskCategory.RUG_PULL,
        description="Free token or NFT claim, the usual drainer lure.",
    ),
    MaliciousSignature(
        name="Emergency Drain",
        pattern=compile_patterns(r"emergency.*withdraw.*all")[0],
        severity=Severity.CRITICAL,
        category=RiskCategory.RUG_PULL,
        description="Withdraws every balance held by the contract.",
    ),
)

EXPLOIT_PATTERNS: tuple[ExploitPattern, ...] = (
    ExploitPattern(
        id="exploit:flashloan_attack",
        name="Flash Loan Attack",
        description="Flash borrow and repay observed around the call.",
        severity=Severity.CRITICAL,
        function_patterns=compile_patterns(r"flash.*loan", r"borrow.*flash"),
        event_patterns=compile_patterns(r"flash.*borrow", r"flash.*repay"),
    ),
    ExploitPattern(
        id="exploit:price_manipulation",
        name="Price Manipulation",
        description="Direct price write with matching oracle events.",
        severity=Severity.CRITICAL,
        function_patterns=compile_patterns(r"update.*price", r"set.*price", r"oracle.*update"),
        event_patterns=compile_patterns(r"price.*update", r"oracle.*update"),
    ),
    ExploitPattern(
        id="exploit:infinite_approval",
        name="Infinite Approval",
        description="Approval for the maximum integer amount.",
        severity=Severity.HIGH,
        function_patterns=compile_patterns(r"approve", r"allowance"),
        arg_patterns=compile_patterns(rf"^{U64_MAX}$", rf"^{U128_MAX}$"),
    ),
    ExploitPattern(
        id="exploit:ownership_transfer",
        name="Ownership Transfer",
        description="Call that hands control of the module to another account.",
        severity=Severity.CRITICAL,
        function_patterns=compile_patterns(r"transfer.*owner", r"set.*owner", r"change.*admin"),
        category=RiskCategory.RUG_PULL,
    ),
)

MODULE_IMPERSONATION_PATTERNS: tuple[ModuleImpersonationPattern, ...] = (
    ModuleImpersonationPattern(
        name="Aptos Coin",
        module_pattern=compile_patterns(r"aptos_coin|apt_coin|AptosCoin")[0],
        legitimate_addresses=("0x1",),
        description="Only the framework publishes aptos_coin.",
    ),
    ModuleImpersonationPattern(
        name="Aptos Framework",
        module_pattern=compile_patterns(r"aptos_framework|framework")[0],
        legitimate_addresses=("0x1",),
        description="Framework modules live at 0x1.",
    ),
    ModuleImpersonationPattern(
        name="Liquidswap",
        module_pattern=compile_patterns(r"liquidswap|pontem")[0],
        legitimate_addresses=(),
        description="Deployment addresses not catalogued yet.",
    ),
)


def find_malicious_address(address: str, network: str) -> Optional[MaliciousAddress]:
    wanted = normalize_address(address)
    for entry in MALICIOUS_ADDRESSES:
        if normalize_address(entry.address) == wanted and entry.applies_to(network):
            return entry
    return None
