"""Threat signatures: single-call red flags matched by name, arguments and ABI shape."""

from dataclasses import dataclass, field
from typing import Optional

from ..models import RiskCategory, Severity
from .common import CountRange, compile_patterns


U64_MAX = 18446744073709551615
U128_MAX = 340282366920938463463374607431768211455
U256_MAX = 115792089237316195423570985008687907853269984665640564039457584007913129639935


@dataclass(frozen=True)
class AbiCheck:
    """Structural requirements on the called function's ABI.

    has_ability and has_public_mut_ref are triggers; the remaining fields
    qualify a match. All configured fields must hold together.
    """
    has_ability: tuple[str, ...] = ()
    lacks_ability: tuple[str, ...] = ()
    has_public_mut_ref: Optional[bool] = None
    is_entry: Optional[bool] = None
    is_view: Optional[bool] = None
    param_count: Optional[CountRange] = None
    generic_count: Optional[CountRange] = None

    @property
    def has_trigger(self) -> bool:
        return bool(self.has_ability) or self.has_public_mut_ref is not None


@dataclass(frozen=True)
class SignatureDetection:
    function_patterns: tuple = ()
    module_patterns: tuple = ()
    type_arg_patterns: tuple = ()
    arg_patterns: tuple = ()
    event_patterns: tuple = ()
    abi: Optional[AbiCheck] = None


@dataclass(frozen=True)
class ThreatSignature:
    id: str
    name: str
    description: str
    severity: Severity
    category: RiskCategory
    detection: SignatureDetection
    attack_vector: str
    confidence: float
    false_positive_risk: str = "medium"
    tags: tuple[str, ...] = ()
    references: tuple[str, ...] = field(default_factory=tuple)


THREAT_SIGNATURES: tuple[ThreatSignature, ...] = (
    # Approvals and permits
    ThreatSignature(
        id="SIG-001",
        name="Unlimited Token Approval",
        description="Grants a spender the maximum possible allowance. Any later compromise of the spender drains the whole balance.",
        severity=Severity.CRITICAL,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"approve", r"set_allowance", r"increase_allowance", r"permit"),
            arg_patterns=compile_patterns(
                rf"^{U64_MAX}$", rf"^{U128_MAX}$", rf"^{U256_MAX}$",
                r"^0x[f]{16}$", r"^0x[f]{32}$",
            ),
        ),
        attack_vector="Permit/Approval signature exploitation",
        confidence=0.95,
        false_positive_risk="low",
        tags=("approval", "unlimited", "drainer"),
        references=("https://revoke.cash/learn/approvals/what-are-token-approvals",),
    ),
    ThreatSignature(
        id="SIG-002",
        name="setApprovalForAll Pattern",
        description="Approves an operator for every token in a collection at once.",
        severity=Severity.CRITICAL,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"set_approval_for_all", r"setApprovalForAll", r"approve_all", r"approve_collection",
            ),
        ),
        attack_vector="NFT collection drain via blanket approval",
        confidence=0.92,
        false_positive_risk="low",
        tags=("nft", "approval", "collection-drain"),
    ),
    ThreatSignature(
        id="SIG-003",
        name="Ownership Transfer",
        description="Moves contract ownership or admin rights to another account.",
        severity=Severity.CRITICAL,
        category=RiskCategory.RUG_PULL,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"set_owner", r"transfer_owner", r"change_owner", r"change_admin", r"set_admin",
                r"transfer_admin", r"renounce_owner", r"accept_owner", r"nominate_owner",
            ),
        ),
        attack_vector="Contract ownership hijacking",
        confidence=0.90,
        false_positive_risk="medium",
        tags=("ownership", "admin", "access-control"),
    ),
    ThreatSignature(
        id="SIG-004",
        name="Permit2 Batch Approval",
        description="Signature-based batch approval that can move several tokens in one call.",
        severity=Severity.CRITICAL,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"permit2", r"permit_batch", r"permit_transfer_from", r"signature_transfer",
            ),
            module_patterns=compile_patterns(r"permit2", r"universal_router"),
        ),
        attack_vector="Batch token drain via Permit2",
        confidence=0.88,
        false_positive_risk="medium",
        tags=("permit2", "approval", "batch"),
    ),

    # Flash loans and price manipulation
    ThreatSignature(
        id="SIG-010",
        name="Flash Loan",
        description="Borrows and repays within one transaction, the usual amplifier for price attacks.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"flash_loan", r"flash_borrow", r"flash_mint", r"flashloan"),
            event_patterns=compile_patterns(r"FlashLoan", r"FlashBorrow", r"FlashMint"),
        ),
        attack_vector="Flash loan amplified attack",
        confidence=0.75,
        false_positive_risk="medium",
        tags=("flash-loan", "defi"),
    ),
    ThreatSignature(
        id="SIG-011",
        name="Oracle Price Manipulation",
        description="Writes a price into an oracle that other protocols may read in the same block.",
        severity=Severity.CRITICAL,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"update_price", r"set_price", r"push_price", r"oracle_update",
                r"submit_price", r"report_price", r"twap_update",
            ),
            event_patterns=compile_patterns(r"PriceUpdate", r"OracleUpdate", r"NewPrice"),
        ),
        attack_vector="Price oracle manipulation for arbitrage",
        confidence=0.85,
        false_positive_risk="medium",
        tags=("oracle", "price", "manipulation"),
    ),
    ThreatSignature(
        id="SIG-012",
        name="Liquidity Ratio Manipulation",
        description="Changes pool reserves in a way that can skew spot prices.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"add_liquidity", r"remove_liquidity", r"^sync$", r"^skim$", r"^swap$",
            ),
        ),
        attack_vector="AMM reserve manipulation",
        confidence=0.70,
        false_positive_risk="high",
        tags=("amm", "liquidity"),
    ),

    # Admin abuse
    ThreatSignature(
        id="SIG-020",
        name="Emergency Withdraw",
        description="Privileged function that pulls funds out of the contract.",
        severity=Severity.CRITICAL,
        category=RiskCategory.RUG_PULL,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"emergency_withdraw", r"emergency_exit", r"panic_withdraw", r"rescue_funds",
                r"recover_tokens", r"admin_withdraw", r"owner_withdraw",
            ),
        ),
        attack_vector="Admin key abuse for fund extraction",
        confidence=0.88,
        false_positive_risk="medium",
        tags=("admin", "withdraw", "rug-pull"),
    ),
    ThreatSignature(
        id="SIG-021",
        name="Pause Function Abuse",
        description="Freezes the contract, which can trap user funds.",
        severity=Severity.HIGH,
        category=RiskCategory.RUG_PULL,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"^pause$", r"set_paused", r"emergency_pause", r"freeze", r"halt", r"stop_trading",
            ),
        ),
        attack_vector="Contract pause to prevent user withdrawal",
        confidence=0.75,
        false_positive_risk="high",
        tags=("pause", "admin"),
    ),
    ThreatSignature(
        id="SIG-022",
        name="Fee Manipulation",
        description="Changes protocol fees or taxes, possibly to 100%.",
        severity=Severity.HIGH,
        category=RiskCategory.RUG_PULL,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"set_fee", r"update_fee", r"change_fee", r"set_tax", r"set_slippage",
                r"set_withdrawal_fee", r"set_deposit_fee",
            ),
            arg_patterns=compile_patterns(r"^100$", r"^10000$", r"^1000000$"),
        ),
        attack_vector="Fee manipulation for fund extraction",
        confidence=0.80,
        false_positive_risk="medium",
        tags=("fee", "tax", "admin"),
    ),

    # Code and control flow
    ThreatSignature(
        id="SIG-030",
        name="Contract Upgrade",
        description="Replaces the module code the caller is about to trust.",
        severity=Severity.HIGH,
        category=RiskCategory.PERMISSION,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"^upgrade$", r"upgrade_to", r"set_implementation", r"update_code", r"^migrate$", r"update_module",
            ),
            abi=AbiCheck(is_entry=True),
        ),
        attack_vector="Malicious code injection via upgrade",
        confidence=0.82,
        false_positive_risk="medium",
        tags=("upgrade", "proxy"),
    ),
    ThreatSignature(
        id="SIG-031",
        name="Delegated Execution",
        description="Hands execution to externally supplied code.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"^delegate$", r"call_external", r"execute_external", r"proxy_call"),
        ),
        attack_vector="Malicious code execution via delegation",
        confidence=0.78,
        false_positive_risk="medium",
        tags=("delegate", "external-call"),
    ),
    ThreatSignature(
        id="SIG-040",
        name="Callback Hook",
        description="Invokes a hook that can re-enter or change state mid-operation.",
        severity=Severity.MEDIUM,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"callback", r"^hook$", r"on_receive", r"before_transfer", r"after_transfer", r"on_flash_loan",
            ),
        ),
        attack_vector="Callback-based state manipulation",
        confidence=0.70,
        false_positive_risk="high",
        tags=("callback", "reentrancy"),
    ),

    # Phishing
    ThreatSignature(
        id="SIG-050",
        name="Fake Airdrop Claim",
        description="Free reward claims are the most common phishing lure.",
        severity=Severity.CRITICAL,
        category=RiskCategory.RUG_PULL,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"claim_airdrop", r"claim_reward", r"claim_tokens", r"claim_free", r"claim_bonus",
                r"free_mint", r"free_claim", r"^airdrop$", r"giveaway",
            ),
        ),
        attack_vector="Phishing via fake reward claim",
        confidence=0.90,
        false_positive_risk="low",
        tags=("phishing", "airdrop"),
    ),
    ThreatSignature(
        id="SIG-051",
        name="Protocol Impersonation",
        description="Module named after a well-known protocol that does not live on this chain.",
        severity=Severity.CRITICAL,
        category=RiskCategory.RUG_PULL,
        detection=SignatureDetection(
            module_patterns=compile_patterns(
                r"pancake", r"uniswap", r"sushiswap", r"curve", r"aave", r"compound",
                r"metamask", r"opensea", r"blur",
            ),
        ),
        attack_vector="Brand impersonation phishing",
        confidence=0.85,
        false_positive_risk="medium",
        tags=("phishing", "impersonation"),
    ),

    # Token traps
    ThreatSignature(
        id="SIG-060",
        name="Honeypot Transfer",
        description="Transfer with extra parameters, a common way to block sells for everyone but the owner.",
        severity=Severity.CRITICAL,
        category=RiskCategory.RUG_PULL,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"^transfer$", r"^sell$"),
            abi=AbiCheck(param_count=CountRange(min=3)),
        ),
        attack_vector="Honeypot token - unable to sell",
        confidence=0.65,
        false_positive_risk="high",
        tags=("honeypot", "token"),
    ),
    ThreatSignature(
        id="SIG-061",
        name="Hidden Mint",
        description="Publicly callable mint that can inflate supply.",
        severity=Severity.HIGH,
        category=RiskCategory.RUG_PULL,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"^mint$", r"create_token", r"^issue$", r"inflate"),
            abi=AbiCheck(is_entry=True),
        ),
        attack_vector="Infinite mint and dump",
        confidence=0.75,
        false_positive_risk="high",
        tags=("mint", "inflation"),
    ),

    # Move resource safety
    ThreatSignature(
        id="SIG-100",
        name="Resource Leak",
        description="Stored resource without drop can be orphaned or locked forever.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            abi=AbiCheck(has_ability=("key",), lacks_ability=("drop",)),
        ),
        attack_vector="Resource handling vulnerability",
        confidence=0.80,
        false_positive_risk="medium",
        tags=("move", "resource", "abilities"),
    ),
    ThreatSignature(
        id="SIG-101",
        name="Unsafe Copy Ability",
        description="A value-bearing type with copy can be duplicated.",
        severity=Severity.CRITICAL,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            abi=AbiCheck(has_ability=("copy",)),
        ),
        attack_vector="Token duplication via copy ability",
        confidence=0.90,
        false_positive_risk="low",
        tags=("move", "copy", "abilities"),
    ),
    ThreatSignature(
        id="SIG-102",
        name="Unsafe Drop Ability",
        description="A loan receipt that can be dropped lets the borrower skip repayment.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"flash_loan", r"receipt", r"^loan$"),
            abi=AbiCheck(has_ability=("drop", "key")),
        ),
        attack_vector="Flash loan escape via drop ability",
        confidence=0.85,
        false_positive_risk="medium",
        tags=("move", "drop", "flash-loan"),
    ),
    ThreatSignature(
        id="SIG-103",
        name="Public Mutable Reference",
        description="Public function hands out &mut to internal state.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            abi=AbiCheck(has_public_mut_ref=True),
        ),
        attack_vector="State manipulation via mutable reference",
        confidence=0.80,
        false_positive_risk="medium",
        tags=("move", "reference"),
    ),
    ThreatSignature(
        id="SIG-104",
        name="Generic Type Substitution",
        description="Generic asset function may accept an attacker-chosen type.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"^transfer$", r"^swap$", r"^deposit$", r"^withdraw$"),
            abi=AbiCheck(generic_count=CountRange(min=1)),
        ),
        attack_vector="Type confusion attack",
        confidence=0.70,
        false_positive_risk="high",
        tags=("move", "generics"),
    ),
    ThreatSignature(
        id="SIG-105",
        name="ConstructorRef Exposure",
        description="Leaking a ConstructorRef lets others mint refs over the object.",
        severity=Severity.CRITICAL,
        category=RiskCategory.PERMISSION,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"constructor_ref", r"get_constructor", r"create_object"),
            type_arg_patterns=compile_patterns(r"ConstructorRef"),
        ),
        attack_vector="Object ownership hijacking",
        confidence=0.85,
        false_positive_risk="medium",
        tags=("move", "object"),
    ),

    # Arithmetic
    ThreatSignature(
        id="SIG-110",
        name="Division Truncation",
        description="Integer division before multiplication loses precision an attacker can farm.",
        severity=Severity.MEDIUM,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"calculate_fee", r"get_amount", r"compute_reward", r"^div$"),
        ),
        attack_vector="Precision loss exploitation",
        confidence=0.65,
        false_positive_risk="high",
        tags=("arithmetic", "precision"),
    ),
    ThreatSignature(
        id="SIG-111",
        name="Shift Overflow",
        description="Bit shifts do not abort on overflow in Move.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"shift", r"^shl$", r"multiply"),
        ),
        attack_vector="Integer overflow exploitation",
        confidence=0.70,
        false_positive_risk="high",
        tags=("arithmetic", "overflow"),
    ),

    # Randomness
    ThreatSignature(
        id="SIG-120",
        name="Predictable Randomness",
        description="Game outcome derived from on-chain values the caller can predict.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(
                r"random", r"^rand$", r"lottery", r"raffle", r"dice", r"coinflip",
            ),
            module_patterns=compile_patterns(r"randomness"),
        ),
        attack_vector="Randomness manipulation",
        confidence=0.75,
        false_positive_risk="medium",
        tags=("randomness", "gaming"),
    ),
    ThreatSignature(
        id="SIG-121",
        name="Test-and-Abort Randomness",
        description="Randomness reachable from a non-entry function can be retried until it pays.",
        severity=Severity.HIGH,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"^random$", r"get_random", r"generate_random"),
            abi=AbiCheck(is_entry=False),
        ),
        attack_vector="Selective outcome via transaction abort",
        confidence=0.80,
        false_positive_risk="medium",
        tags=("randomness", "abort"),
    ),

    # MEV
    ThreatSignature(
        id="SIG-130",
        name="Front-Running Exposure",
        description="Trade without slippage or deadline parameters.",
        severity=Severity.MEDIUM,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"^swap$", r"^trade$", r"^exchange$", r"liquidate"),
            abi=AbiCheck(param_count=CountRange(max=3)),
        ),
        attack_vector="MEV extraction via front-running",
        confidence=0.65,
        false_positive_risk="high",
        tags=("mev", "front-running"),
    ),
    ThreatSignature(
        id="SIG-131",
        name="Sandwich Exposure",
        description="Swap that can be bracketed by an attacker's trades.",
        severity=Severity.MEDIUM,
        category=RiskCategory.EXPLOIT,
        detection=SignatureDetection(
            function_patterns=compile_patterns(r"^swap"),
        ),
        attack_vector="Sandwich attack profit extraction",
        confidence=0.60,
        false_positive_risk="high",
        tags=("mev", "sandwich"),
    ),
)


# Used by the approval and permission analyses that run alongside the table.
APPROVAL_FUNCTION_PATTERNS = compile_patterns(
    r"approve", r"set_allowance", r"increase_allowance", r"permit", r"set_approval_for_all",
)
UNLIMITED_AMOUNTS = frozenset({str(U64_MAX), str(U128_MAX), str(U256_MAX)})
UNLIMITED_HEX_PATTERN = compile_patterns(r"^0x(?:f{16}|f{32}|f{64})$")[0]
LARGE_APPROVAL_THRESHOLD = 10 ** 17

OWNERSHIP_FUNCTION_PATTERNS = compile_patterns(
    r"transfer_owner", r"set_owner", r"change_owner", r"renounce_owner", r"set_admin", r"change_admin",
)

# Ordered highest risk first.
PERMISSION_RISKS: tuple[tuple, ...] = (
    (compile_patterns(r"set_approval_for_all")[0], Severity.CRITICAL),
    (compile_patterns(r"approve.*unlimited")[0], Severity.CRITICAL),
    (compile_patterns(r"permit2")[0], Severity.CRITICAL),
    (compile_patterns(r"delegate")[0], Severity.HIGH),
    (compile_patterns(r"grant.*role")[0], Severity.HIGH),
    (compile_patterns(r"set.*operator")[0], Severity.HIGH),
    (compile_patterns(r"approve")[0], Severity.MEDIUM),
    (compile_patterns(r"allow")[0], Severity.MEDIUM),
)
