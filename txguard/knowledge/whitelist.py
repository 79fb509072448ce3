"""Known-safe framework modules and functions.

Calls into the Aptos/Movement framework at 0x1-0x4 are the bulk of all
traffic and are audited upstream, so the engine answers them without running
any detector. A small set of framework functions stays dangerous no matter
who publishes them and is never whitelisted.
"""

from dataclasses import dataclass
from typing import Optional

from ..models import normalize_address


FRAMEWORK_ADDRESSES = frozenset({"0x1", "0x2", "0x3", "0x4"})

SAFE_CORE_MODULES = frozenset({
    "coin",
    "aptos_coin",
    "account",
    "aptos_account",
    "managed_coin",
    "primary_fungible_store",
    "fungible_asset",
    "object",
    "option",
    "string",
    "vector",
    "signer",
    "timestamp",
    "block",
    "transaction_context",
    "type_info",
    "table",
    "simple_map",
    "event",
    "guid",
    "hash",
    "bcs",
    "ed25519",
    "multi_ed25519",
    "secp256k1",
    "from_bcs",
    "math64",
    "math128",
    "comparator",
    "code",
    "resource_account",
    "create_signer",
})

SAFE_FUNCTIONS: dict[str, frozenset[str]] = {
    "coin": frozenset({
        "transfer", "deposit", "withdraw", "balance",
        "is_account_registered", "register", "value",
    }),
    "aptos_coin": frozenset({"transfer", "mint"}),
    "account": frozenset({"create_account", "exists_at", "get_sequence_number"}),
    "aptos_account": frozenset({"transfer", "create_account", "transfer_coins"}),
    "managed_coin": frozenset({"register", "mint", "burn"}),
    "primary_fungible_store": frozenset({"transfer", "deposit", "withdraw"}),
    "fungible_asset": frozenset({"transfer", "deposit", "withdraw"}),
    "object": frozenset({"transfer", "create_object"}),
}

# Checked before anything else; these can publish code, take over accounts
# or mint signer capabilities even at a framework address.
NEVER_WHITELIST = frozenset({
    "code::publish_package_txn",
    "resource_account::create_resource_account",
    "account::rotate_authentication_key",
})


@dataclass(frozen=True)
class WhitelistResult:
    """Outcome of a whitelist lookup."""
    is_whitelisted: bool
    reason: Optional[str] = None


def is_framework_address(address: str) -> bool:
    return normalize_address(address) in FRAMEWORK_ADDRESSES


def check_whitelist(module_address: str, module_name: str, function_name: str) -> WhitelistResult:
    """Decide whether a call can skip the detector ensemble."""
    qualified = f"{module_name}::{function_name}"
    if qualified in NEVER_WHITELIST:
        return WhitelistResult(False, f"{qualified} is never whitelisted")

    address = normalize_address(module_address)
    if address not in FRAMEWORK_ADDRESSES:
        return WhitelistResult(False)

    if function_name in SAFE_FUNCTIONS.get(module_name, ()):
        return WhitelistResult(True, f"Safe framework function {address}::{qualified}")

    if module_name in SAFE_CORE_MODULES:
        return WhitelistResult(True, f"Core framework module {address}::{module_name}")

    return WhitelistResult(False)
