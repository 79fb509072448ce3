"""Tests for the local scam database lookups."""

from txguard.detectors.scam_db import ScamDatabaseDetector, match_exploit_pattern, match_malicious_signature
from txguard.knowledge.signatures import U64_MAX
from txguard.models import Severity

HONEYPOT = "0x" + "deadbeef" * 8
THALA = "0x8d87a65ba30e09357fa2edea2c80dbac296e5dec2b18287113500b902942929d"


def _ids(ctx):
    return {i.pattern_id for i in ScamDatabaseDetector().detect(ctx)}


def test_known_malicious_address(make_context):
    issues = ScamDatabaseDetector().detect(make_context(f"{HONEYPOT}::token::buy"))
    address = next(i for i in issues if i.pattern_id == "scam_db:address:example_honeypot")
    assert address.severity == Severity.CRITICAL
    assert address.confidence == 0.95


def test_network_scoped_address(make_context):
    assert "scam_db:address:thala_exploiter" in _ids(make_context(f"{THALA}::farm::run"))
    assert "scam_db:address:thala_exploiter" not in _ids(make_context(f"{THALA}::farm::run", network="testnet"))


def test_legitimate_framework_entry_suppresses_broader_matches():
    assert match_malicious_signature("0x1::aptos_coin::claim_coin_transfer") is None
    assert match_malicious_signature("0xabc::aptos_coin::claim_coin_transfer").name == "Fake Airdrop"


def test_dex_phishing_outranks_fake_airdrop():
    assert match_malicious_signature("0xabc::pancakeswap::claim_reward").name == "DEX Phishing"


def test_fake_airdrop_issue(make_context):
    assert "scam_db:signature:fake_airdrop" in _ids(make_context("0xabc::promo::claim_free_token"))


def test_exploit_pattern_requires_every_class(make_context, make_simulation):
    assert match_exploit_pattern(make_context("0xabc::oracle::update_price")) is None

    ctx = make_context(
        "0xabc::oracle::update_price",
        simulation=make_simulation(events=["0xabc::oracle::PriceUpdated"]),
    )
    assert match_exploit_pattern(ctx).id == "exploit:price_manipulation"


def test_infinite_approval_exploit(make_context):
    ctx = make_context("0xabc::token::approve", arguments=["0x2", str(U64_MAX)])
    assert match_exploit_pattern(ctx).id == "exploit:infinite_approval"


def test_module_impersonation(make_context):
    assert "scam_db:impersonation" in _ids(make_context("0xabc::aptos_coin::mint_to"))
    assert "scam_db:impersonation" not in _ids(make_context("0x1::aptos_coin::mint_to"))


def test_uncatalogued_impersonation_never_fires(make_context):
    assert "scam_db:impersonation" not in _ids(make_context("0xabc::liquidswap::swap"))


def test_clean_call(make_context):
    assert ScamDatabaseDetector().detect(make_context("0xabc::profile::update_bio")) == []
