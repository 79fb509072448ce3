"""Tests for the signature and ABI matcher."""

from txguard.detectors.signature import SignatureDetector, check_abi, match_signature
from txguard.knowledge import THREAT_SIGNATURES
from txguard.knowledge.common import CountRange
from txguard.knowledge.signatures import U64_MAX, AbiCheck
from txguard.models import AbiInfo, RiskCategory, Severity


def _signature(sig_id):
    return next(s for s in THREAT_SIGNATURES if s.id == sig_id)


def _by_id(issues):
    return {issue.pattern_id: issue for issue in issues}


def test_unlimited_approval(make_context):
    ctx = make_context(
        "0xabc::token::approve",
        type_arguments=["0xabc::token::USDT"],
        arguments=["0x2", str(U64_MAX)],
    )
    issues = _by_id(SignatureDetector().detect(ctx))

    unlimited = issues["sig:unlimited_approval"]
    assert unlimited.severity == Severity.CRITICAL
    assert unlimited.confidence >= 0.9
    assert unlimited.evidence["spender"] == "0x2"
    assert unlimited.evidence["token"] == "0xabc::token::USDT"

    assert issues["threat:SIG-001"].severity == Severity.CRITICAL
    assert "sig:large_approval" not in issues


def test_hex_unlimited_amount(make_context):
    ctx = make_context("0xabc::token::approve", arguments=["0x2", "0x" + "f" * 32])
    issues = _by_id(SignatureDetector().detect(ctx))
    assert "sig:unlimited_approval" in issues
    assert issues["sig:unlimited_approval"].evidence["spender"] == "0x2"


def test_large_but_bounded_approval(make_context):
    ctx = make_context("0xabc::token::approve", arguments=["0x2", str(10 ** 18)])
    issues = _by_id(SignatureDetector().detect(ctx))
    assert "sig:unlimited_approval" not in issues
    assert issues["sig:large_approval"].severity == Severity.HIGH
    assert issues["sig:large_approval"].category == RiskCategory.PERMISSION


def test_small_approval_still_matches_approval_signature(make_context):
    ctx = make_context("0xabc::token::approve", arguments=["0x2", "1000"])
    issues = _by_id(SignatureDetector().detect(ctx))
    assert "sig:unlimited_approval" not in issues
    assert "sig:large_approval" not in issues
    # SIG-001 matches on the function name alone
    assert issues["threat:SIG-001"].severity == Severity.CRITICAL
    assert issues["sig:permission_grant"].severity == Severity.MEDIUM


def test_non_ascii_digit_argument_is_not_an_amount(make_context):
    ctx = make_context("0xabc::token::approve", arguments=["0x2", "1000", "²"])
    issues = _by_id(SignatureDetector().detect(ctx))
    assert "threat:SIG-001" in issues
    assert "sig:permission_grant" in issues
    assert "sig:large_approval" not in issues


def test_large_amount_found_beside_junk_arguments(make_context):
    ctx = make_context("0xabc::token::approve", arguments=["0x2", "٣٣", str(10 ** 18)])
    issue = _by_id(SignatureDetector().detect(ctx))["sig:large_approval"]
    assert issue.evidence["amount"] == str(10 ** 18)


def test_copy_ability_fires_without_name_match(make_context):
    ctx = make_context("0xabc::vault::deposit", abi={"abilities": ["copy", "drop"]})
    assert "threat:SIG-101" in _by_id(SignatureDetector().detect(ctx))

    ctx = make_context("0xabc::vault::deposit", abi={"abilities": ["drop"]})
    assert "threat:SIG-101" not in _by_id(SignatureDetector().detect(ctx))


def test_param_count_qualifies_name_match(make_context):
    sig = _signature("SIG-130")

    few = make_context("0xabc::pool::swap", abi={"paramCount": 2})
    assert match_signature(sig, few)

    many = make_context("0xabc::pool::swap", abi={"paramCount": 5})
    assert match_signature(sig, many) == []


def test_qualifier_skipped_without_abi(make_context):
    assert match_signature(_signature("SIG-130"), make_context("0xabc::pool::swap"))


def test_qualifier_alone_never_fires(make_context):
    ctx = make_context("0xabc::vault::deposit", abi={"paramCount": 1})
    assert match_signature(_signature("SIG-130"), ctx) == []


def test_check_abi_requires_every_criterion():
    check = AbiCheck(has_ability=("copy",), param_count=CountRange(max=2))
    held, reasons = check_abi(check, AbiInfo(abilities=("copy",), param_count=1))
    assert held
    assert len(reasons) == 2

    held, reasons = check_abi(check, AbiInfo(abilities=("copy",), param_count=4))
    assert not held
    assert reasons == []


def test_unknown_mut_ref_does_not_trigger():
    check = AbiCheck(has_public_mut_ref=True)
    assert check_abi(check, AbiInfo())[0] is False
    assert check_abi(check, AbiInfo(has_public_mut_ref=True))[0] is True


def test_ownership_change(make_context):
    ctx = make_context("0xabc::admin::transfer_ownership", arguments=["0x5"])
    issue = _by_id(SignatureDetector().detect(ctx))["sig:ownership_change"]
    assert issue.severity == Severity.CRITICAL
    assert issue.category == RiskCategory.RUG_PULL
    assert issue.evidence["new_owner"] == "0x5"


def test_set_approval_for_all_is_critical_permission(make_context):
    ctx = make_context("0xabc::nft::set_approval_for_all", arguments=["0x2", True])
    issue = _by_id(SignatureDetector().detect(ctx))["sig:permission_grant"]
    assert issue.severity == Severity.CRITICAL


def test_plain_call_is_quiet(make_context):
    ctx = make_context("0xabc::profile::update_bio", arguments=["hello"])
    assert SignatureDetector().detect(ctx) == []
