"""Tests for request parsing and the data model."""

import pytest

from txguard.exceptions import InputError
from txguard.models import (
    AnalysisContext,
    DetectedIssue,
    RiskCategory,
    RiskVerdict,
    Severity,
    normalize_address,
)


def test_from_request_splits_function_path():
    ctx = AnalysisContext.from_request(
        function="0xABC::token::approve",
        type_arguments=["0x1::aptos_coin::AptosCoin"],
        arguments=["0x2", "100"],
    )
    assert ctx.module_address == "0xabc"
    assert ctx.module_name == "token"
    assert ctx.function_name == "approve"
    assert ctx.module_id == "0xabc::token"
    assert ctx.arguments == ("0x2", "100")
    assert ctx.events == ()


@pytest.mark.parametrize("function", [
    "transfer",
    "0x1::coin",
    "coin::transfer::x",
    "0xZZ::coin::transfer",
    "0x1::coin::transfer::extra",
    "0x1::9coin::transfer",
])
def test_malformed_function_path_is_rejected(function):
    with pytest.raises(InputError):
        AnalysisContext.from_request(function=function)


def test_generic_suffix_is_accepted():
    ctx = AnalysisContext.from_request(function="0x1::coin::transfer<0x1::aptos_coin::AptosCoin>")
    assert ctx.function_name == "transfer"
    assert ctx.function_path.endswith("<0x1::aptos_coin::AptosCoin>")


def test_arguments_must_be_a_list():
    with pytest.raises(InputError):
        AnalysisContext.from_request(function="0x1::coin::transfer", arguments="0x1,100")


def test_unknown_network_is_rejected():
    with pytest.raises(InputError):
        AnalysisContext.from_request(function="0x1::coin::transfer", network="ropsten")


def test_simulation_accepts_camel_case(make_simulation):
    ctx = AnalysisContext.from_payload({
        "function": "0xabc::pool::swap",
        "typeArguments": [],
        "args": [],
        "simulation": make_simulation(
            events=["0x1::coin::WithdrawEvent"],
            state_changes=[{"resource": "0x1::coin::CoinStore<X>", "address": "0x5", "type": "modify"}],
            gas_used="4200",
        ),
    })
    assert ctx.simulation.gas_used == 4200
    assert ctx.events[0].type == "0x1::coin::WithdrawEvent"
    assert ctx.state_changes[0].change_type == "modify"


def test_malformed_event_is_an_input_error():
    with pytest.raises(InputError):
        AnalysisContext.from_payload({
            "function": "0xabc::pool::swap",
            "simulation": {"success": True, "events": [{"data": {}}]},
        })


def test_payload_without_function_is_rejected():
    with pytest.raises(InputError):
        AnalysisContext.from_payload({"arguments": []})


def test_normalize_address_strips_leading_zeros():
    assert normalize_address("0x0000000000000000000000000000000000000000000000000000000000000001") == "0x1"
    assert normalize_address("0X00AB") == "0xab"
    assert normalize_address("0x0") == "0x0"


def test_issue_confidence_must_be_a_probability():
    with pytest.raises(ValueError):
        DetectedIssue(
            pattern_id="x",
            category=RiskCategory.EXPLOIT,
            severity=Severity.LOW,
            title="",
            description="",
            recommendation="",
            confidence=1.5,
            source="test",
        )


def test_issue_coerces_string_severity(make_issue):
    issue = make_issue(severity="critical")
    assert issue.severity is Severity.CRITICAL


def test_severity_ordering():
    ranks = [s.rank for s in (Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL)]
    assert ranks == sorted(ranks)
    with pytest.raises(ValueError):
        Severity.parse("severe")


def test_verdict_to_dict_uses_plain_values(make_issue):
    verdict = RiskVerdict(
        overall_severity=Severity.HIGH,
        risk_score=20,
        issues=(make_issue(),),
        detector_failures=("market_context",),
    )
    data = verdict.to_dict()
    assert data["overall_severity"] == "HIGH"
    assert data["issues"][0]["severity"] == "HIGH"
    assert data["issues"][0]["category"] == "EXPLOIT"
    assert data["detector_failures"] == ("market_context",)
