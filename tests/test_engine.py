"""Tests for the detector-fusion engine."""

import asyncio

import httpx
import pytest

from txguard.config import Config
from txguard.detectors import (
    AttackPatternDetector,
    Detector,
    ScamDatabaseDetector,
    SignatureDetector,
    TemporalDetector,
    TraceDetector,
)
from txguard.engine import Guardian, analyze_transaction
from txguard.exceptions import InputError
from txguard.knowledge.signatures import U64_MAX
from txguard.models import RiskCategory, Severity
from txguard.scoring import ScoringPolicy


class SpyDetector(Detector):
    name = "spy"

    def __init__(self, issues=()):
        self.issues = list(issues)
        self.calls = 0

    async def run(self, context):
        self.calls += 1
        return self.issues


class ExplodingDetector(Detector):
    name = "exploding"

    async def run(self, context):
        raise RuntimeError("detector bug")


class SlowDetector(Detector):
    name = "slow"
    timeout = 0.05

    async def run(self, context):
        await asyncio.sleep(5)
        return []


def _static_detectors():
    return [
        SignatureDetector(),
        AttackPatternDetector(),
        TemporalDetector(),
        TraceDetector(),
        ScamDatabaseDetector(),
    ]


def _offline_http(requests):
    def handler(request):
        requests.append(request)
        return httpx.Response(503)
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_whitelisted_call_skips_detectors(make_context):
    spy = SpyDetector()
    async with Guardian(detectors=[spy]) as guardian:
        verdict = await guardian.analyze(make_context("0x1::coin::transfer", arguments=["0x5", "100"]))

    assert spy.calls == 0
    assert verdict.skipped_ensemble
    assert verdict.risk_score == 0
    assert verdict.overall_severity == Severity.LOW
    assert [i.pattern_id for i in verdict.issues] == ["info:framework_function"]
    assert verdict.whitelist_reason


@pytest.mark.asyncio
async def test_never_whitelisted_framework_call_is_analyzed(make_context):
    spy = SpyDetector()
    async with Guardian(detectors=[spy]) as guardian:
        verdict = await guardian.analyze(make_context("0x1::code::publish_package_txn"))

    assert spy.calls == 1
    assert not verdict.skipped_ensemble


@pytest.mark.asyncio
async def test_junk_argument_does_not_knock_out_signature_detector(make_context):
    ctx = make_context("0xabc::token::approve", arguments=["0x2", "1000", "²"])
    async with Guardian(detectors=[SignatureDetector()]) as guardian:
        verdict = await guardian.analyze(ctx)

    assert verdict.detector_failures == ()
    assert "threat:SIG-001" in {i.pattern_id for i in verdict.issues}
    assert verdict.risk_score > 0


@pytest.mark.asyncio
async def test_failing_detectors_are_isolated(make_context, make_issue):
    good = SpyDetector([make_issue("test:found", Severity.MEDIUM, 1.0)])
    async with Guardian(detectors=[ExplodingDetector(), SlowDetector(), good]) as guardian:
        verdict = await guardian.analyze(make_context("0xabc::m::run"))

    assert verdict.detector_failures == ("exploding", "slow")
    assert [i.pattern_id for i in verdict.issues] == ["test:found"]
    assert verdict.overall_severity == Severity.MEDIUM
    assert verdict.risk_score == 15


@pytest.mark.asyncio
async def test_default_timeout_applies(make_context):
    class Sleepy(SlowDetector):
        name = "sleepy"
        timeout = None

    async with Guardian(Config(detector_timeout_seconds=0.05), detectors=[Sleepy()]) as guardian:
        verdict = await guardian.analyze(make_context("0xabc::m::run"))
    assert verdict.detector_failures == ("sleepy",)


@pytest.mark.asyncio
async def test_unlimited_approval_end_to_end():
    payload = {
        "function": "0xabc::token::approve",
        "typeArguments": ["0xabc::token::USDT"],
        "arguments": ["0x2", str(U64_MAX)],
    }
    async with Guardian(detectors=_static_detectors()) as guardian:
        verdict = await guardian.analyze_request(payload)

    ids = [i.pattern_id for i in verdict.issues]
    assert verdict.overall_severity == Severity.CRITICAL
    assert verdict.risk_score >= 36
    assert "sig:unlimited_approval" in ids
    assert len(ids) == len(set(ids))
    assert verdict.issues[0].severity == Severity.CRITICAL
    assert verdict.analysis_time >= 0


@pytest.mark.asyncio
async def test_invalid_request_fails_before_detectors():
    spy = SpyDetector()
    async with Guardian(detectors=[spy]) as guardian:
        with pytest.raises(InputError):
            await guardian.analyze_request({"function": "0x1::coin"})
        with pytest.raises(InputError):
            await guardian.analyze_request({"function": "0xabc::m::f", "arguments": "not-a-list"})
    assert spy.calls == 0


@pytest.mark.asyncio
async def test_custom_scoring_policy(make_context, make_issue):
    class Flat(ScoringPolicy):
        def score(self, issues):
            return 7 * len(issues)

    spy = SpyDetector([make_issue("a"), make_issue("b")])
    async with Guardian(detectors=[spy], policy=Flat()) as guardian:
        verdict = await guardian.analyze(make_context("0xabc::m::run"))
    assert verdict.risk_score == 14


@pytest.mark.asyncio
async def test_default_ensemble_records_unreachable_feeds(make_context):
    requests = []
    async with _offline_http(requests) as http:
        async with Guardian(Config(), http=http) as guardian:
            names = [d.name for d in guardian.detectors]
            verdict = await guardian.analyze(make_context("0xabc::profile::update_bio"))

    assert "ai_review" not in names
    assert "risk_pattern" in names
    assert verdict.detector_failures == ("threat_feed",)
    assert verdict.issues == ()
    assert requests


@pytest.mark.asyncio
async def test_divergent_simulations_end_to_end(make_simulation):
    requests = []
    payload = {
        "function": "0xabc::game::play",
        "simulation": make_simulation(success=True),
        "comparisonSimulation": make_simulation(success=False),
    }
    async with _offline_http(requests) as http:
        async with Guardian(Config(), http=http) as guardian:
            verdict = await guardian.analyze_request(payload)

    divergence = next(i for i in verdict.issues if i.pattern_id == "redpill:behavioral_divergence")
    assert divergence.category == RiskCategory.EXPLOIT
    assert verdict.overall_severity == Severity.CRITICAL
    assert "red_pill" not in verdict.detector_failures


def test_analyze_transaction_helper():
    verdict = analyze_transaction({"function": "0x1::aptos_account::transfer", "arguments": ["0x5", "1"]})
    assert verdict.skipped_ensemble

    with pytest.raises(InputError):
        analyze_transaction({"function": "transfer"})
