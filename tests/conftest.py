"""Shared fixtures for the TxGuard tests."""

import pytest

from txguard.models import AnalysisContext, DetectedIssue, RiskCategory, Severity


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer credentials and overrides out of the tests."""
    for name in (
        "ANTHROPIC_API_KEY",
        "CHAINABUSE_API_KEY",
        "DETECTOR_TIMEOUT_SECONDS",
        "HTTP_TIMEOUT_SECONDS",
        "TXGUARD_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_context():
    def _make(function="0xabc::token::approve", **kwargs) -> AnalysisContext:
        return AnalysisContext.from_request(function=function, **kwargs)
    return _make


@pytest.fixture
def make_issue():
    def _make(pattern_id="test:issue", severity=Severity.HIGH, confidence=0.8, **kwargs) -> DetectedIssue:
        defaults = dict(
            category=RiskCategory.EXPLOIT,
            title="Test issue",
            description="Raised by a test",
            recommendation="None",
            source="test",
        )
        defaults.update(kwargs)
        return DetectedIssue(pattern_id=pattern_id, severity=severity, confidence=confidence, **defaults)
    return _make


def simulation(events=(), state_changes=(), success=True, gas_used=1000) -> dict:
    return {
        "success": success,
        "gasUsed": gas_used,
        "events": [{"type": t, "data": {}} for t in events],
        "stateChanges": list(state_changes),
    }


@pytest.fixture
def make_simulation():
    return simulation
