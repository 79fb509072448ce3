"""Tests for environment-driven configuration."""

from txguard.config import Config


def test_defaults():
    config = Config()
    assert config.detector_timeout_seconds == 4.0
    assert not config.ai_enabled
    assert config.get_node_url("testnet") == "https://testnet.movementnetwork.xyz/v1"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DETECTOR_TIMEOUT_SECONDS", "1.5")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "key")
    monkeypatch.setenv("TXGUARD_LOG_LEVEL", "debug")

    config = Config()
    assert config.detector_timeout_seconds == 1.5
    assert config.ai_enabled
    assert config.log_level == "DEBUG"


def test_validate_reports_bad_values():
    config = Config(detector_timeout_seconds=0, cache_max_entries=0, log_level="LOUD")
    issues = config.validate()
    assert "DETECTOR_TIMEOUT_SECONDS must be positive" in issues
    assert "CACHE_MAX_ENTRIES must be at least 1" in issues
    assert any("LOUD" in issue for issue in issues)
