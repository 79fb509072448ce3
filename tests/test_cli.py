"""Tests for the command line interface."""

import json

from typer.testing import CliRunner

from txguard.cli import app, resolve_log_level
from txguard.models import RiskVerdict, Severity

runner = CliRunner()


def test_whitelist_command():
    result = runner.invoke(app, ["whitelist", "0x1::coin::transfer"])
    assert result.exit_code == 0
    assert "Whitelisted" in result.stdout


def test_whitelist_command_never_whitelisted():
    result = runner.invoke(app, ["whitelist", "0x1::code::publish_package_txn"])
    assert result.exit_code == 0
    assert "Not whitelisted" in result.stdout


def test_whitelist_command_rejects_malformed_path():
    result = runner.invoke(app, ["whitelist", "coin::transfer"])
    assert result.exit_code == 2


def test_check_whitelisted_request_as_json(tmp_path):
    request = tmp_path / "tx.json"
    request.write_text(json.dumps({"function": "0x1::coin::transfer", "arguments": ["0x5", "10"]}))

    result = runner.invoke(app, ["check", str(request), "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["skipped_ensemble"] is True
    assert data["risk_score"] == 0


def test_check_unreadable_file(tmp_path):
    result = runner.invoke(app, ["check", str(tmp_path / "missing.json")])
    assert result.exit_code == 2


def test_check_invalid_request(tmp_path):
    request = tmp_path / "tx.json"
    request.write_text(json.dumps({"function": "not a path"}))
    result = runner.invoke(app, ["check", str(request)])
    assert result.exit_code == 2


def test_check_critical_verdict_exits_nonzero(tmp_path, monkeypatch):
    request = tmp_path / "tx.json"
    request.write_text(json.dumps({"function": "0xabc::m::run"}))
    verdict = RiskVerdict(overall_severity=Severity.CRITICAL, risk_score=90)
    monkeypatch.setattr("txguard.cli.analyze_transaction", lambda payload, config: verdict)

    result = runner.invoke(app, ["check", str(request)])
    assert result.exit_code == 1
    assert "CRITICAL" in result.stdout


def test_patterns_command():
    result = runner.invoke(app, ["patterns"])
    assert result.exit_code == 0
    assert "Threat signatures" in result.stdout
    assert "Risk patterns" in result.stdout


def test_config_command():
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    assert "AI review: disabled" in result.stdout


def test_unknown_log_level_falls_back_to_warning():
    assert resolve_log_level("FOO") == "WARNING"
    assert resolve_log_level("debug") == "DEBUG"


def test_check_survives_unknown_log_level(tmp_path, monkeypatch):
    monkeypatch.setenv("TXGUARD_LOG_LEVEL", "FOO")
    request = tmp_path / "tx.json"
    request.write_text(json.dumps({"function": "0x1::coin::transfer", "arguments": ["0x5", "10"]}))

    result = runner.invoke(app, ["check", str(request), "--json"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["skipped_ensemble"] is True
