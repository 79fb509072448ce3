"""Tests for the framework whitelist."""

import pytest

from txguard.knowledge import NEVER_WHITELIST, check_whitelist


def test_coin_transfer_is_whitelisted():
    result = check_whitelist("0x1", "coin", "transfer")
    assert result.is_whitelisted
    assert "coin::transfer" in result.reason


def test_padded_framework_address_is_normalized():
    padded = "0x" + "0" * 63 + "1"
    assert check_whitelist(padded, "aptos_account", "transfer").is_whitelisted


def test_any_function_in_safe_core_module():
    assert check_whitelist("0x1", "vector", "push_back").is_whitelisted


@pytest.mark.parametrize("qualified", sorted(NEVER_WHITELIST))
def test_never_whitelist_wins_at_framework_address(qualified):
    module, function = qualified.split("::")
    for address in ("0x1", "0x0001", "0x3"):
        result = check_whitelist(address, module, function)
        assert not result.is_whitelisted
        assert "never" in result.reason


def test_safe_names_at_other_address_are_not_whitelisted():
    assert not check_whitelist("0xabc", "coin", "transfer").is_whitelisted


def test_unknown_framework_module_is_not_whitelisted():
    assert not check_whitelist("0x1", "staking_contract", "unlock").is_whitelisted
