import pytest

from defi_core.core import config
from defi_core.core.config import ConfigurationError, OracleConfig, PoolConfig, _get_int


def test_defaults_match_module_values():
    assert OracleConfig.MIN_SOURCES == config.ORACLE_MIN_SOURCES
    assert OracleConfig.INITIAL_REPUTATION == 100
    assert PoolConfig.FLASH_LOAN_MAX_BPS == config.FLASH_LOAN_MAX_BPS


def test_env_override(monkeypatch):
    monkeypatch.setenv("DEFI_TEST_VALUE", "42")
    assert _get_int("DEFI_TEST_VALUE", 7) == 42


def test_unset_env_uses_default(monkeypatch):
    monkeypatch.delenv("DEFI_TEST_VALUE", raising=False)
    assert _get_int("DEFI_TEST_VALUE", 7) == 7
    monkeypatch.setenv("DEFI_TEST_VALUE", "  ")
    assert _get_int("DEFI_TEST_VALUE", 7) == 7


def test_non_integer_env_rejected(monkeypatch):
    monkeypatch.setenv("DEFI_TEST_VALUE", "ten")
    with pytest.raises(ConfigurationError):
        _get_int("DEFI_TEST_VALUE", 7)


def test_out_of_range_env_rejected(monkeypatch):
    monkeypatch.setenv("DEFI_TEST_VALUE", "10001")
    with pytest.raises(ConfigurationError):
        _get_int("DEFI_TEST_VALUE", 30, maximum=10_000)
    monkeypatch.setenv("DEFI_TEST_VALUE", "0")
    with pytest.raises(ConfigurationError):
        _get_int("DEFI_TEST_VALUE", 3, minimum=1)
