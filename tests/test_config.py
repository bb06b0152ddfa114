"""
Test suite for configuration loading.
"""

import pytest

from oracle_runner.config import (
    DEFAULT_GAS_BUDGET,
    ConfigurationError,
    RunnerConfig,
    load_config,
)
from oracle_runner.core.result import WaitLevel

from tests.conftest import DEMO_APP_PACKAGE_ID, ORACLE_PACKAGE_ID, TEST_MNEMONIC


@pytest.fixture
def credentials(monkeypatch):
    """Export a complete set of credentials."""
    monkeypatch.setenv("ADMIN_PHRASE", TEST_MNEMONIC)
    monkeypatch.setenv("FULLNODE", "https://fullnode.testnet.sui.io:443")
    monkeypatch.setenv("MYSTENLABS_ORACLE_PACKAGE_ID", ORACLE_PACKAGE_ID)
    monkeypatch.setenv("DEMO_APP_PACKAGE_ID", DEMO_APP_PACKAGE_ID)


# ============================================================================
# Test Loading
# ============================================================================

class TestLoadConfig:
    """Tests for reading configuration from the environment."""

    def test_load_from_environment(self, credentials):
        config = load_config(env_file=None)

        assert config.admin_phrase.get_secret_value() == TEST_MNEMONIC
        assert config.fullnode == "https://fullnode.testnet.sui.io:443"
        assert config.oracle_package_id == ORACLE_PACKAGE_ID
        assert config.demo_app_package_id == DEMO_APP_PACKAGE_ID

    def test_defaults(self, credentials):
        config = load_config(env_file=None)

        assert config.gas_budget == DEFAULT_GAS_BUDGET == 10_000_000
        assert config.wait_level == WaitLevel.WAIT_FOR_LOCAL_EXECUTION
        assert config.show_effects is True
        assert config.show_object_changes is True
        assert config.derivation_path == "m/44'/784'/0'/0'/0'"

    def test_phrase_not_exposed_in_repr(self, credentials):
        config = load_config(env_file=None)

        assert "abandon" not in repr(config)

    def test_prefixed_settings(self, credentials, monkeypatch):
        monkeypatch.setenv("ORACLE_GAS_BUDGET", "20000000")
        monkeypatch.setenv("ORACLE_WAIT_LEVEL", "FireAndForget")

        config = load_config(env_file=None)

        assert config.gas_budget == 20_000_000
        assert config.wait_level == WaitLevel.FIRE_AND_FORGET

    def test_overrides_take_precedence(self, credentials, monkeypatch):
        monkeypatch.setenv("ORACLE_GAS_BUDGET", "20000000")

        config = load_config(env_file=None, gas_budget=5_000, log_level=None)

        assert config.gas_budget == 5_000
        assert config.log_level == "INFO"

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            f"ADMIN_PHRASE={TEST_MNEMONIC}\n"
            "FULLNODE=http://127.0.0.1:9000\n"
            f"MYSTENLABS_ORACLE_PACKAGE_ID={ORACLE_PACKAGE_ID}\n"
            f"DEMO_APP_PACKAGE_ID={DEMO_APP_PACKAGE_ID}\n"
            "ORACLE_LOG_LEVEL=DEBUG\n"
        )

        config = load_config(env_file=str(env_file))

        assert config.fullnode == "http://127.0.0.1:9000"
        assert config.log_level == "DEBUG"

    def test_targets(self, test_config):
        assert test_config.authorize_target == f"{ORACLE_PACKAGE_ID}::mystenlabs_oracle::authorize"
        assert test_config.interact_target == f"{DEMO_APP_PACKAGE_ID}::interact::interact"


# ============================================================================
# Test Validation
# ============================================================================

class TestValidation:
    """Tests for rejecting missing or malformed configuration."""

    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(env_file=None)

        message = str(exc_info.value)
        assert "ADMIN_PHRASE" in message
        assert "MYSTENLABS_ORACLE_PACKAGE_ID" in message

    @pytest.mark.parametrize("name,value", [
        ("MYSTENLABS_ORACLE_PACKAGE_ID", "oracle"),
        ("DEMO_APP_PACKAGE_ID", "0x" + "1" * 65),
        ("FULLNODE", "fullnode.testnet.sui.io"),
        ("ADMIN_PHRASE", "not a real phrase"),
        ("ADMIN_PHRASE", "   "),
    ])
    def test_malformed_value(self, credentials, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigurationError):
            load_config(env_file=None)

    @pytest.mark.parametrize("path", ["m/44'/784'/0'/0/0", "44'/784'", "m"])
    def test_invalid_derivation_path(self, credentials, path):
        with pytest.raises(ConfigurationError):
            load_config(env_file=None, derivation_path=path)

    @pytest.mark.parametrize("budget", [0, -5])
    def test_invalid_gas_budget(self, credentials, budget):
        with pytest.raises(ConfigurationError):
            load_config(env_file=None, gas_budget=budget)

    def test_gas_budget_must_fit_u64(self, credentials, monkeypatch):
        monkeypatch.setenv("ORACLE_GAS_BUDGET", str(1 << 64))

        with pytest.raises(ConfigurationError):
            load_config(env_file=None)

        monkeypatch.setenv("ORACLE_GAS_BUDGET", str((1 << 64) - 1))
        assert load_config(env_file=None).gas_budget == (1 << 64) - 1

    def test_invalid_wait_level(self, credentials):
        with pytest.raises(ConfigurationError):
            load_config(env_file=None, wait_level="Eventually")

    def test_config_object_is_explicit(self):
        config = RunnerConfig(
            _env_file=None,
            admin_phrase=TEST_MNEMONIC,
            fullnode="http://localhost:9000",
            oracle_package_id="0x2",
            demo_app_package_id="0x3",
        )

        assert config.authorize_target == "0x2::mystenlabs_oracle::authorize"
