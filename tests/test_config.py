"""
Tests for the configuration system.
"""

import pytest

from humanlink.config import (
    ConfigError,
    ConfigManager,
    ConfigValidationError,
    get_config,
    get_config_manager,
)

from conftest import RELAYER


class TestDefaults:

    def test_singleton(self):
        assert get_config_manager() is ConfigManager()
        assert get_config() is get_config_manager().config

    def test_defaults(self):
        mgr = get_config_manager()
        assert mgr.get("registry.home_chain_id") == 1
        assert mgr.get("registry.trusted_relayers") == []
        assert mgr.get("observability.log_format") == "json"
        assert mgr.validate() == []

    def test_section_get_returns_mapping(self):
        section = get_config_manager().get("observability")
        assert section == {"log_level": "info", "log_format": "json"}

    def test_reset_discards_overrides(self):
        get_config_manager().set("registry.home_chain_id", 10)
        ConfigManager.reset()
        assert get_config_manager().get("registry.home_chain_id") == 1


class TestSet:

    def test_string_coerced_to_int(self):
        mgr = get_config_manager()
        mgr.set("registry.home_chain_id", "8453")
        assert mgr.get("registry.home_chain_id") == 8453

    def test_list_from_comma_string(self):
        mgr = get_config_manager()
        other = "0x" + "77" * 20
        mgr.set("registry.trusted_relayers", f"{RELAYER}, {other}")
        assert mgr.get("registry.trusted_relayers") == [RELAYER, other]

    @pytest.mark.parametrize("path,value", [
        ("registry.home_chain_id", 0),
        ("registry.home_chain_id", "ten"),
        ("registry.credential_contract", "0xnope"),
        ("registry.trusted_relayers", ["0xnope"]),
        ("observability.log_level", "verbose"),
    ])
    def test_invalid_values_rejected(self, path, value):
        with pytest.raises(ConfigValidationError):
            get_config_manager().set(path, value)

    def test_unknown_path(self):
        with pytest.raises(ConfigError):
            get_config_manager().set("registry.nope", 1)
        with pytest.raises(ConfigError):
            get_config_manager().set("registry", 1)


class TestFiles:

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "humanlink.yaml"
        path.write_text(
            "registry:\n"
            "  home_chain_id: 10\n"
            f"  trusted_relayers: ['{RELAYER}']\n"
            "observability:\n"
            "  log_format: text\n"
        )
        mgr = get_config_manager()
        mgr.load_from_file(path)

        assert mgr.get("registry.home_chain_id") == 10
        assert mgr.get("registry.trusted_relayers") == [RELAYER]
        assert mgr.get("observability.log_format") == "text"

    def test_unquoted_hex_addresses(self, tmp_path):
        """YAML reads bare 0x literals as integers; they are stored as addresses."""
        credential = "0x" + "11" * 20
        verifier = "0x" + "0a" * 20
        path = tmp_path / "humanlink.yaml"
        path.write_text(
            "registry:\n"
            f"  credential_contract: {credential}\n"
            f"  verifier_contract: {verifier.upper().replace('0X', '0x')}\n"
            f"  trusted_relayers: [{RELAYER}]\n"
        )
        mgr = get_config_manager()
        mgr.load_from_file(path)

        assert mgr.get("registry.credential_contract") == credential
        assert mgr.get("registry.verifier_contract") == verifier
        assert mgr.get("registry.trusted_relayers") == [RELAYER]
        mgr.config.require_contracts()

    def test_unquoted_zero_contract_still_unconfigured(self, tmp_path):
        path = tmp_path / "humanlink.yaml"
        path.write_text("registry:\n  credential_contract: 0x0\n  verifier_contract: 0x0\n")
        mgr = get_config_manager()
        mgr.load_from_file(path)

        with pytest.raises(ConfigError):
            mgr.config.require_contracts()

    def test_scalar_relayers_rejected(self, tmp_path):
        path = tmp_path / "humanlink.yaml"
        path.write_text(f"registry:\n  trusted_relayers: {RELAYER}\n")
        with pytest.raises(ConfigValidationError):
            get_config_manager().load_from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("registry: [unclosed\n")
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "unknown.yaml"
        path.write_text("registry:\n  colour: blue\n")
        with pytest.raises(ConfigError):
            get_config_manager().load_from_file(path)

    def test_empty_file_is_fine(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        get_config_manager().load_from_file(path)

    def test_load_defaults_from_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "humanlink.yaml").write_text("registry:\n  home_chain_id: 137\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))

        mgr = get_config_manager()
        mgr.load_defaults()

        assert mgr.get("registry.home_chain_id") == 137


class TestEnvironment:

    def test_env_overrides_file_value(self, monkeypatch):
        mgr = get_config_manager()
        mgr.set("registry.home_chain_id", 10)
        monkeypatch.setenv("HUMANLINK_HOME_CHAIN_ID", "42161")
        assert mgr.get("registry.home_chain_id") == 42161

    def test_env_list(self, monkeypatch):
        monkeypatch.setenv("HUMANLINK_TRUSTED_RELAYERS", RELAYER)
        assert get_config_manager().get("registry.trusted_relayers") == [RELAYER]

    def test_env_contract_normalized(self, monkeypatch):
        monkeypatch.setenv("HUMANLINK_VERIFIER_CONTRACT", "0X" + "AB" * 20)
        assert get_config_manager().get("registry.verifier_contract") == "0x" + "ab" * 20

    def test_invalid_env_contract_reported_by_validate(self, monkeypatch):
        monkeypatch.setenv("HUMANLINK_CREDENTIAL_CONTRACT", "0xnope")
        errors = get_config_manager().validate()
        assert errors and errors[0].startswith("registry.credential_contract")

    def test_invalid_env_reported_by_validate(self, monkeypatch):
        monkeypatch.setenv("HUMANLINK_LOG_LEVEL", "loud")
        errors = get_config_manager().validate()
        assert len(errors) == 1
        assert errors[0].startswith("observability.log_level")

    def test_uncoercible_env_reported_by_validate(self, monkeypatch):
        monkeypatch.setenv("HUMANLINK_HOME_CHAIN_ID", "mainnet")
        errors = get_config_manager().validate()
        assert errors and errors[0].startswith("registry.home_chain_id")


class TestExport:

    def test_schema(self):
        schema = get_config_manager().export_schema()
        home = schema["properties"]["registry"]["home_chain_id"]
        assert home["type"] == "int"
        assert home["default"] == 1
        assert home["env_var"] == "HUMANLINK_HOME_CHAIN_ID"

    def test_to_yaml(self):
        text = get_config().to_yaml()
        assert "home_chain_id: 1" in text

    def test_require_contracts(self):
        config = get_config()
        with pytest.raises(ConfigError):
            config.require_contracts()
        get_config_manager().set("registry.credential_contract", "0x" + "11" * 20)
        get_config_manager().set("registry.verifier_contract", "0x" + "22" * 20)
        config.require_contracts()
