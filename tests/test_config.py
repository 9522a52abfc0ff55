"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from deskcrew.config import (
    Settings,
    _deep_merge,
    _expand_env_vars,
    _transform_config_to_settings,
    DEFAULTS_FILE,
    create_default_config,
    load_settings,
)
from deskcrew.config.settings import AgentConfig, ChatConfig, ModelConfig
from deskcrew.errors import InvalidConfigError


class TestExpandEnvVars:
    """Tests for environment variable expansion."""

    def test_expand_simple_var(self) -> None:
        """Test expanding a simple environment variable."""
        os.environ["DESKCREW_TEST_VAR"] = "test_value"
        result = _expand_env_vars("${DESKCREW_TEST_VAR}")
        assert result == "test_value"
        del os.environ["DESKCREW_TEST_VAR"]

    def test_expand_missing_var(self) -> None:
        """Test expanding a missing environment variable returns None."""
        result = _expand_env_vars("${DESKCREW_NONEXISTENT_VAR}")
        assert result is None

    def test_expand_in_nested_structures(self) -> None:
        """Test expanding variables inside dicts and lists."""
        os.environ["DESKCREW_NESTED"] = "nested_value"
        data = {"level1": {"level2": "${DESKCREW_NESTED}"}, "items": ["${DESKCREW_NESTED}", "x"]}
        result = _expand_env_vars(data)
        assert result["level1"]["level2"] == "nested_value"
        assert result["items"] == ["nested_value", "x"]
        del os.environ["DESKCREW_NESTED"]


class TestDeepMerge:
    """Tests for deep dictionary merging."""

    def test_nested_merge(self) -> None:
        """Test merging nested dictionaries."""
        base = {"chat": {"initial_agent": "Coach", "maximum_iterations": 12}}
        override = {"chat": {"maximum_iterations": 4}}
        result = _deep_merge(base, override)
        assert result == {"chat": {"initial_agent": "Coach", "maximum_iterations": 4}}

    def test_lists_are_replaced(self) -> None:
        """A user agent list replaces the default pool instead of extending it."""
        base = {"agents": [{"name": "Coach"}, {"name": "Expert"}]}
        override = {"agents": [{"name": "Solo"}]}
        result = _deep_merge(base, override)
        assert result["agents"] == [{"name": "Solo"}]


class TestTransformConfig:
    """Tests for mapping YAML sections onto Settings fields."""

    def test_api_keys_mapped(self) -> None:
        config = {
            "api_keys": {
                "azure_openai": "k",
                "azure_endpoint": "https://e",
                "openai": None,
            },
            "chat": {"maximum_iterations": 3},
        }
        result = _transform_config_to_settings(config)
        assert result["azure_openai_api_key"] == "k"
        assert result["azure_openai_endpoint"] == "https://e"
        assert "openai_api_key" not in result
        assert result["chat"] == {"maximum_iterations": 3}


class TestModelConfig:
    """Tests for ModelConfig validation."""

    def test_default_values(self) -> None:
        config = ModelConfig()
        assert config.model_id == "gpt-4o"
        assert config.max_tokens == 4096
        assert config.temperature == 0.7

    def test_empty_model_id_fails(self) -> None:
        with pytest.raises(ValueError):
            ModelConfig(model_id="   ")

    def test_temperature_range(self) -> None:
        ModelConfig(temperature=0.0)
        ModelConfig(temperature=2.0)
        with pytest.raises(ValueError):
            ModelConfig(temperature=2.1)


class TestAgentConfig:
    """Tests for AgentConfig validation."""

    def test_name_is_stripped(self) -> None:
        assert AgentConfig(name="  Coach ").name == "Coach"

    def test_empty_name_fails(self) -> None:
        with pytest.raises(ValueError):
            AgentConfig(name="")

    def test_name_with_whitespace_fails(self) -> None:
        with pytest.raises(ValueError):
            AgentConfig(name="Stock Manager")


class TestChatConfig:
    """Tests for ChatConfig defaults and validation."""

    def test_defaults_match_help_desk(self) -> None:
        chat = ChatConfig()
        assert chat.initial_agent == "Coach"
        assert chat.evaluated_agents == ["Coach"]
        assert chat.termination_token == "yes"
        assert chat.maximum_iterations == 12
        assert chat.history_depth == 1
        assert chat.selection_strategy == "prompt"

    def test_empty_token_fails(self) -> None:
        with pytest.raises(ValueError):
            ChatConfig(termination_token=" ")

    def test_zero_iterations_fails(self) -> None:
        with pytest.raises(ValueError):
            ChatConfig(maximum_iterations=0)

    def test_unknown_strategy_fails(self) -> None:
        with pytest.raises(ValueError):
            ChatConfig(selection_strategy="random")


class TestSettings:
    """Tests for Settings model."""

    def test_default_settings(self, clean_env: None) -> None:
        settings = Settings()
        assert settings.openai_api_key is None
        assert settings.get_enabled_agents() == ["Coach", "StockManager", "Expert"]
        assert settings.get_agent("Coach").tools == ["set_clipboard"]

    def test_api_key_from_env(self, clean_env: None) -> None:
        os.environ["OPENAI_API_KEY"] = "test-key"
        settings = Settings()
        assert settings.openai_api_key == "test-key"
        assert settings.has_api_key() is True
        assert settings.uses_azure is False

    def test_azure_requires_azure_key(self, clean_env: None) -> None:
        settings = Settings(
            azure_openai_endpoint="https://example.openai.azure.com",
            openai_api_key="plain-key",
        )
        assert settings.uses_azure is True
        assert settings.has_api_key() is False

    def test_empty_api_key_treated_as_none(self, clean_env: None) -> None:
        settings = Settings(openai_api_key="")
        assert settings.openai_api_key is None

    def test_duplicate_agent_names_fail(self, clean_env: None) -> None:
        with pytest.raises(ValueError, match="duplicate"):
            Settings(agents=[{"name": "Coach"}, {"name": "Coach"}])

    def test_initial_agent_must_be_enabled(self, clean_env: None) -> None:
        with pytest.raises(ValueError, match="initial_agent"):
            Settings(
                agents=[{"name": "Coach", "enabled": False}, {"name": "Expert"}],
                chat={"evaluated_agents": ["Expert"]},
            )

    def test_evaluated_agents_must_exist(self, clean_env: None) -> None:
        with pytest.raises(ValueError, match="evaluated_agents"):
            Settings(chat={"evaluated_agents": ["Nobody"]})

    def test_tagged_routes_must_exist(self, clean_env: None) -> None:
        with pytest.raises(ValueError, match="intent_routes"):
            Settings(
                agents=[{"name": "Coach"}, {"name": "Expert"}],
                chat={"selection_strategy": "tagged"},
            )

    def test_disabled_agents_are_skipped(self, clean_env: None) -> None:
        settings = Settings(
            agents=[{"name": "Coach"}, {"name": "Expert", "enabled": False}],
        )
        assert settings.get_enabled_agents() == ["Coach"]


class TestLoadSettings:
    """Tests for the load_settings function."""

    def test_load_from_yaml(self, temp_config_file: Path, clean_env: None) -> None:
        settings = load_settings(config_path=temp_config_file, force_reload=True)
        assert settings.azure_openai_api_key == "test-azure-key"
        assert settings.uses_azure is True
        assert settings.model.model_id == "gpt-4o-mini"
        assert settings.chat.maximum_iterations == 6
        assert settings.chat.termination_token == "done"

    def test_defaults_fill_missing_sections(
        self, temp_config_file: Path, clean_env: None
    ) -> None:
        settings = load_settings(config_path=temp_config_file, force_reload=True)
        assert settings.chat.initial_agent == "Coach"
        assert "Juri" in settings.get_agent("Coach").instructions
        assert settings.tools.clipboard is True

    def test_env_var_used_when_yaml_references_it(
        self, temp_dir: Path, clean_env: None
    ) -> None:
        os.environ["OPENAI_API_KEY"] = "env-key"
        empty = temp_dir / "empty.yaml"
        empty.write_text("")
        settings = load_settings(config_path=empty, force_reload=True)
        assert settings.openai_api_key == "env-key"

    def test_invalid_config_raises(self, temp_dir: Path, clean_env: None) -> None:
        bad = temp_dir / "bad.yaml"
        bad.write_text("chat:\n  maximum_iterations: 0\n")
        with pytest.raises(InvalidConfigError) as exc_info:
            load_settings(config_path=bad, force_reload=True)
        assert "maximum_iterations" in exc_info.value.details["field"]

    def test_caching(self, temp_config_file: Path, clean_env: None) -> None:
        settings1 = load_settings(config_path=temp_config_file, force_reload=True)
        settings2 = load_settings(config_path=temp_config_file)
        assert settings1 is settings2

    def test_force_reload(self, temp_config_file: Path, clean_env: None) -> None:
        settings1 = load_settings(config_path=temp_config_file, force_reload=True)
        settings2 = load_settings(config_path=temp_config_file, force_reload=True)
        assert settings1 is not settings2
        assert settings1.model.model_id == settings2.model.model_id

    def test_malformed_yaml_raises(self, temp_dir: Path, clean_env: None) -> None:
        bad = temp_dir / "broken.yaml"
        bad.write_text("chat: [unclosed\n")
        with pytest.raises(InvalidConfigError) as exc_info:
            load_settings(config_path=bad, force_reload=True)
        assert exc_info.value.details["field"] == str(bad)

    def test_non_mapping_yaml_raises(self, temp_dir: Path, clean_env: None) -> None:
        bad = temp_dir / "list.yaml"
        bad.write_text("- Coach\n- Expert\n")
        with pytest.raises(InvalidConfigError, match="expected a mapping"):
            load_settings(config_path=bad, force_reload=True)


class TestCreateDefaultConfig:
    """Tests for writing the starter config file."""

    def test_writes_defaults_once(self, temp_dir: Path) -> None:
        target = temp_dir / "nested" / "config.yaml"
        assert create_default_config(target) is True
        assert target.read_text(encoding="utf-8") == DEFAULTS_FILE.read_text(encoding="utf-8")

        target.write_text("chat: {}\n")
        assert create_default_config(target) is False
        assert target.read_text() == "chat: {}\n"
