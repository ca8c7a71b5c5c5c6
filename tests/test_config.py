"""Tests for application configuration."""

from pathlib import Path

import pytest

from engagimus.config import (
    AnalysisConfig,
    AppConfig,
    DispatchConfig,
    GenerationConfig,
    get_config,
    reset_config,
)


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    for key in (
        "LLM_TIMEOUT", "LLM_TEST_TIMEOUT", "NUM_OPTIONS", "GENERATION_TEMPERATURE",
        "ANALYSIS_MAX_TOKENS", "DATA_DIR", "DEBUG", "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


class TestDefaults:
    """Tests for configuration defaults."""

    def test_dispatch_defaults(self):
        config = DispatchConfig()
        assert config.timeout_seconds == 25.0
        assert config.test_timeout_seconds == 10.0

    def test_generation_defaults(self):
        config = GenerationConfig()
        assert config.temperature == 0.8
        assert config.max_tokens == 1500
        assert config.default_num_options == 3

    def test_analysis_defaults(self):
        config = AnalysisConfig()
        assert config.temperature == 0.5
        assert config.max_tokens == 2000


class TestFromEnv:
    """Tests for loading from environment variables."""

    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("LLM_TIMEOUT", "12.5")
        monkeypatch.setenv("NUM_OPTIONS", "5")
        monkeypatch.setenv("ANALYSIS_MAX_TOKENS", "1000")
        monkeypatch.setenv("DATA_DIR", "/tmp/engagimus")

        config = AppConfig.from_env()

        assert config.dispatch.timeout_seconds == 12.5
        assert config.generation.default_num_options == 5
        assert config.analysis.max_tokens == 1000
        assert config.paths.providers_file == Path("/tmp/engagimus/providers.json")

    def test_invalid_number_uses_default(self, monkeypatch):
        monkeypatch.setenv("LLM_TIMEOUT", "soon")
        assert AppConfig.from_env().dispatch.timeout_seconds == 25.0

    def test_debug_forces_debug_level(self, monkeypatch):
        monkeypatch.setenv("DEBUG", "true")
        assert AppConfig.from_env().log_level == "DEBUG"

    def test_get_config_is_cached(self):
        assert get_config() is get_config()


class TestValidate:
    """Tests for configuration validation."""

    def test_defaults_valid(self):
        assert AppConfig().validate() == []

    def test_bad_timeout(self):
        config = AppConfig(dispatch=DispatchConfig(timeout_seconds=0))
        assert any("timeout" in e for e in config.validate())

    def test_bad_temperature(self):
        config = AppConfig(generation=GenerationConfig(temperature=3.0))
        assert any("temperature" in e for e in config.validate())

    def test_too_many_options(self):
        config = AppConfig(generation=GenerationConfig(default_num_options=6))
        assert any("Maximum" in e for e in config.validate())
