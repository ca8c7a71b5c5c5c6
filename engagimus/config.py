"""Application configuration with validation and defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_env(key: str, default: str = "") -> str:
    """Get environment variable with Streamlit secrets fallback."""
    # Try environment first
    value = os.environ.get(key, "")
    if value:
        return value

    # Try Streamlit secrets
    try:
        import streamlit as st
        if hasattr(st, "secrets") and key in st.secrets:
            return str(st.secrets[key])
    except Exception:
        pass

    return default


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    value = _get_env(key, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    value = _get_env(key, "")
    if value:
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer for %s: %s, using default %d", key, value, default)
    return default


def _get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    value = _get_env(key, "")
    if value:
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float for %s: %s, using default %f", key, value, default)
    return default


@dataclass
class DispatchConfig:
    """
    Configuration for provider dispatch.

    Attributes:
        timeout_seconds: Per-attempt timeout for a single provider call
        test_timeout_seconds: Timeout used when testing a provider connection
        default_temperature: Sampling temperature when the caller gives none
        default_max_tokens: Completion token limit when the caller gives none
        app_title: Sent to OpenRouter as X-Title
        app_url: Sent to OpenRouter as HTTP-Referer
    """
    timeout_seconds: float = 25.0
    test_timeout_seconds: float = 10.0
    default_temperature: float = 0.7
    default_max_tokens: int = 1024
    app_title: str = "Maximus Engagimus"
    app_url: str = "http://localhost:8501"


@dataclass
class GenerationConfig:
    """Comment generation configuration."""

    default_num_options: int = 3
    max_options: int = 5
    temperature: float = 0.8
    max_tokens: int = 1500


@dataclass
class AnalysisConfig:
    """Content analysis configuration."""

    temperature: float = 0.5
    max_tokens: int = 2000


@dataclass
class PathConfig:
    """File path configuration."""

    data_dir: Path = field(default_factory=lambda: Path("data"))
    providers_file: Path = field(default_factory=lambda: Path("data/providers.json"))
    generations_file: Path = field(default_factory=lambda: Path("data/generations.json"))
    clients_file: Path = field(default_factory=lambda: Path("data/clients.json"))
    logs_dir: Path = field(default_factory=lambda: Path("logs"))


@dataclass
class AppConfig:
    """
    Main application configuration.

    Combines dispatch, generation, analysis, and path configurations.
    """

    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    paths: PathConfig = field(default_factory=PathConfig)

    # Environment
    debug: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        self.debug = _get_env_bool("DEBUG", False)
        self.log_level = _get_env("LOG_LEVEL", "INFO").upper()

        if self.debug:
            self.log_level = "DEBUG"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        data_dir = Path(_get_env("DATA_DIR", "data"))
        return cls(
            dispatch=DispatchConfig(
                timeout_seconds=_get_env_float("LLM_TIMEOUT", 25.0),
                test_timeout_seconds=_get_env_float("LLM_TEST_TIMEOUT", 10.0),
                default_temperature=_get_env_float("LLM_TEMPERATURE", 0.7),
                default_max_tokens=_get_env_int("LLM_MAX_TOKENS", 1024),
                app_title=_get_env("APP_TITLE", "Maximus Engagimus"),
                app_url=_get_env("APP_URL", "http://localhost:8501"),
            ),
            generation=GenerationConfig(
                default_num_options=_get_env_int("NUM_OPTIONS", 3),
                temperature=_get_env_float("GENERATION_TEMPERATURE", 0.8),
                max_tokens=_get_env_int("GENERATION_MAX_TOKENS", 1500),
            ),
            analysis=AnalysisConfig(
                temperature=_get_env_float("ANALYSIS_TEMPERATURE", 0.5),
                max_tokens=_get_env_int("ANALYSIS_MAX_TOKENS", 2000),
            ),
            paths=PathConfig(
                data_dir=data_dir,
                providers_file=data_dir / "providers.json",
                generations_file=data_dir / "generations.json",
                clients_file=data_dir / "clients.json",
            ),
        )

    def validate(self) -> list[str]:
        """
        Validate configuration and return any errors.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if self.dispatch.timeout_seconds <= 0:
            errors.append(f"Invalid timeout: {self.dispatch.timeout_seconds} (must be positive)")

        for label, temperature in (
            ("dispatch", self.dispatch.default_temperature),
            ("generation", self.generation.temperature),
            ("analysis", self.analysis.temperature),
        ):
            if temperature < 0 or temperature > 2:
                errors.append(f"Invalid {label} temperature: {temperature} (must be 0-2)")

        if self.generation.max_tokens < 100:
            errors.append(f"Max tokens too low: {self.generation.max_tokens}")

        if self.generation.default_num_options < 1:
            errors.append("Must generate at least 1 option")

        if self.generation.default_num_options > self.generation.max_options:
            errors.append(f"Maximum {self.generation.max_options} options per generation")

        return errors


# Global config instance (lazy loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the application configuration (singleton)."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset configuration (for testing)."""
    global _config
    _config = None
