"""Input validation utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence
from urllib.parse import urlparse

from engagimus.platforms import SUPPORTED_PLATFORMS
from engagimus.models import Client, GenerationRequest, ProviderConfig

logger = logging.getLogger(__name__)

# Constants
MIN_OPTIONS = 1
MAX_OPTIONS = 5
MAX_CONTENT_CHARS = 20_000
MIN_API_KEY_LENGTH = 20


@dataclass
class ValidationResult:
    """Result of a validation check."""

    valid: bool
    error_message: str = ""
    field: str = ""
    warnings: list[str] | None = None

    def __post_init__(self):
        if self.warnings is None:
            self.warnings = []


def validate_platform(platform: str) -> ValidationResult:
    """
    Validate a platform key.

    Args:
        platform: Platform key (e.g., "linkedin")

    Returns:
        ValidationResult
    """
    if not platform or not platform.strip():
        return ValidationResult(valid=False, error_message="Please select a platform", field="platform")

    if platform not in SUPPORTED_PLATFORMS:
        return ValidationResult(
            valid=False,
            error_message=f"Unknown platform '{platform}'. Expected one of: {', '.join(SUPPORTED_PLATFORMS)}.",
            field="platform",
        )

    return ValidationResult(valid=True)


def validate_content(content: str) -> ValidationResult:
    """Validate post content being responded to or analyzed."""
    if not content or not content.strip():
        return ValidationResult(valid=False, error_message="Please enter content to respond to", field="content")

    if len(content) > MAX_CONTENT_CHARS:
        return ValidationResult(
            valid=False,
            error_message=f"Content too long ({len(content):,} characters). Maximum allowed is {MAX_CONTENT_CHARS:,}.",
            field="content",
        )

    return ValidationResult(valid=True)


def validate_option_count(num_options: int) -> ValidationResult:
    if not MIN_OPTIONS <= num_options <= MAX_OPTIONS:
        return ValidationResult(
            valid=False,
            error_message=f"Number of options must be between {MIN_OPTIONS} and {MAX_OPTIONS}.",
            field="num_options",
        )
    return ValidationResult(valid=True)


def validate_generation_request(request: GenerationRequest) -> ValidationResult:
    """
    Validate a generation request before any prompt is built.

    Checks run in form order so the first problem reported is the first
    field the user would fix.

    Args:
        request: Generation request

    Returns:
        ValidationResult with the first failing check
    """
    if request.client is None:
        return ValidationResult(valid=False, error_message="Please select a client", field="client")

    for result in (
        validate_platform(request.platform),
        validate_content(request.content),
        validate_option_count(request.num_options),
    ):
        if not result.valid:
            return result

    warnings = []
    if not request.client.voice_prompt:
        warnings.append(f"{request.client.name} has no voice description; comments may sound generic.")

    return ValidationResult(valid=True, warnings=warnings)


def validate_analysis_input(content: str, clients: Sequence[Client]) -> ValidationResult:
    """Validate content analysis input."""
    if not content or not content.strip():
        return ValidationResult(valid=False, error_message="Please enter content to analyze", field="content")

    if not clients:
        return ValidationResult(valid=False, error_message="No active clients to match against", field="clients")

    return ValidationResult(valid=True)


def validate_api_key(key: str) -> ValidationResult:
    """
    Validate an API key's shape (not its actual validity).

    Args:
        key: API key string

    Returns:
        ValidationResult
    """
    if not key or not key.strip():
        return ValidationResult(valid=False, error_message="API key is required.", field="api_key")

    key = key.strip()

    if any(c.isspace() for c in key):
        return ValidationResult(valid=False, error_message="API key cannot contain spaces.", field="api_key")

    # Key formats vary by provider; only flag suspiciously short ones
    if len(key) < MIN_API_KEY_LENGTH:
        return ValidationResult(valid=True, warnings=["API key appears too short."])

    return ValidationResult(valid=True)


def validate_provider_config(provider: ProviderConfig) -> ValidationResult:
    """
    Validate a provider record before it is added to the registry.

    Args:
        provider: Provider record

    Returns:
        ValidationResult
    """
    if not provider.name or not provider.name.strip():
        return ValidationResult(valid=False, error_message="Provider name cannot be empty", field="name")

    parsed = urlparse(provider.base_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ValidationResult(
            valid=False,
            error_message=f"Invalid base URL: '{provider.base_url}'. Expected e.g. https://api.openai.com/v1",
            field="base_url",
        )

    if not provider.model or not provider.model.strip():
        return ValidationResult(valid=False, error_message="Model name cannot be empty", field="model")

    if provider.fallback_order < 1:
        return ValidationResult(valid=False, error_message="Fallback order must be positive", field="fallback_order")

    warnings = []
    if provider.has_key:
        key_result = validate_api_key(provider.api_key)
        if not key_result.valid:
            return key_result
        warnings.extend(key_result.warnings)
    elif provider.is_active:
        warnings.append("Provider is active but has no API key; it will be skipped.")

    return ValidationResult(valid=True, warnings=warnings)
