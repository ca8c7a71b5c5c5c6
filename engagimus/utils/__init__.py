"""Utility modules."""

from .validators import (
    ValidationResult,
    validate_analysis_input,
    validate_api_key,
    validate_content,
    validate_generation_request,
    validate_platform,
    validate_provider_config,
)
from .logging_config import setup_logging, get_logger
from .error_handler import (
    AppError,
    ErrorSeverity,
    handle_error,
    display_error,
    safe_execute,
    get_user_message,
    to_app_error,
)

__all__ = [
    "ValidationResult",
    "validate_analysis_input",
    "validate_api_key",
    "validate_content",
    "validate_generation_request",
    "validate_platform",
    "validate_provider_config",
    "setup_logging",
    "get_logger",
    "AppError",
    "ErrorSeverity",
    "handle_error",
    "display_error",
    "safe_execute",
    "get_user_message",
    "to_app_error",
]
