"""Centralized error handling utilities."""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Callable, TypeVar

import streamlit as st

from engagimus.errors import (
    ErrorCategory,
    EngagimusError,
    FailureKind,
    OperationCancelled,
    ProviderError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorSeverity(Enum):
    """Error severity levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass
class AppError:
    """Structured application error."""

    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    user_message: str | None = None
    details: str | None = None
    recoverable: bool = True
    category: ErrorCategory | None = None

    @property
    def display_message(self) -> str:
        """Get message for user display."""
        return self.user_message or self.message


# User-friendly error messages
ERROR_MESSAGES = {
    "invalid_input": (
        "Some required information is missing or invalid. Please check the "
        "form and try again."
    ),
    "no_providers": (
        "No AI providers configured. Please add an API key in Settings."
    ),
    "all_providers_failed": (
        "All AI providers are unavailable. Please check your API keys and quota."
    ),
    "api_key_invalid": (
        "Invalid API key. Please check that the provider's API key is correct "
        "and has not expired."
    ),
    "api_rate_limit": (
        "Rate limit exceeded. Please wait a moment and try again. "
        "If this persists, check the provider's usage limits."
    ),
    "api_timeout": (
        "Request timed out. The AI service is taking longer than expected. "
        "Please try again in a few moments."
    ),
    "api_connection": (
        "Could not connect to the AI service. Please check your internet "
        "connection and try again."
    ),
    "parse_failed": (
        "The AI response could not be read. Please try again."
    ),
    "save_failed": (
        "Could not save the generated comments. Please try again."
    ),
    "cancelled": (
        "The request was cancelled."
    ),
    "unknown_error": (
        "An unexpected error occurred. Please refresh the page and try again. "
        "If the problem persists, contact support."
    ),
}

CATEGORY_SEVERITY = {
    ErrorCategory.INPUT: ErrorSeverity.WARNING,
    ErrorCategory.CONFIGURATION: ErrorSeverity.WARNING,
    ErrorCategory.UNAVAILABLE: ErrorSeverity.ERROR,
    ErrorCategory.TRANSIENT: ErrorSeverity.ERROR,
}

FAILURE_KIND_MESSAGES = {
    FailureKind.AUTH: "api_key_invalid",
    FailureKind.RATE_LIMIT: "api_rate_limit",
    FailureKind.TIMEOUT: "api_timeout",
    FailureKind.MALFORMED_RESPONSE: "parse_failed",
    FailureKind.OTHER: "api_connection",
}


def get_user_message(error_key: str) -> str:
    """Get user-friendly error message by key."""
    return ERROR_MESSAGES.get(error_key, ERROR_MESSAGES["unknown_error"])


def to_app_error(error: Exception) -> AppError:
    """
    Map an exception to a structured error with a user-facing message.

    Typed errors carry their own category and message; anything else is
    classified from its type and text.
    """
    error_msg = str(error)

    if isinstance(error, EngagimusError):
        return AppError(
            message=error_msg,
            severity=CATEGORY_SEVERITY[error.category],
            user_message=error.user_message,
            category=error.category,
        )

    if isinstance(error, ProviderError):
        return AppError(
            message=error_msg,
            severity=ErrorSeverity.WARNING if error.kind == FailureKind.RATE_LIMIT else ErrorSeverity.ERROR,
            user_message=get_user_message(FAILURE_KIND_MESSAGES[error.kind]),
            category=ErrorCategory.TRANSIENT,
        )

    if isinstance(error, OperationCancelled):
        return AppError(
            message=error_msg,
            severity=ErrorSeverity.INFO,
            user_message=ERROR_MESSAGES["cancelled"],
        )

    # Determine severity and user message based on error text
    severity = ErrorSeverity.ERROR
    user_message = ERROR_MESSAGES["unknown_error"]
    lowered = error_msg.lower()

    if "api_key" in lowered or "authentication" in lowered:
        user_message = ERROR_MESSAGES["api_key_invalid"]
    elif "rate limit" in lowered or "429" in error_msg:
        user_message = ERROR_MESSAGES["api_rate_limit"]
        severity = ErrorSeverity.WARNING
    elif "timeout" in lowered or "timed out" in lowered:
        user_message = ERROR_MESSAGES["api_timeout"]
    elif "connection" in lowered:
        user_message = ERROR_MESSAGES["api_connection"]
    elif isinstance(error, FileNotFoundError):
        user_message = "File not found. Please check the data directory."
    elif isinstance(error, PermissionError):
        user_message = "Permission denied. Please check file permissions."
    elif isinstance(error, ValueError):
        user_message = f"Invalid value: {error_msg}"
        severity = ErrorSeverity.WARNING

    return AppError(message=error_msg, severity=severity, user_message=user_message)


def handle_error(
    error: Exception,
    context: str = "",
    show_ui: bool = True,
    reraise: bool = False,
) -> AppError:
    """
    Handle an exception with logging and optional UI display.

    Args:
        error: The exception to handle
        context: Context string for logging
        show_ui: Whether to show error in Streamlit UI
        reraise: Whether to re-raise the exception

    Returns:
        AppError with structured error info
    """
    app_error = to_app_error(error)
    app_error.details = traceback.format_exc()

    error_type = type(error).__name__
    log_msg = f"{context}: {error_type}: {error}" if context else f"{error_type}: {error}"

    if app_error.severity == ErrorSeverity.CRITICAL:
        logger.critical(log_msg, exc_info=True)
    elif app_error.severity == ErrorSeverity.ERROR:
        logger.error(log_msg, exc_info=True)
    elif app_error.severity == ErrorSeverity.WARNING:
        logger.warning(log_msg)
    else:
        logger.info(log_msg)

    # Show in UI
    if show_ui:
        display_error(app_error)

    # Re-raise if requested
    if reraise:
        raise error

    return app_error


def display_error(error: AppError) -> None:
    """Display an error in the Streamlit UI."""
    if error.severity == ErrorSeverity.WARNING:
        st.warning(f"{error.display_message}")
    elif error.severity == ErrorSeverity.INFO:
        st.info(f"{error.display_message}")
    else:
        st.error(f"{error.display_message}")


def safe_execute(
    func: Callable[..., T],
    *args,
    default: T | None = None,
    context: str = "",
    show_ui: bool = True,
    **kwargs,
) -> T | None:
    """
    Execute a function with error handling.

    Args:
        func: Function to execute
        *args: Positional arguments
        default: Default value on error
        context: Context for error logging
        show_ui: Whether to show errors in UI
        **kwargs: Keyword arguments

    Returns:
        Function result or default on error
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        handle_error(e, context=context, show_ui=show_ui)
        return default
