"""Typed errors for dispatch, generation, and analysis."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(Enum):
    """What the user should do about an error."""

    INPUT = "input"  # fix your input
    CONFIGURATION = "configuration"  # add/check provider configuration
    UNAVAILABLE = "unavailable"  # all providers unavailable, check keys/quota
    TRANSIENT = "transient"  # try again


class FailureKind(Enum):
    """Classification of a single failed provider attempt."""

    TIMEOUT = "timeout"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    MALFORMED_RESPONSE = "malformed_response"
    OTHER = "other"


class DispatchErrorCode(Enum):
    NO_PROVIDERS = "NO_PROVIDERS"
    ALL_FAILED = "ALL_FAILED"


class ParseErrorCode(Enum):
    EMPTY_RESULT = "EMPTY_RESULT"


@dataclass(frozen=True)
class ProviderFailure:
    """One recorded failure in a dispatch chain."""
    provider: str
    kind: FailureKind
    message: str

    def __str__(self) -> str:
        return f"{self.provider}: {self.kind.value} ({self.message})"


class EngagimusError(Exception):
    """Base class for errors surfaced to callers."""

    category: ErrorCategory = ErrorCategory.TRANSIENT
    user_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str = "", user_message: str | None = None):
        super().__init__(message or self.user_message)
        if user_message:
            self.user_message = user_message


class ValidationError(EngagimusError):
    """Required input missing or invalid. Never reaches the network."""

    category = ErrorCategory.INPUT

    def __init__(self, message: str, field: str = ""):
        super().__init__(message, user_message=message)
        self.field = field


class DispatchError(EngagimusError):
    """No provider could produce a completion."""

    def __init__(
        self,
        code: DispatchErrorCode,
        failures: list[ProviderFailure] | None = None,
    ):
        self.code = code
        self.failures = list(failures or [])

        if code == DispatchErrorCode.NO_PROVIDERS:
            self.category = ErrorCategory.CONFIGURATION
            message = "No active AI providers configured"
            user_message = "No AI providers configured. Please add an API key in Settings."
        else:
            self.category = ErrorCategory.UNAVAILABLE
            details = "; ".join(f"{f.provider}: {f.kind.value}" for f in self.failures)
            message = f"All providers failed: {details}"
            user_message = (
                "All AI providers are unavailable. Please check your API keys and quota. "
                f"({details})"
            )

        super().__init__(message, user_message=user_message)


class ParseError(EngagimusError):
    """The completion succeeded but no comment options could be extracted."""

    category = ErrorCategory.TRANSIENT

    def __init__(self, code: ParseErrorCode = ParseErrorCode.EMPTY_RESULT, message: str = ""):
        self.code = code
        super().__init__(
            message or "Failed to parse comment options from AI response",
            user_message="The AI response could not be read. Please try again.",
        )


class PersistenceError(EngagimusError):
    """A storage write failed after a successful generation."""

    category = ErrorCategory.TRANSIENT
    user_message = "Could not save the generated comments. Please try again."


class ProviderError(Exception):
    """A single provider attempt failed. Internal to dispatch."""

    def __init__(self, message: str, kind: FailureKind, provider: str = ""):
        super().__init__(message)
        self.kind = kind
        self.provider = provider


class OperationCancelled(Exception):
    """The caller signalled cancellation of an in-flight operation."""
