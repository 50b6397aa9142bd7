"""
Custom exceptions for the quizparse decoder.

This module defines all custom exceptions used throughout the package.
The decoding pipeline itself never lets these escape; they are raised
inside stages, by the strict entry points, and by configuration loading.
"""

from typing import Any, Optional


class QuizParseException(Exception):
    """Base exception for all quizparse-specific errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Decoding Exceptions
# =============================================================================


class DecodingError(QuizParseException):
    """Base exception for structured-output decoding errors."""

    pass


class StageError(DecodingError):
    """A single pipeline stage could not advance."""

    def __init__(self, stage: str, reason: str) -> None:
        """Initialize with the stage name and reason."""
        message = f"Stage '{stage}' did not advance: {reason}"
        super().__init__(message, {"stage": stage, "reason": reason})
        self.stage = stage
        self.reason = reason


class NoStructuredContentError(DecodingError):
    """No structured value could be decoded from the text."""

    def __init__(self, preview: str, length: int) -> None:
        """Initialize with a bounded preview of the input."""
        message = "No structured content could be decoded"
        super().__init__(message, {"preview": preview, "length": length})


class ShapeValidationError(DecodingError):
    """Decoded value does not match the shape the caller asked for."""

    def __init__(self, shape: str, errors: list[dict[str, Any]]) -> None:
        """Initialize with the shape name and validation errors."""
        message = f"Decoded value does not match shape '{shape}'"
        super().__init__(message, {"shape": shape, "errors": errors})


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(QuizParseException):
    """Configuration error."""

    pass


class InvalidConfigurationError(ConfigurationError):
    """Configuration value could not be interpreted."""

    def __init__(self, config_name: str, value: str, expected: str) -> None:
        """Initialize with the offending setting."""
        message = f"Invalid value '{value}' for '{config_name}' (expected {expected})"
        super().__init__(message, {"config_name": config_name, "value": value, "expected": expected})
