"""Custom exception hierarchy for the NIEM transform orchestrator."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class NiemTransformError(Exception):
    """Base exception for all transform errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Initialize error with message and optional details.

        Args:
            message: Human-readable error message
            details: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# Client Errors

class BadRequestError(NiemTransformError):
    """Base class for errors caused by the caller's input.

    The message is meant to be shown to the caller as-is, so ``__str__``
    returns it without the details suffix.
    """

    def __str__(self) -> str:
        return self.message


class InputRejectedError(BadRequestError):
    """Raised when a file extension is not valid for the declared source format."""

    def __init__(self, message: str, extension: Optional[str] = None, source_format: Optional[str] = None) -> None:
        details = {}
        if extension is not None:
            details["extension"] = extension
        if source_format is not None:
            details["source_format"] = source_format
        super().__init__(message, details)


class UnsupportedVersionError(BadRequestError):
    """Raised when a CMF file does not declare the supported CMF version."""

    def __init__(self, version: str) -> None:
        super().__init__(f"Only CMF version {version} is supported.", {"expected_version": version})


class ParseFailureError(BadRequestError):
    """Raised when the engine returns diagnostics instead of a model."""

    def __init__(self, messages: List[str]) -> None:
        super().__init__(", ".join(messages), {"messages": list(messages)})


# Internal Errors

class InternalFailureError(NiemTransformError):
    """Raised for engine exceptions and filesystem failures."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs: Any) -> None:
        details = {}
        if operation:
            details["operation"] = operation
        details.update(kwargs)
        super().__init__(message, details)


class EngineTimeoutError(InternalFailureError):
    """Raised when an engine call exceeds its wall-clock budget."""

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Engine call {operation} did not finish within {timeout_seconds} seconds",
            operation=operation,
            timeout_seconds=timeout_seconds,
        )


# Setup Errors

class EngineNotAvailableError(NiemTransformError):
    """Raised when the configured conversion engine is not registered."""

    def __init__(self, engine_name: str, available: Optional[List[str]] = None) -> None:
        message = f"Conversion engine '{engine_name}' is not registered"
        details: Dict[str, Any] = {"engine_name": engine_name}
        if available:
            details["available"] = available
        super().__init__(message, details)


class TransformConfigurationError(NiemTransformError):
    """Raised when transform settings are invalid."""

    def __init__(self, message: str, config_path: Optional[str] = None, errors: Optional[list] = None) -> None:
        details = {}
        if config_path:
            details["config_path"] = config_path
        if errors:
            details["validation_errors"] = errors
        super().__init__(message, details)
