"""
Error classification for node failures.

The engine never retries. Failures are classified so the execution log and the
run result can carry a category and a suggestion next to the raw message.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from nodeflow.workflows.engine.errors import (
    BehaviorRuntimeError,
    HttpTransportError,
    MissingRequiredParameterError,
)


class ErrorCategory(str, Enum):
    """Classification of node errors."""
    MISSING_PARAMETER = "missing_parameter"
    CREDENTIAL_INVALID = "credential_invalid"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    VALIDATION_ERROR = "validation_error"
    CONVERSION_ERROR = "conversion_error"
    DATE_ERROR = "date_error"
    CONFIGURATION_ERROR = "configuration_error"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Structured error information for logging."""
    category: ErrorCategory
    message: str
    original_error: str
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "message": self.message,
            "original_error": self.original_error,
            "suggestion": self.suggestion,
        }


class ErrorClassifier:
    """Classifies errors raised by node behaviors."""

    # Checked in order; first match wins
    PATTERNS = {
        ErrorCategory.CREDENTIAL_INVALID: [
            "unauthorized", "authentication failed", "invalid credential", "401", "403",
        ],
        ErrorCategory.TIMEOUT: ["timeout", "timed out"],
        ErrorCategory.NETWORK_ERROR: [
            "connection refused", "connection reset", "network", "dns", "ssl",
        ],
        ErrorCategory.CONVERSION_ERROR: ["invalid json", "not a valid array", "expecting value"],
        ErrorCategory.DATE_ERROR: ["invalid date", "unable to parse date", "date field"],
        ErrorCategory.VALIDATION_ERROR: ["validation error", "input should be", "must be"],
        ErrorCategory.CONFIGURATION_ERROR: ["unknown action", "unknown operation", "output count"],
    }

    SUGGESTIONS = {
        ErrorCategory.MISSING_PARAMETER: "Fill in the required fields in the node settings.",
        ErrorCategory.CREDENTIAL_INVALID: "Check the credential configured for this node.",
        ErrorCategory.NETWORK_ERROR: "Check the URL and your network connection.",
        ErrorCategory.TIMEOUT: "The request took too long. Increase the timeout or try again later.",
        ErrorCategory.VALIDATION_ERROR: "Items must carry a JSON object. Check what the node emits.",
        ErrorCategory.CONVERSION_ERROR: "Check the JSON text, or enable 'Ignore Conversion Errors'.",
        ErrorCategory.DATE_ERROR: "Check that the date field exists and holds a valid date.",
        ErrorCategory.CONFIGURATION_ERROR: "Review the node configuration.",
        ErrorCategory.UNKNOWN: "An unexpected error occurred. Check the logs for details.",
    }

    @classmethod
    def classify(cls, error: BaseException) -> ErrorContext:
        """Classify an error and return structured context."""
        if isinstance(error, BehaviorRuntimeError):
            error = error.original

        original_error = str(error) or error.__class__.__name__

        if isinstance(error, MissingRequiredParameterError):
            category = ErrorCategory.MISSING_PARAMETER
        else:
            category = cls._match(original_error.lower())
            if category is ErrorCategory.UNKNOWN and isinstance(error, HttpTransportError):
                category = ErrorCategory.NETWORK_ERROR

        return ErrorContext(
            category=category,
            message=original_error,
            original_error=f"{error.__class__.__name__}: {original_error}",
            suggestion=cls.SUGGESTIONS.get(category),
        )

    @classmethod
    def _match(cls, error_str: str) -> ErrorCategory:
        for category, patterns in cls.PATTERNS.items():
            if any(pattern in error_str for pattern in patterns):
                return category
        return ErrorCategory.UNKNOWN
