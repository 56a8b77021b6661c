"""
Result types for explicit success/failure tracking in campaign listings.

A listing is allowed to succeed partially: campaigns that fail to load are
dropped from the data but recorded here as warnings, so callers that care
can see what was skipped.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorSeverity(Enum):
    """Severity levels for processing errors."""

    WARNING = "warning"  # Item skipped, listing continues


@dataclass
class ProcessingError:
    """
    Represents a single processing error with context.

    Attributes:
        source: Component that generated the error (e.g., "campaign_reader")
        message: Human-readable error description
        severity: How severe the error is
        context: Additional context like campaign_id or account
        exception: Original exception if available
    """

    source: str
    message: str
    severity: ErrorSeverity
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source": self.source,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


@dataclass
class Result(Generic[T]):
    """
    Result type that carries success/failure information.

    Attributes:
        success: Whether the operation succeeded
        data: The result data if successful
        errors: Errors encountered (a successful result may carry warnings)
    """

    success: bool
    data: Optional[T] = None
    errors: List[ProcessingError] = field(default_factory=list)

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        """Create a successful result with data."""
        return cls(success=True, data=data)

    def add_warning(
        self,
        source: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None,
    ) -> "Result[T]":
        """Add a warning to the result (convenience method)."""
        self.errors.append(
            ProcessingError(
                source=source,
                message=message,
                severity=ErrorSeverity.WARNING,
                context=context or {},
                exception=exception,
            )
        )
        return self

    def has_warnings(self) -> bool:
        """Check if result has any WARNING level errors."""
        return any(e.severity == ErrorSeverity.WARNING for e in self.errors)

    def get_error_messages(self) -> List[str]:
        """Get all error messages as strings."""
        return [e.message for e in self.errors]
