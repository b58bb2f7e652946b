"""
Error taxonomy for Sovereign Attention.

Every failure raised by the rule engine, the attention tracker, the data
store or the configuration layer is a SovereignAttentionError subclass
carrying a numeric ErrorCode, an ErrorContext and zero or more recovery
suggestions. The CLI renders these without inspecting the concrete type.
"""

import time
import traceback
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(Enum):
    """Numeric error codes; the thousands digit is the category."""

    UNKNOWN_ERROR = 1000

    # Input rejected before any state changed
    VALIDATION_INVALID_INPUT = 2001
    VALIDATION_MISSING_FIELD = 2002
    VALIDATION_TYPE_MISMATCH = 2003
    VALIDATION_RANGE_ERROR = 2004
    VALIDATION_FORMAT_ERROR = 2005
    VALIDATION_INVALID_PATTERN = 2006
    VALIDATION_UNKNOWN_VARIANT = 2007

    # Durable store and export files
    STORAGE_UNAVAILABLE = 3001
    STORAGE_READ_FAILED = 3002
    STORAGE_WRITE_FAILED = 3003
    STORAGE_CORRUPT_DATA = 3004
    STORAGE_FILE_ERROR = 3005

    # Configuration files, environment and options
    CONFIG_INVALID_FORMAT = 4001
    CONFIG_INVALID_VALUE = 4002
    CONFIG_FILE_NOT_FOUND = 4003
    CONFIG_SCHEMA_VALIDATION = 4004

    @property
    def category(self) -> str:
        """Lower-case category name, e.g. 'storage'."""
        return self.name.split('_', 1)[0].lower()


@dataclass
class ErrorContext:
    """Where an error happened and what it was working on."""

    operation: str = ""
    content_id: Optional[str] = None
    rule_id: Optional[str] = None
    file_path: Optional[str] = None
    correlation_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    user_context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RecoverySuggestion:
    """A hint shown to the user next to an error."""

    action: str
    description: str
    command: Optional[str] = None
    priority: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Suggestions attached automatically for a given code
DEFAULT_SUGGESTIONS: Dict[ErrorCode, RecoverySuggestion] = {
    ErrorCode.VALIDATION_INVALID_PATTERN: RecoverySuggestion(
        action="Fix the regular expression",
        description="The pattern must compile with Python's re module. "
                    "Escape special characters such as '(' or '['."
    ),
    ErrorCode.VALIDATION_UNKNOWN_VARIANT: RecoverySuggestion(
        action="Use a supported rule type",
        description="Conditions: keyword, regex, ml. Actions: filter, modify, flag.",
        command="sap add-rule --help"
    ),
    ErrorCode.STORAGE_UNAVAILABLE: RecoverySuggestion(
        action="Check the database path",
        description="Verify the database directory exists and is writable.",
        command="sap --help"
    ),
    ErrorCode.STORAGE_CORRUPT_DATA: RecoverySuggestion(
        action="Inspect the stored record",
        description="A stored record could not be decoded. Remove or re-add "
                    "the affected rule, or restore from an export."
    ),
    ErrorCode.CONFIG_INVALID_VALUE: RecoverySuggestion(
        action="Check configuration values",
        description="Review the configuration file and SAP_* environment "
                    "variables for invalid values."
    ),
}


class SovereignAttentionError(Exception):
    """
    Base exception for all Sovereign Attention errors.

    Args:
        message: Human-readable description
        error_code: Category and reason
        context: Operation and identifiers involved (a fresh one if None)
        cause: Exception that triggered this one
        recoverable: Whether retrying or fixing input can succeed
        suggestions: Extra suggestions, merged with the code's defaults
    """

    default_code = ErrorCode.UNKNOWN_ERROR
    default_recoverable = True

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        recoverable: Optional[bool] = None,
        suggestions: Optional[List[RecoverySuggestion]] = None
    ):
        super().__init__(message)

        self.message = message
        self.error_code = error_code or self.default_code
        self.context = context or ErrorContext()
        self.cause = cause
        self.recoverable = self.default_recoverable if recoverable is None else recoverable
        self.stack_trace = traceback.format_exc()

        self.suggestions: List[RecoverySuggestion] = []
        for suggestion in suggestions or []:
            self.add_suggestion(suggestion)
        if self.error_code in DEFAULT_SUGGESTIONS:
            self.add_suggestion(DEFAULT_SUGGESTIONS[self.error_code])

        if not self.context.correlation_id:
            self.context.correlation_id = uuid.uuid4().hex[:8]

    def _record(self, **details: Any) -> None:
        """Store non-empty details in the context's user_context."""
        for key, value in details.items():
            if value is not None:
                self.context.user_context[key] = value

    def add_suggestion(self, suggestion: RecoverySuggestion) -> None:
        """Add a suggestion, keeping the list ordered by priority."""
        self.suggestions.append(suggestion)
        self.suggestions.sort(key=lambda s: s.priority)

    def get_user_message(self) -> str:
        """Plain-text report: message, code, trace id and the top suggestions."""
        parts = [f"Error: {self.message}"]
        if self.error_code is not ErrorCode.UNKNOWN_ERROR:
            parts.append(f"Error Code: {self.error_code.value} ({self.error_code.category})")
        parts.append(f"Correlation ID: {self.context.correlation_id}")

        hints = self.suggestions[:3]
        if hints:
            parts.append("")
            parts.append("Suggested solutions:")
        for number, hint in enumerate(hints, 1):
            parts.append(f"  {number}. {hint.action}: {hint.description}")
            if hint.command:
                parts.append(f"     Run: {hint.command}")
        return "\n".join(parts)

    def get_debug_info(self) -> Dict[str, Any]:
        """Everything known about the error as a JSON-compatible dictionary."""
        cause = None
        if self.cause is not None:
            cause = {'type': type(self.cause).__name__, 'message': str(self.cause)}
        return {
            'error_type': type(self).__name__,
            'message': self.message,
            'error_code': self.error_code.value,
            'category': self.error_code.category,
            'recoverable': self.recoverable,
            'context': self.context.to_dict(),
            'cause': cause,
            'suggestions': [s.to_dict() for s in self.suggestions],
            'stack_trace': self.stack_trace,
        }


class ValidationError(SovereignAttentionError):
    """Malformed input, rejected before any state is mutated."""

    default_code = ErrorCode.VALIDATION_INVALID_INPUT
    default_recoverable = False

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None,
                 field_name: Optional[str] = None, field_value: Optional[Any] = None, **kwargs):
        super().__init__(message, error_code=error_code, **kwargs)
        if field_name:
            self.context.user_context.update(field_name=field_name, field_value=field_value)


class StorageError(SovereignAttentionError):
    """Durable store failure, unreadable export file or corrupt stored data."""

    default_code = ErrorCode.STORAGE_WRITE_FAILED

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None,
                 db_path: Optional[str] = None, **kwargs):
        super().__init__(message, error_code=error_code, **kwargs)
        self._record(db_path=db_path)


class ConfigurationError(SovereignAttentionError):
    """Unreadable or invalid configuration."""

    default_code = ErrorCode.CONFIG_INVALID_FORMAT

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None,
                 config_key: Optional[str] = None, config_value: Optional[Any] = None, **kwargs):
        super().__init__(message, error_code=error_code, **kwargs)
        if config_key:
            self.context.user_context.update(config_key=config_key, config_value=config_value)
