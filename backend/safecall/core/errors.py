"""Error Hierarchy: typed, categorized exceptions for SafeCall failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - ContractViolationError never leaves ExecutionContract.execute (always absorbed)
    - ContractConfigurationError is raised at construction time only, never per call
    - to_response() produces the REST envelope; no internal details in user-facing messages

Design Decisions:
    - Single hierarchy with SafeCallError base: FastAPI global handler catches all
      (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - Exceptions are for the shell and for construction; per-call failures are values
      in CallResult, not exceptions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CONTRACT = "contract"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    TIMEOUT = "timeout"


class ErrorKind(str, Enum):
    """How a call resolved to an error. Used for logging, never sent to callers."""
    INVALID_INPUT = "invalid_input"
    CONTRACT_VIOLATION = "contract_violation"
    UNHANDLED_EXCEPTION = "unhandled_exception"
    TIMEOUT = "timeout"
    DECLARED = "declared"


# Messages surfaced in CallResult.error. Fixed strings: callers and operators
# distinguish failure kinds by message alone.
INVALID_INPUT_MESSAGE = "Invalid input"
INVALID_RESPONSE_MESSAGE = "Execution returned an invalid response object"
INVALID_ERROR_MESSAGE = "Execution returned an invalid error object"
INVALID_ENVELOPE_MESSAGE = "Execution returned an invalid result envelope"
UNKNOWN_ERROR_MESSAGE = "Unknown error"


def timeout_message(seconds: float) -> str:
    return f"Execution timed out after {seconds:g}s"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    contract: str | None = None
    call_state: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class SafeCallError(Exception):
    """Base exception for all SafeCall errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "contract": self.context.contract,
                    "call_state": self.context.call_state,
                },
            }
        }


# ─── Contract Errors ────────────────────────────────────────────

class ContractConfigurationError(SafeCallError):
    """A contract could not be built from the supplied schemas/handler/factory."""
    def __init__(self, message: str, parameter: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONTRACT_CONFIGURATION", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.parameter = parameter


class ContractViolationError(SafeCallError):
    """Handler returned a value or error that fails its schema.

    Raised inside execute() and converted there; the message is the one
    the caller sees in CallResult.error.
    """
    def __init__(
        self, message: str, issues: list[dict] | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "CONTRACT_VIOLATION", ErrorCategory.CONTRACT,
            ErrorSeverity.ERROR, context, 500,
        )
        self.issues = issues or []


class ExecutionTimeoutError(SafeCallError):
    """Handler did not settle before the contract's deadline."""
    def __init__(self, timeout_seconds: float, context: ErrorContext | None = None):
        super().__init__(
            timeout_message(timeout_seconds), "EXECUTION_TIMEOUT",
            ErrorCategory.TIMEOUT, ErrorSeverity.WARNING, context, 504,
        )
        self.timeout_seconds = timeout_seconds


# ─── Infrastructure Errors ──────────────────────────────────────

class DatabaseError(SafeCallError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class RenderAPIError(SafeCallError):
    """Render REST API could not be reached or the transport failed."""
    def __init__(
        self, message: str, api_error_type: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "RENDER_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.api_error_type = api_error_type
