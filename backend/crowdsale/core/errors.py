"""Error Hierarchy — typed, categorized exceptions for every crowdsale rejection.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Each ledger rejection kind has its own class and code; callers never see a generic failure
    - Ledger errors are terminal for the triggering call; retry is the caller's decision
    - to_response() produces the REST envelope

Design Decisions:
    - Single hierarchy with CrowdsaleError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: rich observability without coupling to logging framework
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
    AUTHORIZATION = "authorization"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sale_id: str | None = None
    contributor: str | None = None
    operation: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class CrowdsaleError(Exception):
    """Base exception for all crowdsale errors."""

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
                    "sale_id": self.context.sale_id,
                    "contributor": self.context.contributor,
                    "operation": self.context.operation,
                },
            }
        }


# ─── Ledger Errors (400-level) ──────────────────────────────────

class InvalidAmountError(CrowdsaleError):
    """Contribution amount is zero, negative, or not an integer."""
    def __init__(self, amount: object, context: ErrorContext | None = None):
        super().__init__(
            f"Amount must be a positive integer, got {amount!r}",
            "INVALID_AMOUNT", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.amount = amount


class ConstructionInvalidError(CrowdsaleError):
    """Crowdsale construction parameters violate a precondition."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONSTRUCTION_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class NotOwnerError(CrowdsaleError):
    """Owner-only operation attempted by another identity."""
    def __init__(self, caller: str, context: ErrorContext | None = None):
        super().__init__(
            f"Caller '{caller}' is not the crowdsale owner",
            "NOT_OWNER", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.ERROR, context, 403,
        )
        self.caller = caller


class AlreadyFinalizedError(CrowdsaleError):
    """finalize called on a ledger that has already been finalized."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Crowdsale is already finalized",
            "ALREADY_FINALIZED", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


class RefundNotAllowedError(CrowdsaleError):
    """refund called before finalize opened the refund branch."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Refunds are not allowed for this crowdsale",
            "REFUND_NOT_ALLOWED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )


class NoFundsToRefundError(CrowdsaleError):
    """Caller has no recorded contribution left to refund."""
    def __init__(self, contributor: str, context: ErrorContext | None = None):
        super().__init__(
            f"No funds to refund for '{contributor}'",
            "NO_FUNDS_TO_REFUND", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.contributor = contributor


class TokenLockedError(CrowdsaleError):
    """Issued units moved before the issuer released them."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Issued units are locked until the crowdsale releases them",
            "TOKEN_LOCKED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )


class InsufficientUnitsError(CrowdsaleError):
    """Unit transfer exceeds the sender's balance."""
    def __init__(self, holder: str, requested: int, available: int,
                 context: ErrorContext | None = None):
        super().__init__(
            f"'{holder}' holds {available} units, cannot move {requested}",
            "INSUFFICIENT_UNITS", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )


class ResourceNotFoundError(CrowdsaleError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class TransferFailedError(CrowdsaleError):
    """Outbound payment to a contributor failed; the refund was rolled back."""
    def __init__(
        self, recipient: str, amount: int, reason: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Transfer of {amount} to '{recipient}' failed: {reason}",
            "TRANSFER_FAILED", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.ERROR, context, 502,
        )
        self.recipient = recipient
        self.amount = amount
        self.reason = reason


class DatabaseError(CrowdsaleError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
