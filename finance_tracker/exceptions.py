"""
Typed Exception Hierarchy for the Finance Tracker

Every failure the domain core can produce has its own exception class
and a stable machine-readable ``code``. Callers catch by type, never by
message text.

    FinanceTrackerError
    |
    +-- InvalidArgumentError          (caller-fixable input)
    |   +-- InvalidAmountError
    |   +-- InvalidCurrencyError
    |   +-- InvalidDateRangeError
    |   +-- OutOfRangeError
    |   +-- IndexOutOfRangeError
    |
    +-- IllegalTransitionError        (state machine violation)
    +-- IllegalOperationError         (operation forbidden in current state)
    |   +-- EmptyInvoiceError
    |
    +-- CurrencyMismatchError         (programming error)
    |
    +-- DomainRuleError               (user-facing, correctable)
    |   +-- OverlappingBudgetError
    |   +-- DuplicateNameError
    |   +-- ReservedNameError
    |   +-- SystemCategoryProtectedError
    |   +-- CategoryInUseError
    |
    +-- AccessError
        +-- NotFoundError
        +-- ForbiddenError

DESIGN DECISION: None of these subclass ValueError. Pydantic wraps
ValueError raised inside validators into a ValidationError, and we want
our typed errors to reach the caller unchanged.
"""

from typing import Any, Optional


class FinanceTrackerError(Exception):
    """Base exception for all domain errors."""

    code: str = "FINANCE_TRACKER_ERROR"

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


# =============================================================================
# INVALID ARGUMENTS
# =============================================================================

class InvalidArgumentError(FinanceTrackerError):
    """Malformed input to a constructor or method."""

    code = "INVALID_ARGUMENT"

    def __init__(self, message: str, field: Optional[str] = None, **details: Any):
        self.field = field
        super().__init__(message, field=field, **details)


class InvalidAmountError(InvalidArgumentError):
    code = "INVALID_AMOUNT"


class InvalidCurrencyError(InvalidArgumentError):
    code = "INVALID_CURRENCY"


class InvalidDateRangeError(InvalidArgumentError):
    code = "INVALID_DATE_RANGE"


class OutOfRangeError(InvalidArgumentError):
    code = "OUT_OF_RANGE"


class IndexOutOfRangeError(InvalidArgumentError):
    code = "INDEX_OUT_OF_RANGE"

    def __init__(self, index: int, size: int):
        self.index = index
        self.size = size
        super().__init__(
            f"Index {index} is out of range for {size} item(s)",
            field="index",
            index=index,
            size=size,
        )


# =============================================================================
# STATE MACHINE VIOLATIONS
# =============================================================================

class IllegalTransitionError(FinanceTrackerError):
    """A lifecycle transition was requested from a state that does not allow it."""

    code = "ILLEGAL_TRANSITION"

    def __init__(self, entity: str, action: str, current_status: str):
        self.entity = entity
        self.action = action
        self.current_status = current_status
        super().__init__(
            f"Cannot {action} {entity} in {current_status} status",
            entity=entity,
            action=action,
            current_status=current_status,
        )


class IllegalOperationError(FinanceTrackerError):
    """The entity's current state forbids this operation."""

    code = "ILLEGAL_OPERATION"


class EmptyInvoiceError(IllegalOperationError):
    code = "EMPTY_INVOICE"


# =============================================================================
# CURRENCY
# =============================================================================

class CurrencyMismatchError(FinanceTrackerError):
    """Two monetary values of different currencies were combined."""

    code = "CURRENCY_MISMATCH"

    def __init__(self, operation: str, left: str, right: str):
        self.operation = operation
        self.left_currency = left
        self.right_currency = right
        super().__init__(
            f"Cannot {operation} different currencies: {left} and {right}",
            operation=operation,
            left=left,
            right=right,
        )


# =============================================================================
# DOMAIN RULES
# =============================================================================

class DomainRuleError(FinanceTrackerError):
    """A business rule was violated. Shown to the user."""

    code = "DOMAIN_RULE_VIOLATION"


class OverlappingBudgetError(DomainRuleError):
    code = "OVERLAPPING_BUDGET"


class DuplicateNameError(DomainRuleError):
    code = "DUPLICATE_NAME"


class ReservedNameError(DomainRuleError):
    code = "RESERVED_NAME"


class SystemCategoryProtectedError(DomainRuleError):
    code = "SYSTEM_CATEGORY_PROTECTED"


class CategoryInUseError(DomainRuleError):
    code = "CATEGORY_IN_USE"


# =============================================================================
# ACCESS
# =============================================================================

class AccessError(FinanceTrackerError):
    code = "ACCESS_ERROR"


class NotFoundError(AccessError):
    code = "NOT_FOUND"


class ForbiddenError(AccessError):
    code = "FORBIDDEN"
