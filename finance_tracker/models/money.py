"""
Monetary Value Types

Money is an immutable (amount, currency) pair with currency-safe arithmetic.

DESIGN DECISION: Money can never be negative. A deficit (e.g. the remaining
amount of an overspent budget) is not money the user holds, so ``subtract``
returns a SignedAmount instead. SignedAmount may go below zero and converts
back to Money only when it is not negative. Construction and arithmetic follow
the same rule; there is no back door that builds a negative Money.

Amounts are Decimal, rounded to 2 places with ROUND_HALF_UP (half away from
zero). Floats are converted through ``str`` so 0.1 stays 0.1.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from pydantic import BaseModel, ConfigDict, field_validator

from finance_tracker.exceptions import (
    CurrencyMismatchError,
    InvalidAmountError,
    InvalidArgumentError,
    InvalidCurrencyError,
)
from finance_tracker.validation.guards import to_decimal

CENTS = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def round_amount(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _clean_currency(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidCurrencyError("Currency cannot be empty", field="currency")
    code = value.strip().upper()
    if len(code) != 3 or not code.isalpha() or not code.isascii():
        raise InvalidCurrencyError(
            f"Currency must be a 3-letter ISO code, got {value!r}",
            field="currency",
        )
    return code


def _require_same_currency(operation: str, left: str, right: str) -> None:
    if left != right:
        raise CurrencyMismatchError(operation, left, right)


class Money(BaseModel):
    """
    A non-negative amount of one currency.

    Usage:
        price = Money(100, "usd")          # 100.00 USD
        total = price.multiply(2)          # 200.00 USD
        change = total.subtract(price)     # SignedAmount(100.00 USD)
    """
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    currency: str

    def __init__(self, amount: Number = Decimal("0"), currency: str = "", **data):
        super().__init__(amount=amount, currency=currency, **data)

    @field_validator('amount', mode='before')
    @classmethod
    def validate_amount(cls, v: Number) -> Decimal:
        try:
            number = to_decimal(v, "amount")
        except InvalidArgumentError as e:
            raise InvalidAmountError(e.message, field="amount") from e
        if number < 0:
            raise InvalidAmountError("Amount cannot be negative", field="amount", value=str(number))
        return round_amount(number)

    @field_validator('currency', mode='before')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _clean_currency(v)

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def of(cls, amount: Number, currency: str) -> "Money":
        return cls(amount, currency)

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(Decimal("0"), currency)

    @classmethod
    def total(cls, values: Iterable["Money"], currency: str) -> "Money":
        """Sum ``values``; an empty iterable gives zero in ``currency``."""
        result = cls.zero(currency)
        for value in values:
            result = result.add(value)
        return result

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def add(self, other: "Money") -> "Money":
        _require_same_currency("add", self.currency, other.currency)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "SignedAmount":
        _require_same_currency("subtract", self.currency, other.currency)
        return SignedAmount(self.amount - other.amount, self.currency)

    def multiply(self, factor: Number) -> "Money":
        """Scale by a quantity or rate and re-round."""
        number = to_decimal(factor, "factor")
        if number < 0:
            raise InvalidArgumentError("Factor cannot be negative", field="factor")
        return Money(self.amount * number, self.currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    # -------------------------------------------------------------------------
    # Ordering (same currency only)
    # -------------------------------------------------------------------------

    def _checked(self, other: "Money", operation: str) -> Decimal:
        if not isinstance(other, Money):
            return NotImplemented
        _require_same_currency(operation, self.currency, other.currency)
        return other.amount

    def __lt__(self, other: "Money") -> bool:
        other_amount = self._checked(other, "compare")
        if other_amount is NotImplemented:
            return NotImplemented
        return self.amount < other_amount

    def __le__(self, other: "Money") -> bool:
        other_amount = self._checked(other, "compare")
        if other_amount is NotImplemented:
            return NotImplemented
        return self.amount <= other_amount

    def __gt__(self, other: "Money") -> bool:
        other_amount = self._checked(other, "compare")
        if other_amount is NotImplemented:
            return NotImplemented
        return self.amount > other_amount

    def __ge__(self, other: "Money") -> bool:
        other_amount = self._checked(other, "compare")
        if other_amount is NotImplemented:
            return NotImplemented
        return self.amount >= other_amount

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


class SignedAmount(BaseModel):
    """
    A currency amount that may be negative.

    Produced by Money.subtract and used for remaining/deficit figures.
    """
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    currency: str

    def __init__(self, amount: Number = Decimal("0"), currency: str = "", **data):
        super().__init__(amount=amount, currency=currency, **data)

    @field_validator('amount', mode='before')
    @classmethod
    def validate_amount(cls, v: Number) -> Decimal:
        return round_amount(to_decimal(v, "amount"))

    @field_validator('currency', mode='before')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _clean_currency(v)

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def to_money(self) -> Money:
        """Convert back to Money; fails for a deficit."""
        if self.is_negative:
            raise InvalidAmountError(
                "Cannot convert a negative amount to Money",
                field="amount",
                value=str(self.amount),
            )
        return Money(self.amount, self.currency)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"
