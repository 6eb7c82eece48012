"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Self

from registrations.domain.errors import InvalidPriceError, InvalidQuantityError


@dataclass(frozen=True)
class ClassId:
    """Stable external key of a class, shared by every system of record."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("ClassId cannot be empty")

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=value.strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BookingRef:
    """External reference of a booking (the checkout's client reference)."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("BookingRef cannot be empty")

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=value.strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    @classmethod
    def parse(cls, raw: object) -> Self:
        """Parse a number or a display string such as ``"$1,200.00"``.

        Raises:
            InvalidPriceError: If the value is missing or not a number.
        """
        if isinstance(raw, bool) or raw is None:
            raise InvalidPriceError(raw)
        if isinstance(raw, str):
            raw = raw.replace("$", "").replace(",", "").strip()
        try:
            amount = Decimal(str(raw))
        except InvalidOperation:
            raise InvalidPriceError(raw) from None
        if not amount.is_finite() or amount < 0:
            raise InvalidPriceError(raw)
        return cls(amount=amount)

    @classmethod
    def from_cents(cls, cents: int) -> Self:
        return cls(amount=Decimal(cents) / 100)

    @property
    def cents(self) -> int:
        return int((self.amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


def validate_quantity(value: object) -> int:
    """Return ``value`` as a seat count, or raise InvalidQuantityError.

    Integral Decimals and floats are accepted; booleans, fractions,
    negatives and anything non-numeric are not.
    """
    if isinstance(value, bool):
        raise InvalidQuantityError(value)
    if isinstance(value, int):
        quantity = value
    elif isinstance(value, (Decimal, float)):
        try:
            if value != int(value):
                raise InvalidQuantityError(value)
        except (ValueError, OverflowError, InvalidOperation):
            raise InvalidQuantityError(value) from None
        quantity = int(value)
    else:
        raise InvalidQuantityError(value)
    if quantity < 0:
        raise InvalidQuantityError(value)
    return quantity
