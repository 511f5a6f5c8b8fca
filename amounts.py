import math
from functools import total_ordering
from typing import Any

from errors import AmountOverflow, NegativeValue


@total_ordering
class ValidatedAmount:
    """
    A money amount that is guaranteed to be non-negative and not NaN.

    Instances are immutable. Construction fails with ``NegativeValue`` for negative
    or NaN input, and addition fails with ``AmountOverflow`` instead of producing
    an infinite total from finite operands.
    """

    __slots__ = ("_value",)

    def __init__(self, value: float):
        value = float(value)
        if math.isnan(value) or value < 0:
            raise NegativeValue(value)
        object.__setattr__(self, "_value", value)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("ValidatedAmount is immutable")

    @property
    def value(self) -> float:
        return self._value

    def __float__(self) -> float:
        return self._value

    def __add__(self, other: Any) -> "ValidatedAmount":
        if not isinstance(other, ValidatedAmount):
            return NotImplemented
        total = self._value + other._value
        if math.isinf(total) and math.isfinite(self._value) and math.isfinite(other._value):
            raise AmountOverflow(self._value, other._value)
        return ValidatedAmount(total)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, ValidatedAmount):
            return self._value == other._value
        return NotImplemented

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, ValidatedAmount):
            return self._value < other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __repr__(self) -> str:
        return f"ValidatedAmount({self._value!r})"
