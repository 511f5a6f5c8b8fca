from typing import Optional


class SimulationError(Exception):
    """Base class for every failure raised by the simulation engine."""


class NegativeValue(SimulationError):
    """Raised when a quantity that must be non-negative is negative or NaN."""

    def __init__(self, value: float, field: Optional[str] = None):
        self.value = value
        self.field = field
        where = f" for '{field}'" if field else ""
        super().__init__(f"Value {value!r}{where} must be a non-negative number.")


class NaNInvalid(SimulationError):
    """Raised when a NaN shows up in the per-year recurrence."""

    def __init__(self, year: int, quantity: str = "value"):
        self.year = year
        self.quantity = quantity
        super().__init__(f"NaN is invalid: {quantity} of year {year} is not a number.")


class LengthMismatch(SimulationError):
    def __init__(self, expected: int, actual: int, field: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.field = field
        label = field or "per-year schedule"
        super().__init__(
            f"The {label} has {actual} entries but {expected} years are simulated."
        )


class DistributionNotFound(SimulationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Distribution '{name}' is not available.")


class InvalidResults(SimulationError):
    def __init__(self, message: str = "Computed results are invalid: no snapshots to aggregate."):
        super().__init__(message)


class AmountOverflow(SimulationError):
    def __init__(self, left: float, right: float, operation: str = "+"):
        self.left = left
        self.right = right
        self.operation = operation
        super().__init__(
            f"{left!r} {operation} {right!r} overflows to a non-finite amount."
        )


class ConfigurationError(Exception):
    """Raised when a configuration or data file cannot be loaded or parsed."""
