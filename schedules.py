from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from amounts import ValidatedAmount
from distributions import DistributionProvider
from errors import DistributionNotFound, LengthMismatch, NegativeValue


# --- RATE SCHEDULES ---

@dataclass(frozen=True)
class FixedRate:
    rate: float


@dataclass(frozen=True)
class PerYearRates:
    rates: Tuple[float, ...]


@dataclass(frozen=True)
class DistributionRates:
    """Annual rates drawn from a named historical distribution."""

    name: str


RateSchedule = Union[FixedRate, PerYearRates, DistributionRates]


# --- CONTRIBUTION SCHEDULES ---

@dataclass(frozen=True)
class FixedContribution:
    amount: ValidatedAmount


@dataclass(frozen=True)
class PerYearContributions:
    amounts: Tuple[ValidatedAmount, ...]


ContributionSchedule = Union[FixedContribution, PerYearContributions]


def _check_years(years: int) -> None:
    if years < 0:
        raise NegativeValue(years, field="years")


def _check_length(values: Sequence, years: int, field: str) -> None:
    if len(values) != years:
        raise LengthMismatch(expected=years, actual=len(values), field=field)


def sample_distribution(
    series: Sequence[float], years: int, rng: np.random.Generator
) -> List[float]:
    """
    Draws ``years`` annual rates from ``series``.

    Each year is drawn independently and uniformly, with replacement, so the
    same historical year can appear more than once and ``years`` may exceed
    the length of the series.
    """
    if years == 0:
        return []
    indices = rng.integers(0, len(series), size=years)
    return [float(series[i]) for i in indices]


def expand_rates(
    schedule: RateSchedule,
    years: int,
    provider: Optional[DistributionProvider] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[float]:
    """Expands a rate schedule into one return rate per simulated year."""
    _check_years(years)

    if isinstance(schedule, FixedRate):
        return [float(schedule.rate)] * years

    if isinstance(schedule, PerYearRates):
        _check_length(schedule.rates, years, "return_rates")
        return [float(r) for r in schedule.rates]

    if isinstance(schedule, DistributionRates):
        series = provider.lookup(schedule.name) if provider is not None else None
        if series is None or len(series) == 0:
            raise DistributionNotFound(schedule.name)
        if rng is None:
            rng = np.random.default_rng()
        logger.debug(
            f"Sampling {years} rates with replacement from '{schedule.name}' ({len(series)} observations)"
        )
        return sample_distribution(series, years, rng)

    raise TypeError(f"Unsupported rate schedule: {schedule!r}")


def expand_contributions(
    schedule: ContributionSchedule, years: int
) -> List[ValidatedAmount]:
    """Expands a contribution schedule into one contribution per simulated year."""
    _check_years(years)

    if isinstance(schedule, FixedContribution):
        return [schedule.amount] * years

    if isinstance(schedule, PerYearContributions):
        _check_length(schedule.amounts, years, "annual_contributions")
        return list(schedule.amounts)

    raise TypeError(f"Unsupported contribution schedule: {schedule!r}")


def expand(
    schedule: Union[RateSchedule, ContributionSchedule],
    years: int,
    provider: Optional[DistributionProvider] = None,
    rng: Optional[np.random.Generator] = None,
) -> Union[List[float], List[ValidatedAmount]]:
    if isinstance(schedule, (FixedContribution, PerYearContributions)):
        return expand_contributions(schedule, years)
    return expand_rates(schedule, years, provider=provider, rng=rng)
