import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger
from pydantic import BaseModel, Field

from amounts import ValidatedAmount
from config import SimulationConfig
from constants import DEFAULT_TAX_RATE
from distributions import DistributionProvider
from errors import (
    AmountOverflow,
    InvalidResults,
    LengthMismatch,
    NaNInvalid,
    NegativeValue,
)
from schedules import (
    ContributionSchedule,
    DistributionRates,
    FixedContribution,
    FixedRate,
    PerYearContributions,
    PerYearRates,
    RateSchedule,
    expand_contributions,
    expand_rates,
)
from utils import _generate_seed_from_timestamp


class SnapshotResult(BaseModel):
    """Serializable view of a single simulated year."""

    year: int = Field(..., ge=1, description="1-based year number.")
    net_contribution: float = Field(..., ge=0)
    initial_balance: float
    return_rate: float
    interest: float
    gross_profit: float
    net_profit: float
    final_balance: float


class InvestmentResult(BaseModel):
    years: int = Field(..., ge=1)
    final_net_contribution: float = Field(..., ge=0)
    final_balance: float
    average_return_rate: float


@dataclass(frozen=True)
class Snapshot:
    """
    State of the investment for one simulated year.

    ``initial_balance`` already includes the contribution made at the start of
    the year; ``net_contribution`` is the deposit plus every contribution made
    so far.
    """

    year_index: int
    net_contribution: ValidatedAmount
    initial_balance: float
    return_rate: float
    tax_rate: float = DEFAULT_TAX_RATE

    @property
    def interest(self) -> float:
        return self.initial_balance * self.return_rate

    @property
    def gross_profit(self) -> float:
        return self.initial_balance + self.interest

    @property
    def final_balance(self) -> float:
        return self.initial_balance * (1 + self.return_rate)

    @property
    def net_profit(self) -> float:
        # Only gains above what was paid in are taxed; losses never are.
        gross = self.gross_profit
        contributed = self.net_contribution.value
        if gross < contributed:
            return gross
        return gross - (gross - contributed) * self.tax_rate

    def result(self) -> SnapshotResult:
        return SnapshotResult(
            year=self.year_index + 1,
            net_contribution=self.net_contribution.value,
            initial_balance=self.initial_balance,
            return_rate=self.return_rate,
            interest=self.interest,
            gross_profit=self.gross_profit,
            net_profit=self.net_profit,
            final_balance=self.final_balance,
        )


ContributionsInput = Union[ContributionSchedule, Sequence[Union[ValidatedAmount, float]]]
RatesInput = Union[RateSchedule, Sequence[float]]


def _resolve_contributions(contributions: ContributionsInput, years: int) -> List[ValidatedAmount]:
    if isinstance(contributions, (FixedContribution, PerYearContributions)):
        return expand_contributions(contributions, years)
    amounts = [
        c if isinstance(c, ValidatedAmount) else ValidatedAmount(c) for c in contributions
    ]
    if len(amounts) != years:
        raise LengthMismatch(expected=years, actual=len(amounts), field="annual_contributions")
    return amounts


def _resolve_rates(
    rates: RatesInput,
    years: int,
    provider: Optional[DistributionProvider],
    rng: Optional[np.random.Generator],
) -> List[float]:
    if isinstance(rates, (FixedRate, PerYearRates, DistributionRates)):
        return expand_rates(rates, years, provider=provider, rng=rng)
    if isinstance(rates, str):
        raise TypeError(f"Unsupported rate input: {rates!r}")
    resolved = [float(r) for r in rates]
    if len(resolved) != years:
        raise LengthMismatch(expected=years, actual=len(resolved), field="return_rates")
    return resolved


def simulate(
    deposit: Union[ValidatedAmount, float],
    years: int,
    contributions: ContributionsInput,
    rates: RatesInput,
    *,
    provider: Optional[DistributionProvider] = None,
    rng: Optional[np.random.Generator] = None,
    tax_rate: float = DEFAULT_TAX_RATE,
) -> List[Snapshot]:
    """
    Runs the yearly recurrence and returns one Snapshot per year.

    Schedules are expanded up front, so length mismatches and unknown
    distributions fail before any year is simulated. A NaN in a balance or
    rate aborts the whole run with ``NaNInvalid``; no partial list is returned.
    Finite inputs that overflow a balance to infinity raise ``AmountOverflow``.
    """
    if years < 0:
        raise NegativeValue(years, field="years")
    if not isinstance(deposit, ValidatedAmount):
        deposit = ValidatedAmount(deposit)

    yearly_contributions = _resolve_contributions(contributions, years)
    yearly_rates = _resolve_rates(rates, years, provider, rng)

    snapshots: List[Snapshot] = []
    for year in range(years):
        contribution = yearly_contributions[year]
        rate = yearly_rates[year]

        if year == 0:
            net_contribution = deposit + contribution
            initial_balance = net_contribution.value
        else:
            previous = snapshots[-1]
            net_contribution = previous.net_contribution + contribution
            initial_balance = previous.final_balance + contribution.value
            if (
                math.isinf(initial_balance)
                and math.isfinite(previous.final_balance)
                and math.isfinite(contribution.value)
            ):
                raise AmountOverflow(previous.final_balance, contribution.value, "+")

        if math.isnan(initial_balance):
            raise NaNInvalid(year, "initial_balance")
        if math.isnan(rate):
            raise NaNInvalid(year, "return_rate")

        snapshot = Snapshot(
            year_index=year,
            net_contribution=net_contribution,
            initial_balance=initial_balance,
            return_rate=rate,
            tax_rate=tax_rate,
        )
        final_balance = snapshot.final_balance
        if math.isnan(final_balance):
            raise NaNInvalid(year, "final_balance")
        if math.isinf(final_balance) and math.isfinite(initial_balance) and math.isfinite(rate):
            raise AmountOverflow(initial_balance, 1 + rate, "*")
        snapshots.append(snapshot)

    return snapshots


def aggregate(snapshots: Sequence[Snapshot]) -> InvestmentResult:
    """Reduces the yearly snapshots into the overall result of the investment."""
    if not snapshots:
        raise InvalidResults()

    last = snapshots[-1]
    average_return_rate = float(np.mean([s.return_rate for s in snapshots]))
    return InvestmentResult(
        years=len(snapshots),
        final_net_contribution=last.net_contribution.value,
        final_balance=last.final_balance,
        average_return_rate=average_return_rate,
    )


class InvestmentSimulator:
    """
    Runs a configured investment scenario.

    Wraps ``simulate``/``aggregate`` with the scenario's schedules, tax rate and
    a seeded random generator, so a scenario sampled from a historical
    distribution can be replayed by reusing its seed.
    """

    def __init__(
        self,
        params_model: SimulationConfig,
        provider: Optional[DistributionProvider] = None,
        main_seed_override: Optional[int] = None,
    ):
        self.params_model = params_model
        self.provider = provider

        if main_seed_override is not None:
            if main_seed_override < 0:
                raise NegativeValue(main_seed_override, field="seed")
            self.main_seed = main_seed_override
        elif self.params_model.seed is not None:
            self.main_seed = self.params_model.seed
        else:
            self.main_seed = _generate_seed_from_timestamp()
        logger.info(
            f"Simulator initialized for scenario '{self.params_model.Nickname}' with main seed: {self.main_seed}"
        )

    def run(self) -> List[Snapshot]:
        p = self.params_model
        rng = np.random.default_rng(self.main_seed)
        snapshots = simulate(
            p.deposit_amount(),
            p.years,
            p.contribution_schedule(),
            p.rate_schedule(),
            provider=self.provider,
            rng=rng,
            tax_rate=p.tax_rate,
        )
        logger.debug(f"Simulated {len(snapshots)} year(s) for '{p.Nickname}'")
        return snapshots

    def run_and_aggregate(self) -> Tuple[List[Snapshot], InvestmentResult]:
        snapshots = self.run()
        return snapshots, aggregate(snapshots)
