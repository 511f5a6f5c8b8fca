import os
import json
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, ValidationInfo
from loguru import logger

from amounts import ValidatedAmount
from constants import (
    DEFAULT_DISTRIBUTIONS_DIR,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SCENARIO_NAME,
    DEFAULT_TAX_RATE,
)
from errors import ConfigurationError, NegativeValue
from schedules import (
    ContributionSchedule,
    DistributionRates,
    FixedContribution,
    FixedRate,
    PerYearContributions,
    PerYearRates,
    RateSchedule,
)

__all__ = [
    "ConfigurationError",
    "DistributionReference",
    "ServerSettings",
    "SimulationConfig",
    "load_config_from_json",
    "load_server_settings",
]


class DistributionReference(BaseModel):
    """Selects a named historical distribution to sample annual returns from."""

    model_config = ConfigDict(extra="forbid")

    distribution: str = Field(
        ..., min_length=1, description="Name of the historical return distribution (e.g. 'sp500')."
    )


def _validated_amount(value: float, field: str) -> ValidatedAmount:
    try:
        return ValidatedAmount(value)
    except NegativeValue:
        raise NegativeValue(value, field=field) from None


class SimulationConfig(BaseModel):
    """
    Configuration for one investment scenario.

    ``annual_contributions`` and ``return_rates`` accept a scalar (same value every
    year), a list (one value per year) or, for rates only, a
    ``{"distribution": name}`` object. The shape is resolved here and handed to the
    engine as a tagged schedule.
    """

    Nickname: str = Field(
        DEFAULT_SCENARIO_NAME,
        alias="scenario",
        description="A nickname for this simulation scenario.",
    )
    deposit: float = Field(..., description="Initial deposit made at the start of year 1.")
    years: int = Field(..., ge=0, description="Number of years to simulate.")
    annual_contributions: Union[float, List[float]] = Field(
        ..., description="Contribution added at the start of each year."
    )
    return_rates: Union[float, List[float], DistributionReference] = Field(
        ..., description="Annual return rate(s) as decimals (0.05 for 5%)."
    )
    tax_rate: float = Field(
        DEFAULT_TAX_RATE,
        ge=0.0,
        le=1.0,
        description="Tax applied to the part of the balance exceeding net contributions.",
    )
    seed: Optional[int] = Field(None, ge=0, description="Seed for distribution sampling.")

    model_config = {"validate_by_name": True, "validate_assignment": True}

    @field_validator("return_rates")
    @classmethod
    def check_return_rates(
        cls, v: Union[float, List[float], DistributionReference], info: ValidationInfo
    ) -> Union[float, List[float], DistributionReference]:
        rates = [v] if isinstance(v, float) else v if isinstance(v, list) else []
        scen_name = info.data.get("Nickname", "N/A")
        for rate in rates:
            if rate < -1.0:
                logger.warning(
                    f"Return rate {rate * 100:.1f}% loses more than the whole balance in scenario '{scen_name}'."
                )
            elif rate > 1.0:
                logger.warning(
                    f"Return rate {rate * 100:.1f}% is unusually high for scenario '{scen_name}'."
                )
        return v

    def deposit_amount(self) -> ValidatedAmount:
        return _validated_amount(self.deposit, "deposit")

    def contribution_schedule(self) -> ContributionSchedule:
        if isinstance(self.annual_contributions, list):
            return PerYearContributions(
                tuple(
                    _validated_amount(c, "annual_contributions")
                    for c in self.annual_contributions
                )
            )
        return FixedContribution(
            _validated_amount(self.annual_contributions, "annual_contributions")
        )

    def rate_schedule(self) -> RateSchedule:
        if isinstance(self.return_rates, DistributionReference):
            return DistributionRates(self.return_rates.distribution)
        if isinstance(self.return_rates, list):
            return PerYearRates(tuple(self.return_rates))
        return FixedRate(self.return_rates)


class ServerSettings(BaseModel):
    host: str = DEFAULT_HOST
    port: int = Field(DEFAULT_PORT, gt=0, lt=65536)
    distributions_dir: str = DEFAULT_DISTRIBUTIONS_DIR
    log_file: Optional[str] = "server.log"


def load_server_settings(environ: Optional[Dict[str, str]] = None) -> ServerSettings:
    """Builds the server settings from ``SIMULATOR_*`` environment variables."""
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for field_name in ServerSettings.model_fields:
        env_key = f"SIMULATOR_{field_name.upper()}"
        if env_key in env:
            values[field_name] = env[env_key]
    try:
        return ServerSettings(**values)
    except ValueError as e:
        raise ConfigurationError(f"Invalid server settings in environment: {e}") from e


def load_config_from_json(file_path: str) -> Dict[str, Any]:
    """Loads and returns the configuration dictionary from a JSON file."""
    if not os.path.exists(file_path):
        raise ConfigurationError(f"Configuration file not found at: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Error parsing JSON file '{file_path}': {e}"
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Unexpected error reading config file '{file_path}': {e}"
        ) from e
