import json

import pytest
from pydantic import ValidationError

from amounts import ValidatedAmount
from config import (
    ConfigurationError,
    DistributionReference,
    SimulationConfig,
    load_config_from_json,
    load_server_settings,
)
from constants import DEFAULT_PORT, DEFAULT_TAX_RATE
from errors import NegativeValue
from schedules import (
    DistributionRates,
    FixedContribution,
    FixedRate,
    PerYearContributions,
    PerYearRates,
)


def test_scalar_shapes_become_fixed_schedules(scenario):
    config = SimulationConfig(**scenario)
    assert config.Nickname == "Baseline"
    assert config.tax_rate == DEFAULT_TAX_RATE
    assert config.contribution_schedule() == FixedContribution(ValidatedAmount(3600))
    assert config.rate_schedule() == FixedRate(0.05)


def test_list_shapes_become_per_year_schedules(scenario):
    scenario.update(annual_contributions=[100, 200, 300], return_rates=[0.05, -0.05, 0.0])
    config = SimulationConfig(**scenario)
    assert config.contribution_schedule() == PerYearContributions(
        (ValidatedAmount(100), ValidatedAmount(200), ValidatedAmount(300))
    )
    assert config.rate_schedule() == PerYearRates((0.05, -0.05, 0.0))


def test_distribution_object_becomes_distribution_schedule(scenario):
    scenario["return_rates"] = {"distribution": "msci_world"}
    config = SimulationConfig(**scenario)
    assert isinstance(config.return_rates, DistributionReference)
    assert config.rate_schedule() == DistributionRates("msci_world")


def test_name_is_accepted_by_field_name(scenario):
    del scenario["scenario"]
    config = SimulationConfig(Nickname="Other", **scenario)
    assert config.Nickname == "Other"


@pytest.mark.parametrize(
    "overrides",
    [
        {"years": -1},
        {"tax_rate": 1.5},
        {"return_rates": {"dist": "sp500"}},
        {"return_rates": {"distribution": "sp500", "extra": 1}},
        {"annual_contributions": "lots"},
        {"seed": -1},
    ],
)
def test_invalid_shapes_rejected(scenario, overrides):
    scenario.update(overrides)
    with pytest.raises(ValidationError):
        SimulationConfig(**scenario)


def test_negative_amounts_surface_as_negative_value(scenario):
    scenario.update(deposit=-5, annual_contributions=[1, -2, 3])
    config = SimulationConfig(**scenario)
    with pytest.raises(NegativeValue) as exc_info:
        config.deposit_amount()
    assert exc_info.value.field == "deposit"
    with pytest.raises(NegativeValue) as exc_info:
        config.contribution_schedule()
    assert exc_info.value.field == "annual_contributions"


def test_load_config_from_json(tmp_path, scenario):
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(scenario), encoding="utf-8")
    assert load_config_from_json(str(path)) == scenario


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config_from_json(str(tmp_path / "missing.json"))


def test_load_config_bad_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{deposit: 1", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Error parsing JSON"):
        load_config_from_json(str(path))


def test_server_settings_from_environment():
    settings = load_server_settings(
        {"SIMULATOR_PORT": "8080", "SIMULATOR_DISTRIBUTIONS_DIR": "/data/dists"}
    )
    assert settings.port == 8080
    assert settings.distributions_dir == "/data/dists"
    assert load_server_settings({}).port == DEFAULT_PORT


def test_server_settings_invalid_port():
    with pytest.raises(ConfigurationError):
        load_server_settings({"SIMULATOR_PORT": "not-a-port"})
