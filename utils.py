import datetime as _dt
import hashlib
from typing import Any, Sequence

import pandas as pd
from loguru import logger
from pydantic import BaseModel

from config import DistributionReference, SimulationConfig


def _generate_seed_from_timestamp() -> int:
    ts = _dt.datetime.now(_dt.timezone.utc).isoformat()
    return int.from_bytes(hashlib.sha256(ts.encode()).digest()[:8], "big") % (2**32 - 1)


def _format_rates(value: Any) -> str:
    if isinstance(value, DistributionReference):
        return f"sampled from '{value.distribution}' distribution"
    if isinstance(value, list):
        return "[" + ", ".join(f"{r * 100:.2f}%" for r in value) + "]"
    return f"{value * 100:.2f}%"


def _format_money(value: Any) -> str:
    if isinstance(value, list):
        return "[" + ", ".join(f"${v:,.2f}" for v in value) + "]"
    return f"${value:,.2f}"  # Assuming $


def log_input_parameters(config: SimulationConfig) -> None:
    """Logs the input parameters for the simulation."""
    logger.info(f"--- Input Parameters For Scenario: {config.Nickname} ---")
    logger.info(f"Deposit: {_format_money(config.deposit)}")
    logger.info(f"Years: {config.years}")
    logger.info(f"Annual Contributions: {_format_money(config.annual_contributions)}")
    logger.info(f"Return Rates: {_format_rates(config.return_rates)}")
    logger.info(f"Tax Rate: {config.tax_rate * 100:.2f}%")
    logger.info(f"Seed: {config.seed if config.seed is not None else 'timestamp-derived'}")
    logger.info("--- End of Input Parameters ---")


def snapshots_to_frame(snapshots: Sequence[Any]) -> pd.DataFrame:
    """Tabulates snapshot results, one row per simulated year, indexed by year."""
    rows = [s.result().model_dump() for s in snapshots]
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows).set_index("year")


def log_simulation_results(
    config: SimulationConfig,
    snapshots: Sequence[Any],
    investment_result: BaseModel,
) -> None:
    """Logs every simulated year and the final aggregated result."""
    logger.info(f"--- Yearly Results for Scenario: '{config.Nickname}' ---")
    for row in snapshots_to_frame(snapshots).itertuples():
        logger.info(
            f"  Year {row.Index}: contributed ${row.net_contribution:,.2f}, "
            f"start ${row.initial_balance:,.2f}, return {row.return_rate * 100:.2f}%, "
            f"gross ${row.gross_profit:,.2f}, net ${row.net_profit:,.2f}, "
            f"end ${row.final_balance:,.2f}"
        )

    result = investment_result.model_dump()
    logger.info(f"--- Final Results for Scenario: '{config.Nickname}' ---")
    logger.info(f"After {result['years']} years:")
    logger.info(f"  Net Contribution: ${result['final_net_contribution']:,.2f}")
    logger.info(f"  Final Balance: ${result['final_balance']:,.2f}")
    logger.info(f"  Average Return Rate: {result['average_return_rate'] * 100:.2f}%")
