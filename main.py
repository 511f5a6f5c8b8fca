import argparse
import os
import json
import sys
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from config import (
    ConfigurationError,
    SimulationConfig,
    load_config_from_json,
    load_server_settings,
)
from constants import DEFAULT_CONFIG_FILENAME, DEFAULT_DISTRIBUTIONS_DIR
from distributions import CsvDistributionProvider, InMemoryDistributionProvider
from errors import SimulationError
from plotting import plot_balance_trajectory
from simulation import InvestmentSimulator
from utils import log_input_parameters, log_simulation_results, snapshots_to_frame

EXIT_OK = 0
EXIT_SIMULATION_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be a non-negative integer, got {number}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Simulate the year-by-year growth of an investment.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("-m", "--mode", choices=["cli", "server"], default="cli", help="Application mode.")
    parser.add_argument(
        "-c",
        "--config-file",
        default=None,
        help=f"Scenario configuration JSON (defaults to '{DEFAULT_CONFIG_FILENAME}' in cli mode).",
    )
    parser.add_argument(
        "-d",
        "--distributions-dir",
        default=DEFAULT_DISTRIBUTIONS_DIR,
        help="Directory holding <name>_dist.csv historical return files.",
    )
    parser.add_argument("--seed", type=_non_negative_int, default=None, help="Override the configured random seed.")
    parser.add_argument("--plot", default=None, help="Write a balance chart to this PNG file.")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file.")
    return parser.parse_args(argv)


def _configure_logging(log_filename: Optional[str]) -> None:
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level="INFO",
        colorize=True,
    )
    if log_filename:
        logger.add(
            log_filename,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
            level="INFO",
            rotation="10 MB",
        )
        logger.info(f"Logging initialized. Log file: {log_filename}")


def run_cli_simulation(
    config_file: str,
    distributions_dir: str = DEFAULT_DISTRIBUTIONS_DIR,
    seed: Optional[int] = None,
    plot_file: Optional[str] = None,
) -> int:
    """
    Loads a scenario, simulates it and prints the aggregated result as JSON.

    Returns the process exit code.
    """
    if seed is not None and seed < 0:
        logger.error(f"Seed override must be a non-negative integer, got {seed}")
        return EXIT_CONFIGURATION_ERROR

    logger.info(f"Loading configuration from: {config_file}")
    try:
        config_dict = load_config_from_json(config_file)
        config = SimulationConfig(**config_dict)
        logger.info(
            f"Configuration for scenario '{config.Nickname}' loaded and validated successfully."
        )
    except ConfigurationError as e:
        logger.error(f"Configuration file error: {e}")
        return EXIT_CONFIGURATION_ERROR
    except (ValidationError, TypeError) as e:
        logger.error(f"Configuration validation error: {e}")
        return EXIT_CONFIGURATION_ERROR

    try:
        provider = CsvDistributionProvider.from_directory(distributions_dir)
    except ConfigurationError as e:
        logger.warning(f"No historical distributions loaded: {e}")
        provider = InMemoryDistributionProvider()

    log_input_parameters(config)

    try:
        simulator = InvestmentSimulator(config, provider=provider, main_seed_override=seed)
        snapshots, investment_result = simulator.run_and_aggregate()
    except SimulationError as e:
        logger.error(f"Simulation for '{config.Nickname}' failed: {e}")
        return EXIT_SIMULATION_ERROR

    log_simulation_results(config, snapshots, investment_result)

    if plot_file:
        plot_balance_trajectory(
            snapshots_to_frame(snapshots),
            config,
            plot_file,
            investment_summary=investment_result.model_dump(),
        )

    print(json.dumps(investment_result.model_dump()))
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main execution entry point.

    In cli mode runs one scenario from a configuration file; in server mode
    starts the HTTP API.
    """
    args = parse_args(argv)

    if args.mode == "server":
        from server import serve

        # The app reads its settings from the environment when uvicorn imports it.
        if args.distributions_dir != DEFAULT_DISTRIBUTIONS_DIR:
            os.environ["SIMULATOR_DISTRIBUTIONS_DIR"] = args.distributions_dir
        if args.log_file:
            os.environ["SIMULATOR_LOG_FILE"] = args.log_file
        serve(load_server_settings())
        return EXIT_OK

    _configure_logging(args.log_file)

    config_file = args.config_file
    if config_file is None:
        config_file = DEFAULT_CONFIG_FILENAME
        logger.info(
            f"No config file specified via argument. Defaulting to '{config_file}'"
        )

    return run_cli_simulation(
        config_file,
        distributions_dir=args.distributions_dir,
        seed=args.seed,
        plot_file=args.plot,
    )


if __name__ == "__main__":
    sys.exit(main())
