import os
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
from loguru import logger
from matplotlib.ticker import FuncFormatter
from typing import Any, Dict, Optional

from config import SimulationConfig
from constants import TEXT_INPUT_COLOR, TEXT_OUTPUT_COLOR


def plot_balance_trajectory(
    results_df: pd.DataFrame,
    input_config: SimulationConfig,
    filename: str,
    investment_summary: Optional[Dict[str, Any]] = None,
    dpi_setting: int = 300,
):
    """
    Plots the yearly final balance against the cumulative net contribution.

    Args:
        results_df: DataFrame from ``utils.snapshots_to_frame``; index is the
                    1-based year, with ``final_balance``, ``net_profit`` and
                    ``net_contribution`` columns.
        input_config: Scenario configuration, used for the title and input box.
        filename: The full path and filename to save the plot to.
        investment_summary: Optional aggregated result to print on the chart.
        dpi_setting: The DPI (dots per inch) for the saved image.
    """
    if results_df is None or results_df.empty:
        logger.warning(f"No yearly results to plot for '{filename}'. Skipping.")
        return

    plt.figure(figsize=(12, 7))
    ax = plt.gca()

    years_x_axis = results_df.index.to_numpy()

    ax.bar(
        years_x_axis,
        results_df["net_contribution"],
        color="lightgrey",
        edgecolor="grey",
        alpha=0.8,
        label="Net Contribution",
    )
    ax.plot(
        years_x_axis,
        results_df["final_balance"],
        color="blue",
        marker="o",
        markersize=3,
        linewidth=1.8,
        label="Final Balance",
    )
    ax.plot(
        years_x_axis,
        results_df["net_profit"],
        color="green",
        linestyle="--",
        linewidth=1.2,
        label=f"Net Profit (after {input_config.tax_rate * 100:.0f}% tax)",
    )

    input_text = (
        f"Deposit: ${input_config.deposit:,.0f}\n"
        f"Years: {input_config.years}\n"
        f"Tax Rate: {input_config.tax_rate * 100:.0f}%"
    )
    ax.text(
        0.02,
        0.97,
        input_text,
        transform=ax.transAxes,
        fontsize=8,
        va="top",
        color=TEXT_INPUT_COLOR,
        bbox=dict(boxstyle="round", facecolor="white", alpha=0.7),
    )

    if investment_summary:
        output_text = (
            f"Final Balance: ${investment_summary['final_balance']:,.0f}\n"
            f"Net Contribution: ${investment_summary['final_net_contribution']:,.0f}\n"
            f"Avg. Return: {investment_summary['average_return_rate'] * 100:.2f}%"
        )
        ax.text(
            0.02,
            0.80,
            output_text,
            transform=ax.transAxes,
            fontsize=8,
            va="top",
            color=TEXT_OUTPUT_COLOR,
            bbox=dict(boxstyle="round", facecolor="white", alpha=0.7),
        )

    ax.set_xlabel("Year", fontsize=9)
    ax.set_ylabel("Balance ($)", fontsize=9)
    ax.set_title(
        f"Investment Growth - Scenario: {input_config.Nickname}",
        fontsize=11,
    )
    ax.tick_params(axis="both", which="major", labelsize=7)
    ax.grid(True, linestyle=":", alpha=0.6)

    def thousands_formatter(x_val, pos):
        return f"{x_val / 1e3:,.0f}k" if x_val != 0 else "0"

    ax.yaxis.set_major_formatter(FuncFormatter(thousands_formatter))
    ax.legend(fontsize=7.5, loc="lower right")
    plt.tight_layout()

    # --- Save Plot ---
    try:
        file_directory = os.path.dirname(filename)
        if file_directory:
            os.makedirs(file_directory, exist_ok=True)

        plt.savefig(filename, dpi=dpi_setting)
        logger.info(f"Balance plot saved to {filename} (DPI: {dpi_setting})")
    except OSError as e:
        logger.error(f"Error saving balance plot '{filename}': {e}")
    finally:
        plt.close()
