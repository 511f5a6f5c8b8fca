import os
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import pandas as pd
from loguru import logger

from errors import ConfigurationError
from constants import DISTRIBUTION_FILE_SUFFIX, PERCENT


class DistributionProvider(Protocol):
    """Read-only source of named historical return series."""

    def lookup(self, name: str) -> Optional[Sequence[float]]: ...

    def names(self) -> List[str]: ...


class InMemoryDistributionProvider:
    """
    Distribution provider backed by a plain mapping of name -> annual returns.

    Returns are stored as decimals (0.05 for 5%). The series are copied into
    tuples on construction, so the provider can be shared between concurrent
    simulations without coordination.
    """

    def __init__(self, distributions: Optional[Mapping[str, Sequence[float]]] = None):
        frozen: Dict[str, Tuple[float, ...]] = {
            name: tuple(float(v) for v in series)
            for name, series in (distributions or {}).items()
        }
        self._distributions = MappingProxyType(frozen)

    def lookup(self, name: str) -> Optional[Sequence[float]]:
        return self._distributions.get(name)

    def names(self) -> List[str]:
        return sorted(self._distributions)

    def __contains__(self, name: object) -> bool:
        return name in self._distributions


class CsvDistributionProvider(InMemoryDistributionProvider):
    """Loads ``<name>_dist.csv`` files whose second column holds yearly returns in percent."""

    @staticmethod
    def read_series(file_path: str) -> List[float]:
        try:
            frame = pd.read_csv(file_path)
        except (OSError, ValueError, pd.errors.ParserError) as e:
            raise ConfigurationError(
                f"Error reading distribution file '{file_path}': {e}"
            ) from e

        if frame.shape[1] < 2:
            raise ConfigurationError(
                f"Distribution file '{file_path}' needs at least two columns, found {frame.shape[1]}."
            )

        returns = pd.to_numeric(frame.iloc[:, 1], errors="coerce")
        if returns.isna().any():
            bad_rows = [int(i) for i in returns[returns.isna()].index]
            raise ConfigurationError(
                f"Distribution file '{file_path}' has non-numeric returns at rows {bad_rows}."
            )
        return (returns / PERCENT).astype(float).tolist()

    @classmethod
    def from_directory(cls, directory: str) -> "CsvDistributionProvider":
        if not os.path.isdir(directory):
            raise ConfigurationError(f"Distributions directory not found at: {directory}")

        distributions: Dict[str, List[float]] = {}
        for filename in sorted(os.listdir(directory)):
            if not filename.endswith(DISTRIBUTION_FILE_SUFFIX):
                continue
            name = filename[: -len(DISTRIBUTION_FILE_SUFFIX)]
            series = cls.read_series(os.path.join(directory, filename))
            distributions[name] = series
            logger.debug(f"Loaded distribution '{name}' with {len(series)} yearly returns")

        logger.info(
            f"Loaded {len(distributions)} distribution(s) from '{directory}': {sorted(distributions)}"
        )
        return cls(distributions)
