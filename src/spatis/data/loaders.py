"""
loaders.py - Build LocationDataset objects from tables and files
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .config import ColumnNotFoundError, InsufficientDataError, SpatisConfig, ValidationError
from .core import LocationDataset

logger = logging.getLogger(__name__)


class LocationValidator:
    """Cleans and checks raw location tables."""

    def __init__(self, config: SpatisConfig, strict_validation: bool = False):
        self.config = config
        self.strict_validation = strict_validation

    def validate_columns(self, df: pd.DataFrame, table_name: str) -> None:
        """Raise if a required column is missing."""
        missing = [col for col in self.config.required_columns() if col not in df.columns]
        if missing:
            raise ColumnNotFoundError(missing[0], table_name)

    def drop_incomplete(self, df: pd.DataFrame) -> pd.DataFrame:
        """Drop rows without an individual or a coordinate."""
        cols = self.config.required_columns()
        incomplete = df[cols].isna().any(axis=1)
        n_bad = int(incomplete.sum())

        if n_bad:
            msg = f"{n_bad} locations with missing id/x/y"
            if self.strict_validation:
                raise ValidationError(msg)
            logger.warning(f"{msg}, dropping them")

        return df.loc[~incomplete]

    def check_min_points(self, df: pd.DataFrame, min_points: int) -> None:
        """Warn (or raise) about individuals with too few locations."""
        counts = df[self.config.individual_col].value_counts()
        small = counts[counts < min_points]

        if len(small):
            msg = (f"{len(small)} individuals have fewer than {min_points} "
                   f"locations: {sorted(map(str, small.index))}")
            if self.strict_validation:
                raise InsufficientDataError(msg)
            logger.warning(msg)


def from_dataframe(df: pd.DataFrame,
                   config: Optional[SpatisConfig] = None,
                   min_points: int = 5,
                   strict_validation: bool = False) -> LocationDataset:
    """
    Build a LocationDataset from a DataFrame.

    Parameters
    ----------
    df : pd.DataFrame
        Table with individual, x and y columns.
    config : SpatisConfig, optional
        Column names.
    min_points : int
        Individuals with fewer locations are reported.
    strict_validation : bool
        If True, raise instead of logging a warning.

    Returns
    -------
    LocationDataset
    """
    config = config or SpatisConfig()
    validator = LocationValidator(config, strict_validation=strict_validation)

    validator.validate_columns(df, "location table")
    df = validator.drop_incomplete(df)
    validator.check_min_points(df, min_points)

    dataset = LocationDataset(df, config=config)
    logger.info(f"Loaded {dataset.n_locations} locations of {dataset.n_individuals} individuals")
    return dataset


def read_locations(filepath: Union[str, Path],
                   config: Optional[SpatisConfig] = None,
                   min_points: int = 5,
                   strict_validation: bool = False,
                   **read_kwargs) -> LocationDataset:
    """
    Read a delimited text file of locations.

    Parameters
    ----------
    filepath : str or Path
        CSV (or other delimited) file.
    config : SpatisConfig, optional
        Column names.
    min_points : int
        Individuals with fewer locations are reported.
    strict_validation : bool
        If True, raise instead of logging a warning.
    **read_kwargs
        Passed to ``pd.read_csv`` (e.g. ``sep``).

    Returns
    -------
    LocationDataset
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Location file not found: {filepath}")

    df = pd.read_csv(filepath, **read_kwargs)
    logger.debug(f"Read {len(df)} rows from {filepath}")

    return from_dataframe(df, config=config, min_points=min_points,
                          strict_validation=strict_validation)
