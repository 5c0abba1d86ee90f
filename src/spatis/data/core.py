"""
core.py - Location dataset for spatial specialization analysis

The LocationDataset class holds animal relocations (one row per fix)
grouped by individual. Analysis functions only read it; every
transformation returns a new object.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Union

import numpy as np
import pandas as pd

from .config import ColumnNotFoundError, SpatisConfig, ValidationError

_TRUE_TOKENS = {"true", "t", "yes", "y", "1"}
_FALSE_TOKENS = {"false", "f", "no", "n", "0"}


def _parse_flags(values: pd.Series, column: str) -> pd.Series:
    """
    Boolean flags from a bool, 0/1 or yes/no style column.

    Raises ValidationError on missing or unrecognized values.
    """
    if values.isna().any():
        raise ValidationError(f"Column '{column}' contains missing values")
    if pd.api.types.is_bool_dtype(values):
        return values.astype(bool)
    if pd.api.types.is_numeric_dtype(values):
        if not values.isin([0, 1]).all():
            raise ValidationError(f"Column '{column}' must only hold 0 or 1")
        return values.astype(bool)

    tokens = values.astype(str).str.strip().str.lower()
    unknown = sorted(set(tokens) - _TRUE_TOKENS - _FALSE_TOKENS)
    if unknown:
        raise ValidationError(
            f"Column '{column}' has values that are not true/false: {unknown[:5]}"
        )
    return tokens.isin(_TRUE_TOKENS)


@dataclass(frozen=True)
class LocationRecord:
    """A single relocation of one individual."""

    individual_id: str
    x: float
    y: float
    randomizable: bool = True


class LocationDataset:
    """
    Relocations of several individuals.

    Attributes
    ----------
    config : SpatisConfig
        Column names used by the table.
    _data : pd.DataFrame
        One row per location, with at least the individual, x and y
        columns. Any other column is kept untouched.
    """

    def __init__(self,
                 data: pd.DataFrame,
                 config: Optional[SpatisConfig] = None):
        """
        Initialize from a DataFrame.

        Parameters
        ----------
        data : pd.DataFrame
            Location table.
        config : SpatisConfig, optional
            Column names. Defaults to ``SpatisConfig()``.
        """
        self.config = config or SpatisConfig()

        missing = [c for c in self.config.required_columns() if c not in data.columns]
        if missing:
            raise ColumnNotFoundError(missing[0], "location table")

        df = data.reset_index(drop=True).copy()
        df[self.config.individual_col] = df[self.config.individual_col].astype(str)
        x_col, y_col = self.config.get_coordinate_columns()
        df[x_col] = df[x_col].astype(np.float64)
        df[y_col] = df[y_col].astype(np.float64)
        flag_col = self.config.randomizable_col
        if flag_col in df.columns:
            df[flag_col] = _parse_flags(df[flag_col], flag_col)

        if df[[x_col, y_col]].isna().any().any():
            raise ValidationError("Coordinates contain missing values")
        if len(df) == 0:
            raise ValidationError("Location table is empty")

        self._data = df

    @classmethod
    def from_records(cls,
                     records: Iterable[LocationRecord],
                     config: Optional[SpatisConfig] = None) -> 'LocationDataset':
        """Build a dataset from LocationRecord objects."""
        config = config or SpatisConfig()
        rows = [
            {
                config.individual_col: r.individual_id,
                config.x_col: r.x,
                config.y_col: r.y,
                config.randomizable_col: bool(r.randomizable),
            }
            for r in records
        ]
        if not rows:
            raise ValidationError("No records given")
        return cls(pd.DataFrame(rows), config=config)

    # ========== Properties ==========

    @property
    def data(self) -> pd.DataFrame:
        """Copy of the underlying table."""
        return self._data.copy()

    @property
    def labels(self) -> np.ndarray:
        """Individual label of every location."""
        return self._data[self.config.individual_col].to_numpy()

    @property
    def individuals(self) -> List[str]:
        """Sorted unique individual IDs."""
        return sorted(self._data[self.config.individual_col].unique())

    @property
    def n_individuals(self) -> int:
        return self._data[self.config.individual_col].nunique()

    @property
    def n_locations(self) -> int:
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    # ========== Access ==========

    def counts(self) -> pd.Series:
        """Number of locations per individual."""
        return self._data[self.config.individual_col].value_counts().sort_index()

    def get_coords(self,
                   individuals: Optional[Union[str, List[str]]] = None,
                   exclude: Optional[Union[str, List[str]]] = None) -> np.ndarray:
        """
        Get coordinates as an (N, 2) array.

        Parameters
        ----------
        individuals : str or list, optional
            Keep only these individuals. If None, all.
        exclude : str or list, optional
            Drop these individuals.

        Returns
        -------
        np.ndarray
        """
        mask = np.ones(len(self._data), dtype=bool)
        labels = self.labels
        if individuals is not None:
            if isinstance(individuals, str):
                individuals = [individuals]
            mask &= np.isin(labels, [str(i) for i in individuals])
        if exclude is not None:
            if isinstance(exclude, str):
                exclude = [exclude]
            mask &= ~np.isin(labels, [str(i) for i in exclude])

        x_col, y_col = self.config.get_coordinate_columns()
        return self._data.loc[mask, [x_col, y_col]].to_numpy(dtype=np.float64)

    def grouped_coords(self) -> Dict[str, np.ndarray]:
        """Coordinates of each individual, keyed by ID."""
        x_col, y_col = self.config.get_coordinate_columns()
        return {
            str(ind): grp[[x_col, y_col]].to_numpy(dtype=np.float64)
            for ind, grp in self._data.groupby(self.config.individual_col, sort=True)
        }

    def records(self) -> Iterator[LocationRecord]:
        """Iterate over locations as LocationRecord objects."""
        cfg = self.config
        flags = self._randomizable_flags()
        for (ind, x, y), flag in zip(
            self._data[[cfg.individual_col, cfg.x_col, cfg.y_col]].itertuples(index=False, name=None),
            flags,
        ):
            yield LocationRecord(ind, float(x), float(y), bool(flag))

    def _randomizable_flags(self) -> np.ndarray:
        col = self.config.randomizable_col
        if col in self._data.columns:
            return self._data[col].to_numpy(dtype=bool)
        return np.ones(len(self._data), dtype=bool)

    def fixed_mask(self,
                   not_randomize_col: Optional[str] = None,
                   not_randomize_val=None) -> np.ndarray:
        """
        Locations that must keep their individual during randomization.

        Parameters
        ----------
        not_randomize_col : str, optional
            Column flagging fixed locations. If None, locations whose
            ``randomizable`` flag is False are fixed.
        not_randomize_val : any
            Value of ``not_randomize_col`` marking a fixed location.

        Returns
        -------
        np.ndarray of bool
        """
        if not_randomize_col is None:
            return ~self._randomizable_flags()
        if not_randomize_col not in self._data.columns:
            raise ColumnNotFoundError(not_randomize_col, "location table")
        return (self._data[not_randomize_col] == not_randomize_val).to_numpy()

    # ========== Transformations ==========

    def relabel(self, labels: Union[np.ndarray, List[str]]) -> 'LocationDataset':
        """
        New dataset with the individual column replaced.

        Parameters
        ----------
        labels : array-like
            One label per location, in table order.
        """
        labels = np.asarray(labels)
        if len(labels) != len(self._data):
            raise ValidationError(
                f"Expected {len(self._data)} labels, got {len(labels)}"
            )
        df = self._data.copy()
        df[self.config.individual_col] = labels.astype(str)
        return LocationDataset(df, config=self.config)

    def subset(self, individuals: List[str]) -> 'LocationDataset':
        """New dataset with only the given individuals."""
        keep = np.isin(self.labels, [str(i) for i in individuals])
        if not keep.any():
            raise ValidationError(f"None of {individuals} found in dataset")
        return LocationDataset(self._data.loc[keep], config=self.config)

    # ========== Summary & Info ==========

    def summary(self) -> Dict[str, any]:
        """
        Summary of the dataset.

        Returns
        -------
        dict
        """
        counts = self.counts()
        coords = self.get_coords()
        return {
            'n_individuals': self.n_individuals,
            'n_locations': self.n_locations,
            'min_locations': int(counts.min()),
            'max_locations': int(counts.max()),
            'n_fixed': int((~self._randomizable_flags()).sum()),
            'bbox': (*coords.min(axis=0), *coords.max(axis=0)),
        }

    def __repr__(self) -> str:
        return (f"LocationDataset\n"
                f"  Individuals: {self.n_individuals:,}\n"
                f"  Locations:   {self.n_locations:,}")
