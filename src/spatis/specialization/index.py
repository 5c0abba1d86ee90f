"""
index.py - Spatial individual specialization indices (SpatIS, SpatICS)

SpatIS_i  = 1 - overlap(UD_i, UD_population)
SpatICS_i = 1 - overlap(UD_i, UD_rest_i)

The population UD pools the locations of all individuals, the focal one
included. The rest UD of individual i pools every other individual and
is estimated separately for each i. Population-level values are the
arithmetic mean of the individual values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

import numpy as np
import pandas as pd

from spatis.data.config import (
    ColumnNotFoundError,
    InsufficientDataError,
    InvalidIndexKindError,
    UDParams,
)
from spatis.data.core import LocationDataset
from spatis.ud.estimation import UtilizationDistribution, estimate_ud, make_grid
from spatis.ud.overlap import OverlapMethod, ud_overlap

logger = logging.getLogger(__name__)

INDEX_KINDS = ("spatis", "spatics")


def parse_index_kinds(index: str | Iterable[str]) -> tuple[str, ...]:
    """
    Normalize requested index names.

    Case-insensitive; duplicates are dropped and the canonical order
    ('spatis', 'spatics') is kept.
    """
    if isinstance(index, str):
        index = [index]

    requested = set()
    for name in index:
        key = str(name).lower()
        if key not in INDEX_KINDS:
            raise InvalidIndexKindError(f"Unknown index: {name!r}. Use 'spatis' and/or 'spatics'.")
        requested.add(key)

    if not requested:
        raise InvalidIndexKindError("At least one index must be requested")

    return tuple(k for k in INDEX_KINDS if k in requested)


def _as_ud_params(ud_params: UDParams | dict | None) -> UDParams:
    if ud_params is None:
        return UDParams()
    if isinstance(ud_params, dict):
        return UDParams.from_kwargs(**ud_params)
    return ud_params


@dataclass(frozen=True)
class IndexResult:
    """
    Container for specialization index results.

    Attributes
    ----------
    individual : dict of str to pd.Series
        Index values per individual, keyed by index kind.
    population : dict of str to float
        Mean of the individual values, keyed by index kind.
    overlap : dict of str to pd.Series
        Raw overlap values (1 - index), keyed by index kind.
    index_kinds : tuple of str
        Kinds computed.
    method : OverlapMethod
        Overlap measure.
    population_id : str or None
        Population label as given by the caller.
    population_label : str
        Label of the population actually used.
    ud_params : UDParams or None
        UD settings (None for analytic UDs).
    individuals_col : str
        Grouping column.
    """

    individual: dict[str, pd.Series]
    population: dict[str, float]
    overlap: dict[str, pd.Series]
    index_kinds: tuple[str, ...]
    method: OverlapMethod
    population_id: str | None = None
    population_label: str = "population"
    ud_params: UDParams | None = None
    individuals_col: str = "id"
    extra: dict = field(default_factory=dict)

    @property
    def individuals(self) -> list[str]:
        return list(self.individual[self.index_kinds[0]].index)

    @property
    def params(self) -> dict:
        """Parameters used, for provenance."""
        return {
            "individuals_col": self.individuals_col,
            "population_id": self.population_id,
            "index": list(self.index_kinds),
            "method": self.method.value,
            "ud_params": None if self.ud_params is None else self.ud_params.to_dict(),
            **self.extra,
        }

    def to_frame(self) -> pd.DataFrame:
        """Individual values, one column per index kind."""
        df = pd.DataFrame({kind: self.individual[kind] for kind in self.index_kinds})
        df.index.name = self.individuals_col
        return df

    def summary(self) -> dict:
        out = {
            "n_individuals": len(self.individuals),
            "method": self.method.value,
        }
        for kind in self.index_kinds:
            values = self.individual[kind]
            out[kind] = self.population[kind]
            out[f"{kind}_min"] = float(values.min())
            out[f"{kind}_max"] = float(values.max())
        return out

    def __repr__(self) -> str:
        pops = ", ".join(f"{k}={self.population[k]:.3f}" for k in self.index_kinds)
        return f"IndexResult({self.method.value}, n={len(self.individuals)}, {pops})"


def compute_index(
    dataset: LocationDataset,
    individuals_col: str | None = None,
    population_id: str | None = None,
    index: str | Iterable[str] = INDEX_KINDS,
    method: OverlapMethod | str = "VI",
    ud_params: UDParams | dict | None = None,
    verbose: bool = True,
) -> IndexResult:
    """
    Compute SpatIS and/or SpatICS for every individual.

    Parameters
    ----------
    dataset : LocationDataset
        Locations of at least two individuals.
    individuals_col : str, optional
        Grouping column. Must match the dataset's configured column.
    population_id : str, optional
        Label of locations that represent the population. If the label is
        present in the dataset, its locations are used as the population
        (SpatIS) and as the rest set (SpatICS), and it is not treated as an
        individual. Otherwise the population is synthesized by pooling
        individuals, and named after ``population_id``.
    index : str or iterable of str
        'spatis', 'spatics' or both (case-insensitive).
    method : OverlapMethod or str
        'VI', 'HR', 'PHR', 'BA' or 'UDOI'.
    ud_params : UDParams or dict, optional
        Kernel UD settings. A dict is split by ``UDParams.from_kwargs``.
    verbose : bool
        Print a short report.

    Returns
    -------
    IndexResult

    Examples
    --------
    >>> result = compute_index(ds, index='spatis', method='VI')
    >>> result.population['spatis']
    >>> result.to_frame()
    """
    kinds = parse_index_kinds(index)
    method = OverlapMethod.parse(method)
    params = _as_ud_params(ud_params)

    col = dataset.config.individual_col
    if individuals_col is not None and individuals_col != col:
        raise ColumnNotFoundError(individuals_col, "location table")

    groups = dataset.grouped_coords()
    pop_label = str(population_id) if population_id is not None else dataset.config.population_label
    has_population = population_id is not None and pop_label in groups

    individuals = [ind for ind in groups if not (has_population and ind == pop_label)]
    if len(individuals) < 2:
        raise InsufficientDataError(f"At least 2 individuals are needed, found {len(individuals)}")

    # Check every point set before estimating anything
    small = {ind: len(groups[ind]) for ind in individuals if len(groups[ind]) < params.min_points}
    if has_population and len(groups[pop_label]) < params.min_points:
        small[pop_label] = len(groups[pop_label])
    if small:
        raise InsufficientDataError(
            f"Fewer than {params.min_points} locations for: {small}"
        )

    grid = make_grid(dataset.get_coords(), params.grid, params.extent)
    uds = {ind: estimate_ud(groups[ind], params, grid, label=ind) for ind in individuals}

    population_ud = None
    if has_population:
        population_ud = estimate_ud(groups[pop_label], params, grid, label=pop_label)

    def overlap_with(ind: str, other: UtilizationDistribution) -> float:
        return ud_overlap(uds[ind], other, method, params.percent, params.conditional)

    individual, population, overlaps = {}, {}, {}

    if "spatis" in kinds:
        if population_ud is None:
            pooled = np.vstack([groups[ind] for ind in individuals])
            target = estimate_ud(pooled, params, grid, label=pop_label)
        else:
            target = population_ud
        overlaps["spatis"] = pd.Series({ind: overlap_with(ind, target) for ind in individuals})

    if "spatics" in kinds:
        values = {}
        for ind in individuals:
            if population_ud is None:
                rest = np.vstack([groups[other] for other in individuals if other != ind])
                target = estimate_ud(rest, params, grid, label=f"{pop_label} without {ind}")
            else:
                target = population_ud
            values[ind] = overlap_with(ind, target)
        overlaps["spatics"] = pd.Series(values)

    for kind in kinds:
        ov = overlaps[kind].rename(kind)
        ov.index.name = col
        overlaps[kind] = ov
        individual[kind] = (1.0 - ov).rename(kind)
        population[kind] = float(individual[kind].mean())

    if verbose:
        report = ", ".join(f"{k}={population[k]:.3f}" for k in kinds)
        print(f"  ✓ Specialization ({method.value}): {len(individuals)} individuals, {report}")

    logger.debug(f"compute_index: grid={grid.shape}, cell={grid.cell_size:.4g}")

    return IndexResult(
        individual=individual,
        population=population,
        overlap=overlaps,
        index_kinds=kinds,
        method=method,
        population_id=None if population_id is None else str(population_id),
        population_label=pop_label,
        ud_params=params,
        individuals_col=col,
    )
