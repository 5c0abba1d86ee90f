"""
conftest.py - Shared test fixtures for spatis

pytest reads this file before running any test. Every fixture defined
here can be requested by name from any test function.

All datasets are simulated with seeded numpy generators so that every
run sees exactly the same locations.
"""

import numpy as np
import pandas as pd
import pytest

from spatis.data.config import UDParams
from spatis.data.core import LocationDataset

# ===========================================================================
# Constants
# ===========================================================================

N_PER_INDIVIDUAL = 40  # locations per simulated individual


def _cluster(rng, center, sd, n=N_PER_INDIVIDUAL):
    """n bivariate normal locations around center."""
    return rng.normal(loc=center, scale=sd, size=(n, 2))


def _to_dataset(groups, extra_cols=None):
    """Build a LocationDataset from {individual: (n, 2) array}."""
    frames = []
    for ind, coords in groups.items():
        frames.append(pd.DataFrame({"id": ind, "x": coords[:, 0], "y": coords[:, 1]}))
    df = pd.concat(frames, ignore_index=True)
    if extra_cols:
        for col, values in extra_cols.items():
            df[col] = values
    return LocationDataset(df)


# ===========================================================================
# Fixture 1: overlapping individuals
# ===========================================================================


@pytest.fixture
def ds_clustered():
    """
    Five individuals with partly overlapping ranges.

    Centres sit on a 2x2 square plus its middle, each with SD 1, so every
    individual shares some space with the others.
    """
    rng = np.random.default_rng(42)
    centers = {"A": (0, 0), "B": (2, 0), "C": (0, 2), "D": (2, 2), "E": (1, 1)}
    return _to_dataset({ind: _cluster(rng, c, 1.0) for ind, c in centers.items()})


@pytest.fixture
def clustered_params():
    """Grid fine enough for ds_clustered (cell ~0.27, h ~0.54)."""
    return UDParams(grid=60, extent=0.5)


# ===========================================================================
# Fixture 2: individuals sharing exactly the same locations
# ===========================================================================


@pytest.fixture
def ds_identical():
    """
    Three individuals with identical point sets.

    Complete overlap: nobody is specialized.
    """
    rng = np.random.default_rng(7)
    shared = _cluster(rng, (0, 0), 1.0, n=30)
    return _to_dataset({"A": shared, "B": shared.copy(), "C": shared.copy()})


# ===========================================================================
# Fixture 3: individuals in separate, distant regions
# ===========================================================================


@pytest.fixture
def ds_disjoint():
    """
    Four individuals at the corners of a 20 x 20 square, SD 1.

    No overlap between individuals: maximal specialization.
    """
    rng = np.random.default_rng(3)
    centers = {"A": (0, 0), "B": (20, 0), "C": (0, 20), "D": (20, 20)}
    return _to_dataset({ind: _cluster(rng, c, 1.0) for ind, c in centers.items()})


@pytest.fixture
def disjoint_params():
    """Grid fine enough for ds_disjoint (cell ~0.37, h ~0.54)."""
    return UDParams(grid=100, extent=0.2)


# ===========================================================================
# Fixture 4: shared roost that must never be shuffled
# ===========================================================================


@pytest.fixture
def ds_with_roost():
    """
    Same layout as ds_clustered, plus a 'roost' column.

    The first 5 locations of every individual are at a shared roost
    (10, 10) and flagged roost=True.
    """
    rng = np.random.default_rng(11)
    centers = {"A": (0, 0), "B": (3, 0), "C": (0, 3), "D": (3, 3)}
    groups, roost = {}, []
    for ind, c in centers.items():
        coords = _cluster(rng, c, 1.0, n=30)
        coords[:5] = (10.0, 10.0) + rng.normal(0, 0.1, size=(5, 2))
        groups[ind] = coords
        roost.extend([True] * 5 + [False] * 25)
    return _to_dataset(groups, extra_cols={"roost": roost})
