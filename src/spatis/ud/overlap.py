"""
overlap.py - Overlap between utilization distributions

Five overlap measures (Fieberg & Kochanny 2005):

VI    Volume of intersection, integral of min(UD_a, UD_b)
HR    Proportion of the home range of a covered by the home range of b
PHR   Probability that a is found inside the home range of b
BA    Bhattacharyya's affinity, integral of sqrt(UD_a * UD_b)
UDOI  UD overlap index, area(HR_a & HR_b) * integral of UD_a * UD_b

HR and PHR are directional: ``a`` is the focal individual.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

import numpy as np
import pandas as pd

from spatis.data.config import InvalidMethodError, ValidationError

from .estimation import UtilizationDistribution


class OverlapMethod(str, Enum):
    VI = "VI"
    HR = "HR"
    PHR = "PHR"
    BA = "BA"
    UDOI = "UDOI"

    @classmethod
    def parse(cls, value: "OverlapMethod | str") -> "OverlapMethod":
        """Case-insensitive lookup."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidMethodError(
                f"Unknown overlap method: {value!r}. " f"Use one of {[m.value for m in cls]}."
            ) from None


def ud_overlap(
    ud_a: UtilizationDistribution,
    ud_b: UtilizationDistribution,
    method: OverlapMethod | str = OverlapMethod.VI,
    percent: float = 95.0,
    conditional: bool = False,
) -> float:
    """
    Overlap of two UDs on the same grid.

    Parameters
    ----------
    ud_a : UtilizationDistribution
        Focal UD.
    ud_b : UtilizationDistribution
        Reference UD.
    method : OverlapMethod or str
        'VI', 'HR', 'PHR', 'BA' or 'UDOI'.
    percent : float
        Home-range volume used by HR, PHR, UDOI and conditional overlap.
    conditional : bool
        If True, set UD values outside the home ranges to zero before
        computing VI, BA or UDOI.

    Returns
    -------
    float
        Overlap value, not clamped.
    """
    method = OverlapMethod.parse(method)
    if not ud_a.grid.same_as(ud_b.grid):
        raise ValidationError("UDs must be estimated on the same grid to be compared")

    cell_area = ud_a.grid.cell_area
    fa, fb = ud_a.density, ud_b.density

    if method in (OverlapMethod.HR, OverlapMethod.PHR, OverlapMethod.UDOI) or conditional:
        hr_a = ud_a.home_range_mask(percent)
        hr_b = ud_b.home_range_mask(percent)

    if conditional and method in (OverlapMethod.VI, OverlapMethod.BA, OverlapMethod.UDOI):
        fa = np.where(hr_a, fa, 0.0)
        fb = np.where(hr_b, fb, 0.0)

    if method is OverlapMethod.VI:
        return float(np.minimum(fa, fb).sum() * cell_area)

    if method is OverlapMethod.BA:
        return float(np.sqrt(fa * fb).sum() * cell_area)

    if method is OverlapMethod.HR:
        area_a = hr_a.sum()
        return float((hr_a & hr_b).sum() / area_a)

    if method is OverlapMethod.PHR:
        return float(fa[hr_b].sum() * cell_area)

    # UDOI
    shared_area = (hr_a & hr_b).sum() * cell_area
    return float(shared_area * (fa * fb).sum() * cell_area)


def kernel_overlap(
    uds: Mapping[str, UtilizationDistribution],
    method: OverlapMethod | str = OverlapMethod.VI,
    percent: float = 95.0,
    conditional: bool = False,
) -> pd.DataFrame:
    """
    Pairwise overlap matrix.

    Entry (i, j) is ``ud_overlap(uds[i], uds[j])``.

    Parameters
    ----------
    uds : mapping of str to UtilizationDistribution
        UDs on a common grid.
    method, percent, conditional
        See ``ud_overlap``.

    Returns
    -------
    pd.DataFrame (n x n)
    """
    method = OverlapMethod.parse(method)
    labels = list(uds)
    n = len(labels)

    matrix = np.empty((n, n))
    for i, a in enumerate(labels):
        for j, b in enumerate(labels):
            matrix[i, j] = ud_overlap(uds[a], uds[b], method, percent, conditional)

    return pd.DataFrame(matrix, index=labels, columns=labels)
