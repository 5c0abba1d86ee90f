"""
ud - Kernel utilization distributions and their overlap

Modules
-------
- estimation: grid construction, bandwidth selection (href, LSCV) and
  kernel UD estimation
- overlap: VI, HR, PHR, BA and UDOI overlap measures

Examples
--------
>>> from spatis.ud import make_grid, estimate_ud, ud_overlap
>>>
>>> grid = make_grid(all_coords, grid=60, extent=1.0)
>>> ud_a = estimate_ud(coords_a, grid=grid, label='a')
>>> ud_b = estimate_ud(coords_b, grid=grid, label='b')
>>> ud_overlap(ud_a, ud_b, method='VI')
"""

from .estimation import (
    UDGrid,
    UtilizationDistribution,
    make_grid,
    href,
    lscv_bandwidth,
    estimate_ud,
)

from .overlap import (
    OverlapMethod,
    ud_overlap,
    kernel_overlap,
)

__all__ = [
    # Classes
    'UDGrid',
    'UtilizationDistribution',
    'OverlapMethod',

    # Estimation
    'make_grid',
    'href',
    'lscv_bandwidth',
    'estimate_ud',

    # Overlap
    'ud_overlap',
    'kernel_overlap',
]
