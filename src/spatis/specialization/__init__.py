"""
specialization - Spatial individual specialization indices

Modules
-------
- index: SpatIS / SpatICS from kernel UDs
- randomization: randomization (permutation or bootstrap) test
- power: two-sample location tests and power analysis
- gaussian: 1D Gaussian UD illustration

Quick Start
-----------
>>> import spatis
>>>
>>> ds = spatis.read_locations('locations.csv')
>>> observed = spatis.compute_index(ds, index=['spatis', 'spatics'], method='VI')
>>> observed.to_frame()
>>>
>>> # Are individuals more specialized than expected at random?
>>> res = spatis.randomize(ds, observed, iterations=99, index='spatis', rng=42)
>>> res.test.pvalue, res.power.power
>>> res.power.curve

Holding shared locations fixed (e.g. a roost) while shuffling the rest:

>>> res = spatis.randomize(
...     ds, observed, iterations=99,
...     not_randomize_col='roost', not_randomize_val=True,
... )
"""

from .index import (
    INDEX_KINDS,
    IndexResult,
    compute_index,
    parse_index_kinds,
)

from .randomization import (
    DEFAULT_POWER_SIZES,
    RandomizationResult,
    randomize,
    randomize_indices,
    randomize_labels,
    generate_randomized_datasets,
)

from .power import (
    LocationTestResult,
    PowerResult,
    location_test,
    cohens_d,
    estimate_power,
    power_curve,
    power_analysis,
)

from .gaussian import (
    GaussianUD,
    mixture_pdf,
    overlap_1d,
    gaussian_specialization,
)

__all__ = [
    # Classes
    'IndexResult',
    'RandomizationResult',
    'LocationTestResult',
    'PowerResult',
    'GaussianUD',

    # Indices
    'INDEX_KINDS',
    'compute_index',
    'parse_index_kinds',

    # Randomization
    'DEFAULT_POWER_SIZES',
    'randomize',
    'randomize_indices',
    'randomize_labels',
    'generate_randomized_datasets',

    # Tests and power
    'location_test',
    'cohens_d',
    'estimate_power',
    'power_curve',
    'power_analysis',

    # 1D illustration
    'mixture_pdf',
    'overlap_1d',
    'gaussian_specialization',
]
