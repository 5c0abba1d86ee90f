"""
randomization.py - Randomization test for spatial specialization

Locations are reassigned among individuals (permutation or bootstrap),
the indices are recomputed on every randomized dataset, and the observed
individual values are compared with the randomized population values.

Each iteration draws from its own child generator, spawned from the
caller's generator, so results do not depend on ``n_jobs``.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from spatis.data.config import (
    DegenerateRandomizationError,
    InvalidIndexKindError,
    InvalidIterationCountError,
    UDParams,
    ValidationError,
)
from spatis.data.core import LocationDataset
from spatis.ud.overlap import OverlapMethod

from .index import IndexResult, compute_index, parse_index_kinds
from .power import (
    ALTERNATIVES,
    MIN_SECOND_SAMPLE,
    TESTS,
    LocationTestResult,
    PowerResult,
    location_test,
    power_analysis,
)

logger = logging.getLogger(__name__)

DEFAULT_POWER_SIZES = (5, 10, 15, 20, 30, 50, 100)


def _ensure_rng(
    rng: np.random.Generator | int | None,
) -> np.random.Generator:
    """Convert rng parameter to a Generator instance."""
    if rng is None:
        return np.random.default_rng()
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def randomize_labels(labels: np.ndarray,
                     fixed: np.ndarray,
                     bootstrap: bool = False,
                     rng: np.random.Generator | int | None = None) -> np.ndarray:
    """
    Reassign the individual label of every free location.

    Parameters
    ----------
    labels : np.ndarray
        Individual label of each location.
    fixed : np.ndarray of bool
        Locations that keep their label.
    bootstrap : bool
        If True, free labels are drawn with replacement; otherwise they
        are permuted, which keeps the number of locations per individual.
    rng : np.random.Generator | int | None
        Random number generator or seed.

    Returns
    -------
    np.ndarray
        New labels; fixed positions are unchanged.
    """
    generator = _ensure_rng(rng)
    labels = np.asarray(labels)
    free = ~np.asarray(fixed, dtype=bool)

    new = labels.copy()
    pool = labels[free]
    if bootstrap:
        new[free] = generator.choice(pool, size=len(pool), replace=True)
    else:
        new[free] = generator.permutation(pool)
    return new


def generate_randomized_datasets(
    dataset: LocationDataset,
    fixed: np.ndarray,
    *,
    iterations: int = 99,
    bootstrap: bool = False,
    rng: np.random.Generator | int | None = None,
) -> Iterator[LocationDataset]:
    """
    Yield randomized copies of a dataset, one per iteration.

    Iteration ``k`` uses the k-th child of ``rng``, so the sequence matches
    the draws made by ``randomize_indices`` with the same generator state.

    Examples
    --------
    >>> fixed = ds.fixed_mask()
    >>> for shuffled in generate_randomized_datasets(ds, fixed, iterations=3, rng=42):
    ...     print(shuffled.counts().tolist())
    """
    children = _ensure_rng(rng).spawn(iterations)
    labels = dataset.labels
    for child in children:
        yield dataset.relabel(randomize_labels(labels, fixed, bootstrap, child))


@dataclass(frozen=True)
class RandomizationResult:
    """
    Container for a randomization test of one index.

    Attributes
    ----------
    index_kind : str
        'spatis' or 'spatics'.
    observed_individual : pd.Series
        Observed individual index values.
    observed_population : float
        Observed population index value.
    randomized : np.ndarray
        Population index value of each randomized dataset
        (length ``iterations``).
    randomized_individual : pd.DataFrame or None
        Individual values per iteration (rows), if requested.
    test : LocationTestResult
        Observed individual values vs randomized population values.
    empirical_pvalue : float
        Rank-based p-value of the observed population value.
    power : PowerResult
        Power estimate and curve.
    alpha : float
        Significance threshold.
    iterations : int
        Number of randomized datasets.
    bootstrap : bool
        Whether labels were drawn with replacement.
    """

    index_kind: str
    observed_individual: pd.Series
    observed_population: float
    randomized: np.ndarray
    randomized_individual: Optional[pd.DataFrame]
    test: LocationTestResult
    empirical_pvalue: float
    power: PowerResult
    alpha: float
    iterations: int
    bootstrap: bool

    @property
    def expected(self) -> float:
        """Mean of the randomized population values."""
        return float(self.randomized.mean())

    @property
    def significant(self) -> bool:
        return self.test.significant(self.alpha)

    def summary(self) -> dict:
        return {
            'index': self.index_kind,
            'observed': self.observed_population,
            'expected': self.expected,
            'statistic': self.test.statistic,
            'pvalue': self.test.pvalue,
            'empirical_pvalue': self.empirical_pvalue,
            'effect_size': self.power.effect_size,
            'power': self.power.power,
            'alpha': self.alpha,
            'iterations': self.iterations,
            'bootstrap': self.bootstrap,
            'significant': self.significant,
        }

    def __repr__(self) -> str:
        return (
            f"RandomizationResult({self.index_kind}, "
            f"observed={self.observed_population:.3f}, "
            f"expected={self.expected:.3f}, p={self.test.pvalue:.4g}, "
            f"power={self.power.power:.2f})"
        )


def _empirical_pvalue(observed: float, null_dist: np.ndarray, alternative: str) -> float:
    if alternative == 'greater':
        extreme = np.sum(null_dist >= observed)
    elif alternative == 'less':
        extreme = np.sum(null_dist <= observed)
    else:
        null_mean = null_dist.mean()
        extreme = np.sum(np.abs(null_dist - null_mean) >= np.abs(observed - null_mean))
    return float((extreme + 1) / (len(null_dist) + 1))


def _check_iterations(iterations) -> int:
    if isinstance(iterations, bool) or not isinstance(iterations, (int, np.integer)):
        raise InvalidIterationCountError(f"iterations must be an integer, got {iterations!r}")
    if iterations < 1:
        raise InvalidIterationCountError(f"iterations must be >= 1, got {iterations}")
    return int(iterations)


def _run_iterations(task, children: List[np.random.Generator], n_jobs: int) -> List[IndexResult]:
    if n_jobs == 1:
        return [task(k, child) for k, child in enumerate(children)]

    executor = ThreadPoolExecutor(max_workers=n_jobs)
    futures = [executor.submit(task, k, child) for k, child in enumerate(children)]
    try:
        results = [f.result() for f in futures]
    except BaseException:
        # A failed iteration invalidates the whole run
        executor.shutdown(wait=True, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    return results


def randomize_indices(
    dataset: LocationDataset,
    observed: IndexResult,
    iterations: int = 99,
    bootstrap: bool = False,
    alpha: float = 0.05,
    not_randomize_col: Optional[str] = None,
    not_randomize_val=None,
    index: Optional[Union[str, Iterable[str]]] = None,
    method: Optional[Union[OverlapMethod, str]] = None,
    ud_params: Optional[Union[UDParams, dict]] = None,
    rng: np.random.Generator | int | None = None,
    n_jobs: int = 1,
    keep_individual: bool = False,
    test: str = 'welch',
    alternative: str = 'greater',
    power_sizes: Sequence[int] = DEFAULT_POWER_SIZES,
    verbose: bool = True,
) -> Dict[str, RandomizationResult]:
    """
    Randomization test for several indices sharing the same draws.

    Parameters
    ----------
    dataset : LocationDataset
        Dataset the observed result was computed on.
    observed : IndexResult
        Result of ``compute_index`` on ``dataset``.
    iterations : int
        Number of randomized datasets (>= 1). The t-tests need at least 2; a
        single iteration is only accepted with test='mannwhitney'.
    bootstrap : bool
        If True, reassign labels with replacement (bootstrap); otherwise
        permute them (group sizes are kept).
    alpha : float
        Significance threshold for the test and the power analysis.
    not_randomize_col : str, optional
        Column flagging locations that are never reassigned.
    not_randomize_val : any
        Value of ``not_randomize_col`` marking those locations.
    index : str or iterable, optional
        Indices to test. Defaults to those in ``observed``.
    method : OverlapMethod or str, optional
        Defaults to ``observed.method``.
    ud_params : UDParams or dict, optional
        Defaults to ``observed.ud_params``.
    rng : np.random.Generator | int | None
        Random number generator or seed.
    n_jobs : int
        Number of worker threads for the iterations.
    keep_individual : bool
        Keep the individual values of every iteration.
    test : str
        'welch', 'student' or 'mannwhitney'.
    alternative : str
        'greater' (individuals more specialized than random), 'less' or
        'two-sided'.
    power_sizes : sequence of int
        Numbers of individuals for the power curve.
    verbose : bool
        Print a short report.

    Returns
    -------
    dict of str to RandomizationResult
    """
    iterations = _check_iterations(iterations)
    if not 0 < alpha < 1:
        raise ValidationError(f"alpha must be in (0, 1), got {alpha}")
    if test not in TESTS:
        raise ValidationError(f"Unknown test: {test}. Use one of {TESTS}.")
    if iterations < MIN_SECOND_SAMPLE[test]:
        raise InvalidIterationCountError(
            f"The {test} test needs at least {MIN_SECOND_SAMPLE[test]} randomized values, "
            f"got iterations={iterations}. Increase iterations or use test='mannwhitney'."
        )
    if alternative not in ALTERNATIVES:
        raise ValidationError(
            f"Unknown alternative: {alternative}. Use 'two-sided', 'greater', or 'less'."
        )
    if n_jobs < 1:
        raise ValidationError(f"n_jobs must be >= 1, got {n_jobs}")

    kinds = observed.index_kinds if index is None else parse_index_kinds(index)
    missing = [k for k in kinds if k not in observed.index_kinds]
    if missing:
        raise InvalidIndexKindError(f"Observed result has no values for {missing}")

    method = observed.method if method is None else OverlapMethod.parse(method)
    if ud_params is None:
        ud_params = observed.ud_params
    population_id = observed.population_id

    labels = dataset.labels
    fixed = dataset.fixed_mask(not_randomize_col, not_randomize_val)
    if population_id is not None:
        # An explicit population is the reference, never a shuffled group
        fixed = fixed | (labels == population_id)
    if fixed.all():
        raise DegenerateRandomizationError("No locations are free to be randomized")

    children = _ensure_rng(rng).spawn(iterations)

    def run_one(k: int, child: np.random.Generator) -> IndexResult:
        shuffled = dataset.relabel(randomize_labels(labels, fixed, bootstrap, child))
        result = compute_index(
            shuffled,
            population_id=population_id,
            index=kinds,
            method=method,
            ud_params=ud_params,
            verbose=False,
        )
        logger.debug(f"Iteration {k + 1}/{iterations}: {result.population}")
        return result

    if verbose:
        kind = "bootstrap" if bootstrap else "permutation"
        print(f"  Running {iterations} {kind} randomizations...")

    results = _run_iterations(run_one, children, n_jobs)

    out = {}
    for kind in kinds:
        randomized = np.array([r.population[kind] for r in results])
        obs_ind = observed.individual[kind]
        obs_pop = observed.population[kind]

        randomized_individual = None
        if keep_individual:
            randomized_individual = pd.DataFrame(
                [r.individual[kind] for r in results],
                index=pd.RangeIndex(1, iterations + 1, name='iteration'),
            )

        test_result = location_test(obs_ind.to_numpy(), randomized, test, alternative)
        power = power_analysis(obs_ind.to_numpy(), randomized, alpha, alternative, power_sizes)

        res = RandomizationResult(
            index_kind=kind,
            observed_individual=obs_ind,
            observed_population=obs_pop,
            randomized=randomized,
            randomized_individual=randomized_individual,
            test=test_result,
            empirical_pvalue=_empirical_pvalue(obs_pop, randomized, alternative),
            power=power,
            alpha=alpha,
            iterations=iterations,
            bootstrap=bootstrap,
        )
        out[kind] = res

        if verbose:
            sig = "significant" if res.significant else "not significant"
            print(f"  ✓ Randomization test ({kind}, {alternative}):")
            print(f"    observed={obs_pop:.4f}, expected={res.expected:.4f}")
            print(f"    stat={test_result.statistic:.2f}, p={test_result.pvalue:.4g} ({sig}), "
                  f"power={power.power:.2f}")

    return out


def randomize(
    dataset: LocationDataset,
    observed: IndexResult,
    iterations: int = 99,
    bootstrap: bool = False,
    alpha: float = 0.05,
    not_randomize_col: Optional[str] = None,
    not_randomize_val=None,
    index: str = 'spatis',
    method: Optional[Union[OverlapMethod, str]] = None,
    ud_params: Optional[Union[UDParams, dict]] = None,
    rng: np.random.Generator | int | None = None,
    n_jobs: int = 1,
    keep_individual: bool = False,
    test: str = 'welch',
    alternative: str = 'greater',
    power_sizes: Sequence[int] = DEFAULT_POWER_SIZES,
    verbose: bool = True,
) -> RandomizationResult:
    """
    Randomization test for a single index.

    See ``randomize_indices`` for the parameters.

    Examples
    --------
    >>> observed = compute_index(ds, index='spatis')
    >>> res = randomize(ds, observed, iterations=99, rng=42)
    >>> res.test.pvalue, res.power.power
    """
    kind = parse_index_kinds(index)
    if len(kind) != 1:
        raise InvalidIndexKindError("randomize tests one index; use randomize_indices for several")

    return randomize_indices(
        dataset,
        observed,
        iterations=iterations,
        bootstrap=bootstrap,
        alpha=alpha,
        not_randomize_col=not_randomize_col,
        not_randomize_val=not_randomize_val,
        index=kind,
        method=method,
        ud_params=ud_params,
        rng=rng,
        n_jobs=n_jobs,
        keep_individual=keep_individual,
        test=test,
        alternative=alternative,
        power_sizes=power_sizes,
        verbose=verbose,
    )[kind[0]]
