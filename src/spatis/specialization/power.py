"""
power.py - Two-sample location tests and power analysis

Used by the randomization test to compare observed individual index
values with the population values obtained from randomized data.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.stats.power import TTestIndPower

from spatis.data.config import DependencyError, ValidationError

TESTS = ('welch', 'student', 'mannwhitney')
ALTERNATIVES = ('greater', 'less', 'two-sided')

# Smallest second sample each test is defined for
MIN_SECOND_SAMPLE = {'welch': 2, 'student': 2, 'mannwhitney': 1}

# statsmodels names the one-sided alternatives differently
_POWER_ALTERNATIVE = {'greater': 'larger', 'less': 'smaller', 'two-sided': 'two-sided'}


@dataclass(frozen=True)
class LocationTestResult:
    """Outcome of a two-sample location test."""

    statistic: float
    pvalue: float
    test: str
    alternative: str

    def significant(self, alpha: float = 0.05) -> bool:
        return self.pvalue < alpha


@dataclass(frozen=True)
class PowerResult:
    """
    Power of the two-sample t-test for an observed effect.

    Attributes
    ----------
    effect_size : float
        Cohen's d between the two samples.
    power : float
        Probability of rejecting the null hypothesis at ``alpha``.
    alpha : float
        Significance threshold.
    nobs1, nobs2 : int
        Sample sizes used.
    curve : pd.DataFrame
        Columns 'n' and 'power': power for other numbers of individuals,
        holding ``nobs2`` fixed.
    """

    effect_size: float
    power: float
    alpha: float
    nobs1: int
    nobs2: int
    curve: pd.DataFrame


def _check_alternative(alternative: str) -> None:
    if alternative not in ALTERNATIVES:
        raise ValidationError(
            f"Unknown alternative: {alternative}. "
            "Use 'two-sided', 'greater', or 'less'."
        )


def location_test(sample_a: Sequence[float],
                  sample_b: Sequence[float],
                  test: str = 'welch',
                  alternative: str = 'greater') -> LocationTestResult:
    """
    Compare the location of two samples.

    Parameters
    ----------
    sample_a : array-like
        First sample (e.g. observed individual values).
    sample_b : array-like
        Second sample (e.g. randomized population values).
    test : str
        'welch' (t-test, unequal variances), 'student' (t-test, pooled
        variance) or 'mannwhitney' (rank test).
    alternative : str
        'greater' tests whether ``sample_a`` is shifted above ``sample_b``.

    Returns
    -------
    LocationTestResult
    """
    _check_alternative(alternative)
    if test not in TESTS:
        raise ValidationError(f"Unknown test: {test}. Use one of {TESTS}.")
    a = np.asarray(sample_a, dtype=float)
    b = np.asarray(sample_b, dtype=float)

    try:
        if test == 'mannwhitney':
            res = stats.mannwhitneyu(a, b, alternative=alternative)
        else:
            res = stats.ttest_ind(a, b, equal_var=(test == 'student'), alternative=alternative)
    except (ValueError, FloatingPointError) as exc:
        raise DependencyError(f"{test} test failed: {exc}") from exc

    if np.isnan(res.pvalue):
        raise DependencyError(
            f"{test} test is undefined for these samples (zero variance?)"
        )

    return LocationTestResult(
        statistic=float(res.statistic),
        pvalue=float(res.pvalue),
        test=test,
        alternative=alternative,
    )


def cohens_d(sample_a: Sequence[float], sample_b: Sequence[float]) -> float:
    """
    Standardized mean difference with pooled standard deviation.

    d = (mean(a) - mean(b)) / s_pooled
    """
    a = np.asarray(sample_a, dtype=float)
    b = np.asarray(sample_b, dtype=float)
    n1, n2 = len(a), len(b)
    if n1 + n2 < 3:
        raise DependencyError("Effect size needs at least 3 observations in total")

    pooled_var = ((n1 - 1) * a.var(ddof=1 if n1 > 1 else 0)
                  + (n2 - 1) * b.var(ddof=1 if n2 > 1 else 0)) / (n1 + n2 - 2)
    if pooled_var == 0:
        raise DependencyError("Pooled variance is zero; effect size is undefined")

    return float((a.mean() - b.mean()) / np.sqrt(pooled_var))


def estimate_power(effect_size: float,
                   nobs1: int,
                   ratio: float = 1.0,
                   alpha: float = 0.05,
                   alternative: str = 'greater') -> float:
    """
    Power of the two-sample t-test.

    Parameters
    ----------
    effect_size : float
        Cohen's d.
    nobs1 : int
        Size of the first sample.
    ratio : float
        nobs2 / nobs1.
    alpha : float
        Significance threshold.
    alternative : str
        'greater', 'less' or 'two-sided'.
    """
    _check_alternative(alternative)
    try:
        power = TTestIndPower().power(
            effect_size=effect_size,
            nobs1=nobs1,
            alpha=alpha,
            ratio=ratio,
            alternative=_POWER_ALTERNATIVE[alternative],
        )
    except (ValueError, FloatingPointError) as exc:
        raise DependencyError(f"Power analysis failed: {exc}") from exc
    return float(power)


def power_curve(effect_size: float,
                sizes: Sequence[int],
                nobs2: int,
                alpha: float = 0.05,
                alternative: str = 'greater') -> pd.DataFrame:
    """
    Power as a function of the number of individuals.

    The second sample size is held at ``nobs2``.

    Returns
    -------
    pd.DataFrame with columns 'n' and 'power'
    """
    sizes = [int(n) for n in sizes]
    if any(n < 2 for n in sizes):
        raise ValidationError(f"Sample sizes must be >= 2, got {sizes}")

    powers = [
        estimate_power(effect_size, n, ratio=nobs2 / n, alpha=alpha, alternative=alternative)
        for n in sizes
    ]
    return pd.DataFrame({'n': sizes, 'power': powers})


def power_analysis(sample_a: Sequence[float],
                   sample_b: Sequence[float],
                   alpha: float = 0.05,
                   alternative: str = 'greater',
                   sizes: Sequence[int] = (5, 10, 15, 20, 30, 50, 100)) -> PowerResult:
    """
    Power for the effect observed between two samples.

    Parameters
    ----------
    sample_a, sample_b : array-like
        Samples compared by the location test.
    alpha : float
        Significance threshold.
    alternative : str
        Direction of the test.
    sizes : sequence of int
        First-sample sizes for the power curve.

    Returns
    -------
    PowerResult
    """
    n1, n2 = len(sample_a), len(sample_b)
    d = cohens_d(sample_a, sample_b)

    return PowerResult(
        effect_size=d,
        power=estimate_power(d, n1, ratio=n2 / n1, alpha=alpha, alternative=alternative),
        alpha=alpha,
        nobs1=n1,
        nobs2=n2,
        curve=power_curve(d, sizes, n2, alpha=alpha, alternative=alternative),
    )
