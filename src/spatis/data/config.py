"""
config.py - Configuration and error types for spatis

Contains:
- SpatisConfig: Column names of a location table
- UDParams: Kernel utilization distribution (UD) estimation settings
- SpatisError and its subclasses
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class SpatisConfig:
    """Configuration for spatis column names."""

    # Column names
    individual_col: str = "id"
    x_col: str = "x"
    y_col: str = "y"
    randomizable_col: str = "randomizable"

    # Label given to a synthesized population
    population_label: str = "population"

    def get_coordinate_columns(self) -> tuple[str, str]:
        """Return (x_column, y_column)."""
        return self.x_col, self.y_col

    def required_columns(self) -> list[str]:
        return [self.individual_col, self.x_col, self.y_col]


@dataclass(frozen=True)
class UDParams:
    """
    Settings forwarded to the kernel UD estimator.

    Attributes
    ----------
    h : str or float
        Bandwidth. 'href' (reference bandwidth), 'lscv' (least squares
        cross validation) or a positive number in map units.
    grid : int
        Number of grid nodes along each axis.
    extent : float
        Margin added around the points, as a fraction of their range.
    percent : float
        Home-range volume (0-100) used by HR, PHR, UDOI and by
        conditional overlap.
    conditional : bool
        If True, UD values outside the home range are set to zero before
        computing VI, BA or UDOI.
    min_points : int
        Minimum number of locations needed to estimate a UD.
    hlim : tuple of float
        LSCV search interval, as multiples of href.
    lscv_steps : int
        Number of candidate bandwidths tried by LSCV.
    extra : dict
        Options not recognized by this version. They are kept for
        provenance but do not change the estimate.
    """

    h: str | float = "href"
    grid: int = 60
    extent: float = 1.0
    percent: float = 95.0
    conditional: bool = False
    min_points: int = 5
    hlim: tuple[float, float] = (0.1, 1.5)
    lscv_steps: int = 100
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.h, str):
            if self.h.lower() not in ("href", "lscv"):
                raise ValidationError(f"Unknown bandwidth rule: {self.h!r}. Use 'href', 'lscv' or a number.")
            object.__setattr__(self, "h", self.h.lower())
        elif not self.h > 0:
            raise ValidationError(f"Bandwidth must be positive, got {self.h}")
        if self.grid < 2:
            raise ValidationError(f"grid must be >= 2, got {self.grid}")
        if self.extent < 0:
            raise ValidationError(f"extent must be >= 0, got {self.extent}")
        if not 0 < self.percent <= 100:
            raise ValidationError(f"percent must be in (0, 100], got {self.percent}")
        if self.min_points < 1:
            raise ValidationError(f"min_points must be >= 1, got {self.min_points}")
        lo, hi = self.hlim
        if not 0 < lo < hi:
            raise ValidationError(f"hlim must satisfy 0 < low < high, got {self.hlim}")
        if self.lscv_steps < 2:
            raise ValidationError(f"lscv_steps must be >= 2, got {self.lscv_steps}")
        object.__setattr__(self, "hlim", (float(lo), float(hi)))
        if self.extra:
            logger.warning(f"Unrecognized UD options ignored: {sorted(self.extra)}")

    @classmethod
    def from_kwargs(cls, **kwargs) -> "UDParams":
        """
        Build from keyword arguments, routing unknown keys to ``extra``.

        Examples
        --------
        >>> UDParams.from_kwargs(h="lscv", grid=100, same4all=True).extra
        {'same4all': True}
        """
        known = {f.name for f in fields(cls)} - {"extra"}
        params = {k: v for k, v in kwargs.items() if k in known}
        extra = {k: v for k, v in kwargs.items() if k not in known}
        extra.update(kwargs.get("extra", {}) or {})
        return cls(**params, extra=extra)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


class SpatisError(Exception):
    """Base exception for spatis errors."""

    pass


class ValidationError(SpatisError, ValueError):
    """Raised when input validation fails."""

    pass


class ColumnNotFoundError(ValidationError):
    """Raised when a required column is missing."""

    def __init__(self, column: str, table: str):
        self.column = column
        self.table = table
        super().__init__(f"Column '{column}' not found in {table}")


class InsufficientDataError(ValidationError):
    """Raised when a point set is too small to estimate a UD."""

    pass


class InvalidIndexKindError(ValidationError):
    """Raised on an unrecognized index name."""

    pass


class InvalidMethodError(ValidationError):
    """Raised on an unrecognized overlap method."""

    pass


class InvalidIterationCountError(ValidationError):
    """Raised when the number of randomization iterations is not >= 1."""

    pass


class DegenerateRandomizationError(ValidationError):
    """Raised when there are no locations left to shuffle."""

    pass


class DependencyError(SpatisError):
    """Raised when an underlying numerical routine fails."""

    pass
