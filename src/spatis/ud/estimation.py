"""
estimation.py - Kernel utilization distributions on a regular grid

Bivariate normal kernel density estimates of animal space use,
evaluated at the nodes of a square grid and scaled to unit volume.
UDs that are compared with each other must share the same grid; build
it once with ``make_grid`` from every location involved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy.spatial.distance import pdist

from spatis.data.config import InsufficientDataError, UDParams, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UDGrid:
    """
    Square-cell grid on which UDs are evaluated.

    Attributes
    ----------
    x : np.ndarray
        Node x coordinates (increasing).
    y : np.ndarray
        Node y coordinates (increasing).
    cell_size : float
        Side length of a grid cell.
    """

    x: np.ndarray
    y: np.ndarray
    cell_size: float

    @property
    def cell_area(self) -> float:
        return self.cell_size**2

    @property
    def shape(self) -> tuple[int, int]:
        """(n_y, n_x), matching the density arrays."""
        return len(self.y), len(self.x)

    def same_as(self, other: UDGrid) -> bool:
        return (
            self.shape == other.shape
            and np.isclose(self.cell_size, other.cell_size)
            and np.allclose(self.x, other.x)
            and np.allclose(self.y, other.y)
        )


def make_grid(coords: np.ndarray, grid: int = 60, extent: float = 1.0) -> UDGrid:
    """
    Build a square grid around a point set.

    The grid is centred on the bounding box of ``coords`` and spans its
    longest side enlarged by ``extent`` times that side on each end.

    Parameters
    ----------
    coords : np.ndarray (n, 2)
        Locations the grid must cover.
    grid : int
        Number of nodes along each axis.
    extent : float
        Relative margin around the points.

    Returns
    -------
    UDGrid
    """
    coords = _as_coords(coords)
    xmin, ymin = coords.min(axis=0)
    xmax, ymax = coords.max(axis=0)

    side = max(xmax - xmin, ymax - ymin)
    if side == 0:
        # All locations coincide; any positive width works
        side = 1.0

    half = 0.5 * side * (1 + 2 * extent)
    cx, cy = 0.5 * (xmin + xmax), 0.5 * (ymin + ymax)

    x = np.linspace(cx - half, cx + half, grid)
    y = np.linspace(cy - half, cy + half, grid)

    return UDGrid(x=x, y=y, cell_size=float(x[1] - x[0]))


def href(coords: np.ndarray) -> float:
    """
    Reference bandwidth for a bivariate normal kernel.

    h = sqrt(0.5 * (var(x) + var(y))) * n^(-1/6)
    """
    coords = _as_coords(coords)
    n = len(coords)
    if n < 2:
        raise InsufficientDataError("href needs at least 2 locations")

    sigma = np.sqrt(0.5 * (np.var(coords[:, 0], ddof=1) + np.var(coords[:, 1], ddof=1)))
    if sigma == 0:
        raise InsufficientDataError("All locations are identical; reference bandwidth is zero")

    return float(sigma * n ** (-1.0 / 6.0))


def lscv_bandwidth(
    coords: np.ndarray,
    hlim: tuple[float, float] = (0.1, 1.5),
    n_steps: int = 100,
) -> float:
    """
    Least squares cross validation bandwidth.

    Grid search over ``[hlim[0] * href, hlim[1] * href]`` minimising the
    LSCV score of a bivariate normal kernel (Seaman & Powell 1996).

    Parameters
    ----------
    coords : np.ndarray (n, 2)
        Locations.
    hlim : tuple of float
        Search range as multiples of href.
    n_steps : int
        Number of candidate bandwidths.

    Returns
    -------
    float
    """
    coords = _as_coords(coords)
    n = len(coords)
    h_ref = href(coords)

    candidates = np.linspace(hlim[0] * h_ref, hlim[1] * h_ref, n_steps)
    d2 = pdist(coords, metric="sqeuclidean")

    scores = np.array([_lscv_score(h, d2, n) for h in candidates])
    best = int(np.argmin(scores))

    if best in (0, n_steps - 1):
        logger.warning(
            f"LSCV minimum at the boundary of hlim={hlim} "
            f"(h={candidates[best]:.4g}); consider widening hlim"
        )

    return float(candidates[best])


def _lscv_score(h: float, d2: np.ndarray, n: int) -> float:
    """LSCV(h) = integral of f_hat^2 - 2/n * sum of leave-one-out f_hat(x_i)."""
    h2 = h * h
    # Each unordered pair appears twice in the double sums
    integral = (n + 2 * np.exp(-d2 / (4 * h2)).sum()) / (4 * np.pi * h2 * n**2)
    loo = 4 * np.exp(-d2 / (2 * h2)).sum() / (2 * np.pi * h2 * n * (n - 1))
    return float(integral - loo)


@dataclass(frozen=True)
class UtilizationDistribution:
    """
    Kernel UD evaluated on a grid.

    Attributes
    ----------
    density : np.ndarray (n_y, n_x)
        Density at grid nodes; ``density.sum() * grid.cell_area == 1``.
    grid : UDGrid
        Evaluation grid.
    h : float
        Bandwidth used.
    n_points : int
        Number of locations.
    label : str
        Individual (or population) the UD belongs to.
    """

    density: np.ndarray
    grid: UDGrid
    h: float
    n_points: int
    label: str = ""

    def volume(self) -> float:
        return float(self.density.sum() * self.grid.cell_area)

    def home_range_mask(self, percent: float = 95.0) -> np.ndarray:
        """
        Cells inside the ``percent`` volume contour.

        Cells are ranked by density; a cell belongs to the home range when
        the volume of all denser cells is below ``percent``.
        """
        flat = self.density.ravel()
        order = np.argsort(flat)[::-1]
        mass = flat[order] * self.grid.cell_area
        before = np.cumsum(mass) - mass

        inside = np.zeros(flat.shape, dtype=bool)
        inside[order] = before < percent / 100.0
        return inside.reshape(self.density.shape)

    def home_range_area(self, percent: float = 95.0) -> float:
        return float(self.home_range_mask(percent).sum() * self.grid.cell_area)

    def __repr__(self) -> str:
        return (
            f"UtilizationDistribution(label={self.label!r}, n={self.n_points}, "
            f"h={self.h:.3g}, grid={self.grid.shape})"
        )


def estimate_ud(
    coords: np.ndarray,
    params: UDParams | None = None,
    grid: UDGrid | None = None,
    label: str = "",
) -> UtilizationDistribution:
    """
    Estimate a kernel UD.

    Parameters
    ----------
    coords : np.ndarray (n, 2)
        Locations of one individual (or pooled individuals).
    params : UDParams, optional
        Bandwidth and grid settings.
    grid : UDGrid, optional
        Evaluation grid. If None, one is built around ``coords``.
    label : str
        Name stored on the result.

    Returns
    -------
    UtilizationDistribution
    """
    params = params or UDParams()
    coords = _as_coords(coords)
    n = len(coords)

    if n < params.min_points:
        raise InsufficientDataError(
            f"'{label}' has {n} locations; at least {params.min_points} are needed to estimate a UD"
        )

    if grid is None:
        grid = make_grid(coords, params.grid, params.extent)

    if params.h == "href":
        h = href(coords)
    elif params.h == "lscv":
        h = lscv_bandwidth(coords, params.hlim, params.lscv_steps)
    else:
        h = float(params.h)

    # The Gaussian kernel is separable: K(x, y) = Kx(x) * Ky(y)
    kx = np.exp(-((grid.x[np.newaxis, :] - coords[:, [0]]) ** 2) / (2 * h * h))
    ky = np.exp(-((grid.y[np.newaxis, :] - coords[:, [1]]) ** 2) / (2 * h * h))
    density = ky.T @ kx / (n * 2 * np.pi * h * h)

    volume = density.sum() * grid.cell_area
    if not volume > 0:
        raise InsufficientDataError(
            f"UD of '{label}' has no mass on the grid (h={h:.3g}, cell={grid.cell_size:.3g})"
        )
    density /= volume

    logger.debug(f"UD '{label}': n={n}, h={h:.4g}, raw volume={volume:.4f}")

    return UtilizationDistribution(density=density, grid=grid, h=h, n_points=n, label=label)


def _as_coords(coords) -> np.ndarray:
    coords = np.asarray(coords, dtype=np.float64)
    if coords.ndim != 2 or coords.shape[1] != 2:
        raise ValidationError(f"Expected coordinates of shape (n, 2), got {coords.shape}")
    if len(coords) == 0:
        raise InsufficientDataError("No locations given")
    return coords
