from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping

import numpy as np

logger = logging.getLogger(__name__)

# Minimum number of reads in a smoothing window (~5% shot noise).
MIN_COUNT = 400.0


@dataclass(frozen=True, eq=False)
class ExpectedDensity:
    """Result of finalizing an accumulator.

    Attributes:
        normalization: opaque tag of the observed matrix type (e.g. "NONE", "KR")
        grid_size: bin width in bp (or fragments when is_frag)
        density: (max_num_bins,) smoothed expected density per distance, read-only
        scale_factors: chromosome index -> expected/observed total
        chromosome_totals: chromosome index -> observed total weight
        is_frag: whether lengths were counted in restriction fragments
    """

    normalization: str
    grid_size: int
    density: np.ndarray
    scale_factors: Mapping[int, float] = field(default_factory=dict)
    chromosome_totals: Mapping[int, float] = field(default_factory=dict)
    is_frag: bool = False

    @property
    def max_num_bins(self) -> int:
        return int(self.density.shape[0])


def possible_distances(
    lengths: Mapping[int, int],
    grid_size: int,
    size: int,
) -> tuple[np.ndarray, int]:
    """Count the bin pairs available at each distance, summed over chromosomes.

    A chromosome with n bins contributes (n - i) pairs at distance i.

    Args:
        lengths: chromosome index -> length, only chromosomes that have data
        grid_size: bin width
        size: length of the output array (the accumulator's number of bins)

    Returns:
        possible: (size,) float64
        max_num_bins: largest per-chromosome bin count
    """

    possible = np.zeros(int(size), dtype=np.float64)
    max_num_bins = 0
    for length in lengths.values():
        n = int(length // grid_size)
        max_num_bins = max(max_num_bins, n)
        possible[:n] += n - np.arange(n, dtype=np.float64)
    return possible, max_num_bins


def smoothing_windows(
    actual: np.ndarray,
    possible: np.ndarray,
    max_num_bins: int,
    *,
    min_count: float = MIN_COUNT,
) -> Iterator[tuple[int, int, int, float, float]]:
    """Walk the adaptive smoothing window over distances 0..max_num_bins-1.

    For each output distance the window first grows until it holds at least
    ``min_count`` reads, or else shrinks symmetrically while it can spare both
    end bins and still hold ``min_count``. After emitting, the window is
    extended by two bins so it stays centred on the next distance.

    Yields:
        (ii, bound1, bound2, num_sum, den_sum) for each output distance ii
    """

    n = int(max_num_bins)
    if n <= 0:
        return
    a = np.asarray(actual, dtype=np.float64)[:n].tolist()
    p = np.asarray(possible, dtype=np.float64)[:n].tolist()
    last = n - 1

    num_sum = a[0]
    den_sum = p[0]
    bound1 = 0
    bound2 = 0
    for ii in range(n):
        if num_sum < min_count:
            while num_sum < min_count and bound2 < last:
                bound2 += 1
                num_sum += a[bound2]
                den_sum += p[bound2]
        else:
            while bound2 - bound1 > 0 and num_sum - a[bound1] - a[bound2] >= min_count:
                num_sum = num_sum - a[bound1] - a[bound2]
                den_sum = den_sum - p[bound1] - p[bound2]
                bound1 += 1
                bound2 -= 1

        yield ii, bound1, bound2, num_sum, den_sum

        if bound2 + 2 < n:
            num_sum += a[bound2 + 1] + a[bound2 + 2]
            den_sum += p[bound2 + 1] + p[bound2 + 2]
            bound2 += 2
        elif bound2 + 1 < n:
            num_sum += a[bound2 + 1]
            den_sum += p[bound2 + 1]
            bound2 += 1


def smooth_density(
    actual: np.ndarray,
    possible: np.ndarray,
    max_num_bins: int,
    *,
    min_count: float = MIN_COUNT,
) -> np.ndarray:
    """Expected density per distance: windowed sum(actual) / sum(possible).

    A zero denominator gives inf/nan for that distance.
    """

    n = int(max_num_bins)
    num = np.empty(n, dtype=np.float64)
    den = np.empty(n, dtype=np.float64)
    for ii, _, _, num_sum, den_sum in smoothing_windows(
        actual, possible, n, min_count=min_count
    ):
        num[ii] = num_sum
        den[ii] = den_sum

    with np.errstate(divide="ignore", invalid="ignore"):
        return num / den


def scale_factors(
    lengths: Mapping[int, int],
    totals: Mapping[int, float],
    density: np.ndarray,
    grid_size: int,
) -> dict[int, float]:
    """Per-chromosome ratio of expected total count to observed total count.

    The expected total of a chromosome with n bins is
    sum_i (n - i) * density[i]; distances past the end of the curve add nothing.
    Chromosomes without observed data are skipped.
    """

    density = np.asarray(density, dtype=np.float64)
    factors: dict[int, float] = {}
    for idx, length in lengths.items():
        if idx not in totals:
            continue
        n = int(length // grid_size)
        m = min(n, density.shape[0])
        expected = float(np.dot(n - np.arange(m, dtype=np.float64), density[:m]))
        with np.errstate(divide="ignore", invalid="ignore"):
            factors[idx] = float(np.float64(expected) / np.float64(totals[idx]))
    return factors


def compute_expected(
    actual: np.ndarray,
    totals: Mapping[int, float],
    lengths: Mapping[int, int],
    grid_size: int,
    *,
    normalization: str = "NONE",
    is_frag: bool = False,
    min_count: float = MIN_COUNT,
) -> ExpectedDensity:
    """Derive the density curve and scale factors from accumulated counts."""

    with_data = {idx: length for idx, length in lengths.items() if idx in totals}
    possible, max_num_bins = possible_distances(with_data, grid_size, len(actual))
    logger.debug(
        "Possible distances from %d chromosome(s) with data, max %d bins",
        len(with_data),
        max_num_bins,
    )

    density = smooth_density(actual, possible, max_num_bins, min_count=min_count)
    density.setflags(write=False)
    factors = scale_factors(lengths, totals, density, grid_size)

    n_bad = int(np.count_nonzero(~np.isfinite(density)))
    if n_bad:
        logger.warning("%d of %d expected values are not finite", n_bad, max_num_bins)

    return ExpectedDensity(
        normalization=normalization,
        grid_size=int(grid_size),
        density=density,
        scale_factors=MappingProxyType(factors),
        chromosome_totals=MappingProxyType({k: float(totals[k]) for k in with_data}),
        is_frag=bool(is_frag),
    )
