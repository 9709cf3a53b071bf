from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping

import numpy as np

from .chromosomes import ChromosomeMeta, resolve_lengths
from .density import MIN_COUNT, ExpectedDensity, compute_expected

logger = logging.getLogger(__name__)


class AccumulatorFinalizedError(RuntimeError):
    """Raised when an accumulator is used after finalize()."""


class ExpectedValueAccumulator:
    """Collects contact distances genome-wide for an expected-value calculation.

    Usage has three steps:
      1. construct with the genome's chromosomes and a grid size
      2. call add_observation (or add_observations) for every contact
      3. call finalize once to get the smoothed density and scale factors

    After finalize the accumulator is frozen; any further call raises
    AccumulatorFinalizedError.

    Args:
        chromosomes: chromosome records; the whole-genome entry ("All") is ignored
        grid_size: bin width in bp (or in fragments when fragment_counts is given)
        normalization: opaque tag carried through to the result
        fragment_counts: chromosome name -> restriction fragment count; switches
            lengths to fragment units

    Raises:
        ChromosomeLengthError: a chromosome length cannot be resolved
    """

    def __init__(
        self,
        chromosomes: Iterable[ChromosomeMeta],
        grid_size: int,
        normalization: str = "NONE",
        *,
        fragment_counts: Mapping[str, int] | None = None,
    ) -> None:
        if int(grid_size) <= 0:
            raise ValueError(f"grid_size must be positive; got {grid_size!r}")

        self.grid_size = int(grid_size)
        self.normalization = str(normalization)
        self.is_frag = fragment_counts is not None
        self._lengths = resolve_lengths(chromosomes, fragment_counts=fragment_counts)

        max_len = max(self._lengths.values(), default=0)
        self.number_of_bins = int(max_len // self.grid_size) + 1

        self._histogram = np.zeros(self.number_of_bins, dtype=np.float64)
        self._totals: dict[int, float] = {}
        self._finalized = False

        logger.debug(
            "Accumulator: %d chromosome(s), grid %d %s, %d distance bins",
            len(self._lengths),
            self.grid_size,
            "frag" if self.is_frag else "bp",
            self.number_of_bins,
        )

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def lengths(self) -> dict[int, int]:
        return dict(self._lengths)

    @property
    def histogram(self) -> np.ndarray:
        return self._histogram.copy()

    @property
    def chromosome_totals(self) -> dict[int, float]:
        return dict(self._totals)

    def _check_open(self) -> None:
        if self._finalized:
            raise AccumulatorFinalizedError("Accumulator has already been finalized")

    def add_observation(self, chrom_idx: int, bin1: int, bin2: int, weight: float = 1.0) -> None:
        """Add one contact between bin1 and bin2 on a chromosome.

        Contacts with a non-finite weight or an unknown chromosome are ignored.
        The distance |bin1 - bin2| must be below number_of_bins; larger
        distances raise IndexError.
        """

        self._check_open()
        if not math.isfinite(weight):
            return
        if chrom_idx not in self._lengths:
            return

        self._histogram[abs(bin1 - bin2)] += weight
        self._totals[chrom_idx] = self._totals.get(chrom_idx, 0.0) + weight

    def add_observations(self, chrom_idx, bin1, bin2, weight=1.0) -> int:
        """Vectorised add_observation over array-likes (scalars broadcast).

        Returns:
            number of contacts kept
        """

        self._check_open()
        c, b1, b2, w = np.broadcast_arrays(
            np.asarray(chrom_idx, dtype=np.int64),
            np.asarray(bin1, dtype=np.int64),
            np.asarray(bin2, dtype=np.int64),
            np.asarray(weight, dtype=np.float64),
        )
        c, b1, b2, w = (x.ravel() for x in (c, b1, b2, w))

        known = np.fromiter(self._lengths.keys(), dtype=np.int64, count=len(self._lengths))
        keep = np.isfinite(w) & np.isin(c, known)
        c = c[keep]
        w = w[keep]
        dist = np.abs(b1[keep] - b2[keep])

        if dist.size == 0:
            return 0
        if int(dist.max()) >= self.number_of_bins:
            raise IndexError(
                f"Distance {int(dist.max())} is beyond the histogram ({self.number_of_bins} bins)"
            )

        self._histogram += np.bincount(dist, weights=w, minlength=self.number_of_bins)
        chroms, inv = np.unique(c, return_inverse=True)
        sums = np.bincount(inv.ravel(), weights=w, minlength=chroms.shape[0])
        for idx, total in zip(chroms.tolist(), sums.tolist()):
            self._totals[idx] = self._totals.get(idx, 0.0) + total
        return int(dist.size)

    def merge(self, other: "ExpectedValueAccumulator") -> None:
        """Fold a partial accumulator built over the same genome into this one."""

        self._check_open()
        if not isinstance(other, ExpectedValueAccumulator):
            raise TypeError(f"Cannot merge {type(other).__name__}")
        other._check_open()
        if (
            other.grid_size != self.grid_size
            or other.is_frag != self.is_frag
            or other._lengths != self._lengths
        ):
            raise ValueError("Accumulators must share grid size, units and chromosomes to merge")

        self._histogram += other._histogram
        for idx, total in other._totals.items():
            self._totals[idx] = self._totals.get(idx, 0.0) + total

    def finalize(self, *, min_count: float = MIN_COUNT) -> ExpectedDensity:
        """Compute the expected density and per-chromosome scale factors.

        Can be called only once.
        """

        self._check_open()
        self._finalized = True

        result = compute_expected(
            self._histogram,
            self._totals,
            self._lengths,
            self.grid_size,
            normalization=self.normalization,
            is_frag=self.is_frag,
            min_count=min_count,
        )
        logger.info(
            "Expected density over %d distance bins from %d chromosome(s)",
            result.max_num_bins,
            len(result.scale_factors),
        )
        return result
