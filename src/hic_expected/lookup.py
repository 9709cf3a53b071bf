from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix, spmatrix

from .density import ExpectedDensity


class ExpectedValueFunction:
    """Expected contact value per (chromosome, distance), for O/E maps.

    The genome-wide density at a distance is divided by the chromosome's
    scale factor. Chromosomes without a factor are returned unscaled and
    distances past the end of the curve take the last value.

    Instances are immutable and safe to share between threads.
    """

    def __init__(
        self,
        normalization: str,
        unit: str,
        grid_size: int,
        expected_values: np.ndarray,
        norm_factors: Mapping[int, float] | None = None,
    ) -> None:
        values = np.array(expected_values, dtype=np.float64, copy=True)
        if values.ndim != 1:
            raise ValueError("expected_values must be 1D")
        values.setflags(write=False)

        self._normalization = str(normalization)
        self._unit = unit
        self._grid_size = int(grid_size)
        self._values = values
        self._norm_factors = MappingProxyType(dict(norm_factors or {}))

    @classmethod
    def from_density(cls, density: ExpectedDensity, unit: str | None = None) -> "ExpectedValueFunction":
        if unit is None:
            unit = "FRAG" if density.is_frag else "BP"
        return cls(
            density.normalization,
            unit,
            density.grid_size,
            density.density,
            density.scale_factors,
        )

    @property
    def unit(self) -> str:
        return self._unit

    @property
    def normalization(self) -> str:
        return self._normalization

    @property
    def grid_size(self) -> int:
        return self._grid_size

    @property
    def expected_values_array(self) -> np.ndarray:
        return self._values

    @property
    def norm_factors(self) -> Mapping[int, float]:
        return self._norm_factors

    def _norm_factor(self, chrom_idx: int) -> float:
        return float(self._norm_factors.get(chrom_idx, 1.0))

    def expected_value(self, chrom_idx: int, distance: int) -> float:
        """Expected value at a distance (in bins) from the diagonal."""
        n = self._values.shape[0]
        if n == 0:
            raise ValueError("No expected values available")
        distance = int(distance)
        if distance < 0:
            raise ValueError(f"Distance must be non-negative; got {distance}")
        return float(self._values[min(distance, n - 1)] / self._norm_factor(chrom_idx))

    def expected_values(self, chrom_idx: int, distances) -> np.ndarray:
        """Vectorised expected_value for an array of distances."""
        n = self._values.shape[0]
        if n == 0:
            raise ValueError("No expected values available")
        d = np.asarray(distances, dtype=np.int64)
        if (d < 0).any():
            raise ValueError("Distances must be non-negative")
        d = np.minimum(d, n - 1)
        return self._values[d] / self._norm_factor(chrom_idx)

    def observed_over_expected(self, matrix: spmatrix | np.ndarray, chrom_idx: int) -> csr_matrix:
        """Divide each stored entry of an intra-chromosomal contact matrix by its expected value.

        Args:
            matrix: (n x n) observed contacts for chromosome chrom_idx, in bins of grid_size

        Returns:
            O/E matrix with the same sparsity pattern
        """

        A = coo_matrix(matrix, dtype=np.float64)
        if A.shape[0] != A.shape[1]:
            raise ValueError(f"Contact matrix must be square; got {A.shape}")
        expected = self.expected_values(chrom_idx, np.abs(A.row - A.col))
        with np.errstate(divide="ignore", invalid="ignore"):
            data = A.data / expected
        return coo_matrix((data, (A.row, A.col)), shape=A.shape).tocsr()
