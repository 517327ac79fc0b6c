"""
Pearson product-moment correlation coefficients, packed upper triangle.

The computation runs in two passes over an n x l matrix (n variables, l
observations per variable, one variable per row):

1. Moment pass: mean and sample standard deviation of every row.
2. Pairwise pass: correlation of every pair ``i < k``, written to a
   precomputed slot of a flat output buffer.

The second pass starts only after the first has returned, since any pair
may read any row's moments.
"""

import logging
import time
from dataclasses import dataclass

import numpy as np
import psutil

from .config import CorrCoefConfig, thread_limit
from .numba_utils import centered_dot_chunked, pairwise_pearson, welford_moments
from .triu import pair_count, pair_from_index, slot_from_pair, triu_to_square

logger = logging.getLogger(__name__)

STRATEGY_PAIRS = "pairs"
STRATEGY_INNER = "inner"


class AllocationError(MemoryError):
    """Raised when the moment arrays or the output buffer cannot be allocated."""


@dataclass
class CorrelationResult:
    """Result container for one correlation computation."""

    triu: np.ndarray
    n_variables: int
    n_observations: int
    num_threads: int
    strategy: str
    elapsed: float

    def to_square(self) -> np.ndarray:
        """Full symmetric matrix with unit diagonal."""
        return triu_to_square(self.triu, self.n_variables)

    def pair(self, i: int, k: int) -> float:
        """Correlation between variables ``i`` and ``k`` in either order."""
        n = self.n_variables
        if not (0 <= i < n and 0 <= k < n):
            raise IndexError(f"Pair ({i}, {k}) out of range for {n} variables")
        if i == k:
            return 1.0
        if i > k:
            i, k = k, i
        return float(self.triu[slot_from_pair(i, k, n)])

    def nonfinite_pairs(self) -> list[tuple[int, int]]:
        """Pairs whose coefficient is NaN or infinite (constant rows, l=1)."""
        slots = np.flatnonzero(~np.isfinite(self.triu))
        rows, cols = np.triu_indices(self.n_variables, k=1)
        return [(int(rows[s]), int(cols[s])) for s in slots]


def _allocate(shape, message: str, check_memory: bool) -> np.ndarray:
    required = int(np.prod(shape)) * np.dtype(np.float64).itemsize
    if check_memory:
        available = psutil.virtual_memory().available
        if required > available:
            logger.error(
                f"{message} Need {required / (1024 * 1024):.2f} MB, "
                f"{available / (1024 * 1024):.2f} MB available"
            )
            raise AllocationError(message)
    try:
        return np.empty(shape, dtype=np.float64)
    except MemoryError as e:
        raise AllocationError(message) from e


class PearsonCorrelation:
    """
    Parallel Pearson correlation over the rows of a matrix.

    Work is split across pairs. When there are fewer pairs than workers and
    the rows are long, each pair's sum is instead split across chunks of
    observations.
    """

    def __init__(self, config: CorrCoefConfig | None = None):
        self.config = config if config is not None else CorrCoefConfig()

    def select_strategy(self, n_pairs: int, n_observations: int, num_threads: int) -> str:
        """Pick the parallel layout for a problem size."""
        if (
            num_threads > 1
            and n_pairs < num_threads
            and n_observations >= self.config.inner_parallel_min_observations
        ):
            return STRATEGY_INNER
        return STRATEGY_PAIRS

    def compute(self, data: np.ndarray) -> CorrelationResult:
        """
        Correlate every pair of rows of ``data``.

        Args:
            data: C-contiguous float64 array of shape (n, l)

        Returns:
            CorrelationResult: packed coefficients and run metadata

        Raises:
            AllocationError: If a working or output array cannot be allocated
        """
        n, l = data.shape
        nn = pair_count(n)
        check = self.config.check_memory

        coef = _allocate((nn,), "Cannot create output array.", check)
        mean = _allocate((n,), "Cannot create mean and std arrays.", check)
        stdev = _allocate((n,), "Cannot create mean and std arrays.", check)

        start = time.perf_counter()
        with thread_limit(self.config.num_threads) as num_threads:
            strategy = self.select_strategy(nn, l, num_threads)
            logger.debug(
                f"Correlating {n} variables x {l} observations: {nn} pairs, "
                f"{num_threads} threads, strategy={strategy}"
            )

            welford_moments(data, mean, stdev)

            if nn == 0:
                pass
            elif strategy == STRATEGY_INNER:
                self._pairs_inner(data, mean, stdev, coef)
            else:
                pairwise_pearson(data, mean, stdev, coef)

        elapsed = time.perf_counter() - start

        if l < 2:
            logger.warning(
                f"Only {l} observation(s) per variable; coefficients are undefined"
            )
        constant = int(np.count_nonzero(stdev == 0))
        if constant:
            logger.warning(
                f"{constant} variable(s) have zero variance; their pairs are NaN/Inf"
            )
        logger.info(f"Computed {nn} coefficients in {elapsed:.3f}s")

        return CorrelationResult(
            triu=coef,
            n_variables=n,
            n_observations=l,
            num_threads=num_threads,
            strategy=strategy,
            elapsed=elapsed,
        )

    def _pairs_inner(self, data, mean, stdev, coef):
        n, l = data.shape
        chunk = self.config.chunk_size
        for ik in range(coef.shape[0]):
            i, k = pair_from_index(ik, n)
            total = centered_dot_chunked(data[i], data[k], mean[i], mean[k], chunk)
            # numpy float64 division keeps inf/nan semantics for zero stdev
            with np.errstate(divide="ignore", invalid="ignore"):
                coef[slot_from_pair(i, k, n)] = (
                    np.float64(total) / stdev[i] / stdev[k] / (l - 1)
                )


def as_matrix(data) -> np.ndarray:
    """Coerce array-like input to a C-contiguous float64 2-D array."""
    matrix = np.ascontiguousarray(data, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError(
            f"Expected a 2-D array of variables x observations, got {matrix.ndim}-D"
        )
    return matrix


def pearson(data, num_threads: int | None = 0) -> np.ndarray:
    """
    Return Pearson product-moment correlation coefficients.

    Args:
        data: 2-D array-like. Each row is a variable, each column a single
            observation of all those variables.
        num_threads: Maximum number of worker threads (0 or None selects the default)

    Returns:
        The upper triangle of the correlation coefficient matrix, row by row,
        without the diagonal.
    """
    matrix = as_matrix(data)
    engine = PearsonCorrelation(CorrCoefConfig(num_threads=num_threads))
    return engine.compute(matrix).triu
