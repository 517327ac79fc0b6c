"""
Numba-parallel kernels for the two correlation passes.
"""
import numpy as np
from numba import njit, prange

from .triu import pair_from_index, slot_from_pair

# error_model="numpy": division by zero gives inf/nan instead of raising,
# which is how constant rows and single observations are reported.
# No fastmath: it would allow the compiler to assume finite values.


@njit(parallel=True, cache=True, error_model="numpy")
def welford_moments(data, mean, stdev):
    """
    Mean and sample standard deviation (ddof=1) of every row of ``data``.

    Single pass per row with Welford's update. Writes ``mean[i]`` and
    ``stdev[i]`` only, so rows are processed fully in parallel.
    """
    n, l = data.shape

    for i in prange(n):
        mk = 0.0
        sk = 0.0
        for k in range(l):
            dk = data[i, k]
            h = dk - mk
            mk += h / (k + 1)
            sk += h * (dk - mk)
        mean[i] = mk
        stdev[i] = np.sqrt(sk / (l - 1))


@njit(parallel=True, cache=True, error_model="numpy")
def pairwise_pearson(data, mean, stdev, out):
    """
    Pearson coefficient for every pair ``i < k`` into the packed ``out``.

    One work item per pair. Each item writes a distinct slot of ``out``.
    ``mean`` and ``stdev`` must be fully populated before the call.
    """
    n, l = data.shape
    nn = out.shape[0]

    for ik in prange(nn):
        i, k = pair_from_index(np.int64(ik), n)
        mi = mean[i]
        mk = mean[k]

        total = 0.0
        for o in range(l):
            total += (data[i, o] - mi) * (data[k, o] - mk)

        out[slot_from_pair(i, k, n)] = total / stdev[i] / stdev[k] / (l - 1)


@njit(parallel=True, cache=True, error_model="numpy")
def centered_dot_chunked(x, y, mx, my, chunk):
    """
    Sum of ``(x - mx) * (y - my)`` as a parallel reduction over chunks.

    Each chunk accumulates into its own slot of ``partial``; the slots are
    combined after the loop. The result depends on ``chunk`` only, not on
    the number of threads.
    """
    l = x.shape[0]
    n_chunks = (l + chunk - 1) // chunk
    partial = np.zeros(n_chunks, dtype=np.float64)

    for c in prange(n_chunks):
        start = np.int64(c) * chunk
        stop = min(start + chunk, l)
        acc = 0.0
        for o in range(start, stop):
            acc += (x[o] - mx) * (y[o] - my)
        partial[c] = acc

    total = 0.0
    for c in range(n_chunks):
        total += partial[c]
    return total
