"""
Straightforward two-pass correlation, used to check the parallel kernels.
"""

import numpy as np


def pair_correlation(x, y) -> float:
    """Pearson correlation of two 1-D sequences (``x`` may be ``y``)."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.shape != y.shape or x.ndim != 1:
        raise ValueError(f"Expected two 1-D arrays of equal length, got {x.shape} and {y.shape}")

    count = x.shape[0]
    xc = x - x.sum() / count
    yc = y - y.sum() / count
    covariance = np.sum(xc * yc) / (count - 1)
    sx = np.sqrt(np.sum(xc * xc) / (count - 1))
    sy = np.sqrt(np.sum(yc * yc) / (count - 1))
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(covariance / sx / sy)


def pearson_two_pass(data) -> np.ndarray:
    """
    Full correlation matrix (diagonal included) from the naive formula.

    First pass: row means. Second pass: centered cross products.
    """
    data = np.asarray(data, dtype=np.float64)
    if data.ndim != 2:
        raise ValueError(f"Expected a 2-D array, got {data.ndim}-D")

    n, l = data.shape
    centered = data - data.mean(axis=1, keepdims=True)
    covariance = centered @ centered.T / (l - 1)
    stdev = np.sqrt(np.diag(covariance))
    with np.errstate(divide="ignore", invalid="ignore"):
        return covariance / stdev[:, None] / stdev[None, :]
