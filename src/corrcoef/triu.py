"""
Packed upper-triangle indexing.

A symmetric n x n matrix with unit diagonal is stored as its strict upper
triangle, row by row: row i holds the entries for k = i+1 .. n-1 in
increasing k order. There are ``n * (n - 1) / 2`` such entries.

Two mappings are used by the parallel kernels:

* ``pair_from_index`` turns a flat work item index ``ik`` into a pair
  ``(i, k)`` with ``i < k``, so a parallel loop can run over a plain
  integer range without materializing a list of pairs.
* ``slot_from_pair`` gives the position of ``(i, k)`` in the packed buffer.

Both are compiled with numba so the kernels can inline them, and remain
callable from Python.
"""

import numpy as np
from numba import njit


def pair_count(n: int) -> int:
    """Number of distinct unordered pairs among ``n`` variables."""
    if n < 2:
        return 0
    return n * (n - 1) // 2


@njit(cache=True)
def pair_from_index(ik, n):
    """
    Map work item ``ik`` in ``[0, n*(n-1)/2)`` to a pair ``(i, k)``, ``i < k``.

    The division ``(ik // n, ik % n)`` covers the first half of an n x n grid.
    Cells on or below the diagonal are reflected through ``n`` onto the
    upper triangle rows that the division never reaches.
    """
    i = ik // n
    k = ik % n
    if k <= i:
        i = n - i - 2
        k = n - k - 1
    return i, k


@njit(cache=True)
def slot_from_pair(i, k, n):
    """Position of pair ``(i, k)``, ``i < k``, in the packed buffer."""
    nn = n * (n - 1) // 2
    return nn - (n - i) * (n - i - 1) // 2 + k - i - 1


@njit(cache=True)
def pair_from_slot(slot, n):
    """Inverse of ``slot_from_pair``."""
    i = 0
    row_start = 0
    row_length = n - 1
    while slot >= row_start + row_length:
        row_start += row_length
        row_length -= 1
        i += 1
    return i, i + 1 + slot - row_start


def n_from_pair_count(nn: int) -> int:
    """
    Recover the variable count from a packed length.

    Raises:
        ValueError: If ``nn`` is not a triangular number.
    """
    # n^2 - n - 2nn = 0
    n = int(round((1 + np.sqrt(1 + 8 * nn)) / 2))
    if pair_count(n) != nn:
        raise ValueError(f"Length {nn} is not a valid packed upper triangle size")
    return n


def triu_to_square(triu: np.ndarray, n: int | None = None) -> np.ndarray:
    """
    Expand a packed upper triangle into the full symmetric matrix.

    Args:
        triu: 1-D packed upper triangle
        n: Number of variables (inferred from the length if omitted)

    Returns:
        n x n float64 matrix with unit diagonal
    """
    triu = np.asarray(triu, dtype=np.float64)
    if triu.ndim != 1:
        raise ValueError(f"Packed triangle must be 1-D, got shape {triu.shape}")

    if n is None:
        n = n_from_pair_count(triu.shape[0])
    elif pair_count(n) != triu.shape[0]:
        raise ValueError(
            f"Packed triangle of length {triu.shape[0]} does not match n={n}"
        )

    square = np.eye(n, dtype=np.float64)
    rows, cols = np.triu_indices(n, k=1)
    square[rows, cols] = triu
    square[cols, rows] = triu
    return square


def square_to_triu(matrix: np.ndarray) -> np.ndarray:
    """Extract the packed strict upper triangle of a square matrix."""
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {matrix.shape}")

    rows, cols = np.triu_indices(matrix.shape[0], k=1)
    return matrix[rows, cols].copy()
