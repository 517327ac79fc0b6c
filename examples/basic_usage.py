"""
Basic usage examples for corrcoef.

Demonstrates the main functionality and typical workflows.
"""

import numpy as np

from corrcoef import (
    CorrCoefConfig,
    PearsonCorrelation,
    pair_count,
    pearson,
    triu_to_square,
)
from corrcoef.engine import as_matrix


def create_test_data(n_variables=6, n_observations=1000, seed=0):
    """Rows sharing a common signal with increasing amounts of noise."""
    rng = np.random.default_rng(seed)
    signal = rng.normal(size=n_observations)
    noise_levels = np.linspace(0.1, 3.0, n_variables)
    return np.vstack(
        [signal + rng.normal(scale=s, size=n_observations) for s in noise_levels]
    )


def example_basic():
    """Packed coefficients for a small matrix."""
    print("=== Basic Correlation ===")

    data = create_test_data()
    triu = pearson(data)

    print(f"Variables: {data.shape[0]}, observations: {data.shape[1]}")
    print(f"Packed length: {triu.shape[0]} (expected {pair_count(data.shape[0])})")
    print(f"Coefficients: {np.round(triu, 3)}")

    return triu


def example_full_matrix():
    """Expand the packed triangle and compare with numpy."""
    print("\n=== Full Matrix ===")

    data = create_test_data()
    square = triu_to_square(pearson(data))

    print(np.round(square, 3))
    print(f"Max deviation from numpy: {np.max(np.abs(square - np.corrcoef(data))):.2e}")

    return square


def example_configured_engine():
    """Explicit configuration and result metadata."""
    print("\n=== Configured Engine ===")

    data = as_matrix(create_test_data(n_variables=50, n_observations=20000))
    engine = PearsonCorrelation(CorrCoefConfig(num_threads=2, chunk_size=4096))
    result = engine.compute(data)

    print(f"Threads: {result.num_threads}, strategy: {result.strategy}")
    print(f"Elapsed: {result.elapsed:.4f}s")
    print(f"Correlation (0, 1): {result.pair(0, 1):.4f}")

    return result


def example_degenerate():
    """A constant variable produces non-finite coefficients, not an error."""
    print("\n=== Degenerate Input ===")

    data = create_test_data(n_variables=3, n_observations=100)
    data[1] = 4.2
    result = PearsonCorrelation().compute(as_matrix(data))

    print(f"Coefficients: {result.triu}")
    print(f"Non-finite pairs: {result.nonfinite_pairs()}")

    return result


if __name__ == "__main__":
    example_basic()
    example_full_matrix()
    example_configured_engine()
    example_degenerate()
