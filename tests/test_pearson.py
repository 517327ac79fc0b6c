"""
Tests for the packed Pearson correlation.

Known values, agreement with an independent two-pass computation, degenerate
inputs and allocation failures.
"""

import numpy as np
import pytest

import corrcoef.engine as engine_module
from corrcoef import (
    AllocationError,
    CorrCoefConfig,
    Pearson,
    PearsonCorrelation,
    pearson,
    triu_to_square,
)
from corrcoef.engine import STRATEGY_INNER, STRATEGY_PAIRS, as_matrix
from corrcoef.reference import pair_correlation, pearson_two_pass


class TestKnownValues:
    def test_perfect_positive(self):
        result = pearson([[1, 2, 3], [2, 4, 6]])

        assert result.shape == (1,)
        assert result[0] == pytest.approx(1.0, abs=1e-12)

    def test_perfect_negative(self):
        result = pearson([[1, 2, 3], [3, 2, 1]])

        assert result.shape == (1,)
        assert result[0] == pytest.approx(-1.0, abs=1e-12)

    def test_constant_row(self):
        data = np.array(
            [
                [1.0, 2.0, 4.0, 3.0],
                [7.0, 7.0, 7.0, 7.0],
                [0.5, 1.5, 1.0, 3.0],
            ]
        )

        result = pearson(data)

        # Slots: (0,1), (0,2), (1,2)
        assert not np.isfinite(result[0])
        assert not np.isfinite(result[2])
        assert np.isfinite(result[1])
        assert result[1] == pytest.approx(pair_correlation(data[0], data[2]), abs=1e-12)

    def test_single_observation(self):
        result = pearson([[1.0], [2.0], [3.0]])

        assert result.shape == (3,)
        assert np.all(np.isnan(result))

    def test_capitalized_alias(self):
        assert Pearson is pearson


class TestAgainstReference:
    def setup_method(self):
        rng = np.random.default_rng(42)
        base = rng.normal(size=(1, 200))
        self.data = np.vstack(
            [
                base + rng.normal(scale=s, size=(1, 200))
                for s in (0.1, 0.5, 1.0, 2.0, 5.0)
            ]
            + [rng.normal(size=(3, 200))]
        )

    def test_matches_two_pass(self):
        triu = pearson(self.data)

        np.testing.assert_allclose(
            triu_to_square(triu), pearson_two_pass(self.data), rtol=0, atol=1e-9
        )

    def test_matches_numpy(self):
        triu = pearson(self.data)

        np.testing.assert_allclose(
            triu_to_square(triu), np.corrcoef(self.data), rtol=0, atol=1e-9
        )

    def test_values_in_range(self):
        triu = pearson(self.data)

        assert np.all(np.abs(triu) <= 1.0 + 1e-12)

    def test_symmetry(self):
        result = PearsonCorrelation().compute(as_matrix(self.data))

        for i in range(self.data.shape[0]):
            for k in range(self.data.shape[0]):
                assert result.pair(i, k) == result.pair(k, i)
                assert result.pair(i, k) == pytest.approx(
                    pair_correlation(self.data[k], self.data[i]), abs=1e-9
                )

    def test_self_correlation_is_one(self):
        for row in self.data:
            assert pair_correlation(row, row) == pytest.approx(1.0, abs=1e-12)
        np.testing.assert_allclose(np.diag(pearson_two_pass(self.data)), 1.0, atol=1e-12)

    def test_default_worker_count_when_absent(self):
        result = pearson([[1, 2, 3], [2, 4, 6]], num_threads=None)

        assert result[0] == pytest.approx(1.0, abs=1e-12)
        np.testing.assert_array_equal(pearson(self.data, None), pearson(self.data, 0))

    @pytest.mark.parametrize("num_threads", [0, 1, 2])
    def test_idempotent(self, num_threads):
        first = pearson(self.data, num_threads=num_threads)
        second = pearson(self.data, num_threads=num_threads)

        np.testing.assert_allclose(first, second, rtol=0, atol=1e-13)
        np.testing.assert_allclose(first, pearson(self.data, 1), rtol=0, atol=1e-12)


class TestPearsonCorrelation:
    def test_result_metadata(self):
        data = as_matrix(np.random.default_rng(0).normal(size=(4, 10)))

        result = PearsonCorrelation(CorrCoefConfig(num_threads=1)).compute(data)

        assert result.n_variables == 4
        assert result.n_observations == 10
        assert result.num_threads == 1
        assert result.strategy == STRATEGY_PAIRS
        assert result.triu.shape == (6,)
        assert result.elapsed >= 0.0
        assert result.to_square().shape == (4, 4)

    def test_pair_lookup(self):
        data = as_matrix(np.random.default_rng(1).normal(size=(3, 10)))
        result = PearsonCorrelation().compute(data)

        assert result.pair(1, 1) == 1.0
        assert result.pair(0, 2) == result.triu[1]
        with pytest.raises(IndexError):
            result.pair(0, 3)

    def test_nonfinite_pairs(self):
        data = as_matrix([[1, 2, 3], [5, 5, 5], [3, 1, 2]])

        result = PearsonCorrelation().compute(data)

        assert result.nonfinite_pairs() == [(0, 1), (1, 2)]

    def test_select_strategy(self):
        engine = PearsonCorrelation(CorrCoefConfig(inner_parallel_min_observations=100))

        assert engine.select_strategy(1, 1000, 4) == STRATEGY_INNER
        assert engine.select_strategy(1, 10, 4) == STRATEGY_PAIRS
        assert engine.select_strategy(10, 1000, 4) == STRATEGY_PAIRS
        assert engine.select_strategy(1, 1000, 1) == STRATEGY_PAIRS

    def test_inner_strategy_matches_pairs(self, monkeypatch):
        rng = np.random.default_rng(7)
        data = as_matrix(rng.normal(size=(3, 5000)))
        data[2] = 1.0
        expected = PearsonCorrelation().compute(data).triu

        engine = PearsonCorrelation(CorrCoefConfig(chunk_size=333))
        monkeypatch.setattr(engine, "select_strategy", lambda *args: STRATEGY_INNER)
        result = engine.compute(data)

        assert result.strategy == STRATEGY_INNER
        np.testing.assert_allclose(result.triu[0], expected[0], rtol=0, atol=1e-12)
        assert not np.isfinite(result.triu[1])
        assert not np.isfinite(result.triu[2])

    def test_fewer_than_two_variables(self):
        result = PearsonCorrelation().compute(as_matrix([[1.0, 2.0, 3.0]]))

        assert result.triu.shape == (0,)


class TestInputCoercion:
    def test_rejects_non_2d(self):
        with pytest.raises(ValueError):
            pearson(np.array([1.0, 2.0, 3.0]))

        with pytest.raises(ValueError):
            pearson(np.zeros((2, 2, 2)))

    def test_accepts_non_contiguous_and_integers(self):
        data = np.arange(24).reshape(4, 6)[:, ::2]

        result = pearson(data)

        np.testing.assert_allclose(result, np.ones(6), atol=1e-12)

    def test_as_matrix(self):
        matrix = as_matrix(np.asfortranarray(np.ones((3, 4), dtype=np.float32)))

        assert matrix.dtype == np.float64
        assert matrix.flags["C_CONTIGUOUS"]


class _FakeMemory:
    def __init__(self, available):
        self.available = available


class TestAllocationFailure:
    def test_memory_check(self, monkeypatch):
        monkeypatch.setattr(
            engine_module.psutil, "virtual_memory", lambda: _FakeMemory(0)
        )

        with pytest.raises(AllocationError, match="Cannot create output array."):
            pearson([[1, 2, 3], [2, 4, 6]])

    def test_numpy_memory_error(self, monkeypatch):
        def fail(*args, **kwargs):
            raise MemoryError()

        engine = PearsonCorrelation(CorrCoefConfig(check_memory=False))
        data = as_matrix([[1, 2, 3], [2, 4, 6]])
        monkeypatch.setattr(engine_module.np, "empty", fail)

        with pytest.raises(AllocationError) as excinfo:
            engine.compute(data)

        assert isinstance(excinfo.value, MemoryError)

    def test_moment_arrays_memory_error(self, monkeypatch):
        real_empty = np.empty
        calls = []

        def fail_after_output(*args, **kwargs):
            calls.append(args)
            if len(calls) > 1:
                raise MemoryError()
            return real_empty(*args, **kwargs)

        engine = PearsonCorrelation(CorrCoefConfig(check_memory=False))
        data = as_matrix([[1, 2, 3], [2, 4, 6]])
        monkeypatch.setattr(engine_module.np, "empty", fail_after_output)

        with pytest.raises(AllocationError, match="Cannot create mean and std arrays."):
            engine.compute(data)

    def test_engine_module_is_importable(self):
        assert engine_module.__name__ == "corrcoef.engine"
        assert engine_module.pearson is pearson
