"""
Validation of the packed Pearson kernels against numpy.corrcoef.

Runs a set of generated scenarios (random, correlated, offset, degenerate)
with several thread counts and records the maximum deviation from the
reference. All results are saved to a timestamped folder for review.
"""

import datetime
import json
import logging
import time
from pathlib import Path

import numpy as np
import psutil

from corrcoef import pearson, triu_to_square
from corrcoef.reference import pearson_two_pass

TOLERANCE = 1e-9


def make_scenarios(seed=0):
    """Generated input matrices keyed by scenario name."""
    rng = np.random.default_rng(seed)
    base = rng.normal(size=(1, 2000))

    return {
        "random_small": rng.normal(size=(5, 50)),
        "random_wide": rng.normal(size=(20, 20000)),
        "random_tall": rng.normal(size=(400, 100)),
        "correlated": base + rng.normal(scale=0.3, size=(30, 2000)),
        "large_offset": rng.normal(size=(10, 5000)) + 1e8,
        "affine": np.vstack([np.arange(10.0), 3 * np.arange(10.0) + 2, -np.arange(10.0)]),
        "constant_row": np.vstack([rng.normal(size=(3, 100)), np.full((1, 100), 2.5)]),
    }


class CorrelationValidator:
    """Compares ``corrcoef.pearson`` with numpy over generated scenarios."""

    def __init__(self, output_base_dir="validation_results", thread_counts=(0, 1, 2)):
        self.thread_counts = thread_counts
        self.results = []

        self.timestamp = datetime.datetime.now().strftime("%Y-%m-%d_%H%M%S")
        self.results_dir = Path(output_base_dir) / f"review_{self.timestamp}"
        self.results_dir.mkdir(parents=True, exist_ok=True)

        self.logger = self._setup_logging()

    def _setup_logging(self):
        logger = logging.getLogger(__name__)
        logger.setLevel(logging.INFO)

        if logger.hasHandlers():
            logger.handlers.clear()

        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")

        log_filepath = self.results_dir / f"validation_log_{self.timestamp}.log"
        file_handler = logging.FileHandler(log_filepath, encoding="utf-8")
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)

        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.INFO)
        stream_handler.setFormatter(formatter)

        logger.addHandler(file_handler)
        logger.addHandler(stream_handler)

        logger.info("=" * 80)
        logger.info("CORRCOEF VALIDATION LOG STARTED")
        logger.info(f"Results Directory: {self.results_dir.resolve()}")
        logger.info(
            f"Available RAM: {psutil.virtual_memory().available / (1024 * 1024):.0f} MB"
        )
        logger.info("=" * 80)

        return logger

    def validate_scenario(self, name, data):
        n, l = data.shape
        reference = np.corrcoef(data)
        two_pass = pearson_two_pass(data)

        for num_threads in self.thread_counts:
            start = time.perf_counter()
            triu = pearson(data, num_threads=num_threads)
            elapsed = time.perf_counter() - start

            square = triu_to_square(triu, n)
            # Diagonal is fixed at 1 in the packed format
            off_diagonal = ~np.eye(n, dtype=bool)
            finite = np.isfinite(reference) & off_diagonal
            nonfinite = ~np.isfinite(reference) & off_diagonal
            nonfinite_match = bool(np.all(~np.isfinite(square[nonfinite])))

            if finite.any():
                max_error = float(np.max(np.abs(square[finite] - reference[finite])))
                max_error_two_pass = float(np.max(np.abs(square[finite] - two_pass[finite])))
            else:
                max_error = max_error_two_pass = 0.0

            passed = max_error <= TOLERANCE and nonfinite_match
            result = {
                "scenario": name,
                "n_variables": n,
                "n_observations": l,
                "num_threads": num_threads,
                "elapsed_s": elapsed,
                "max_error_numpy": max_error,
                "max_error_two_pass": max_error_two_pass,
                "nonfinite_match": nonfinite_match,
                "passed": passed,
            }
            self.results.append(result)

            level = logging.INFO if passed else logging.ERROR
            self.logger.log(
                level,
                f"{name:<14} n={n:<4} l={l:<6} threads={num_threads} "
                f"err={max_error:.2e} time={elapsed:.4f}s {'PASS' if passed else 'FAIL'}",
            )

    def run(self, scenarios=None):
        scenarios = scenarios if scenarios is not None else make_scenarios()
        for name, data in scenarios.items():
            self.validate_scenario(name, np.ascontiguousarray(data, dtype=np.float64))

        report_path = self.results_dir / "validation_report.json"
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(self.results, f, indent=2)

        failed = [r for r in self.results if not r["passed"]]
        self.logger.info(f"Report saved to {report_path}")
        self.logger.info(
            f"{len(self.results) - len(failed)}/{len(self.results)} checks passed"
        )
        return not failed


if __name__ == "__main__":
    validator = CorrelationValidator()
    raise SystemExit(0 if validator.run() else 1)
