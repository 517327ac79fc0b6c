"""
Command line interface for corrcoef.

Reads a matrix file, computes the packed Pearson correlation coefficients
of its rows (or columns) and writes them next to the input.
"""

import argparse
import logging
import sys
from pathlib import Path

import numpy as np

from . import __version__
from .config import CorrCoefConfig
from .io_utils import load_matrix, save_result
from .engine import PearsonCorrelation, as_matrix


def _default_output_path(input_path: Path, square: bool) -> Path:
    """Output path derived from the input file name."""
    tag = "corr_square" if square else "corr"
    return input_path.with_name(f"{input_path.stem}_{tag}.npy")


def _setup_logging(verbose: bool):
    logger = logging.getLogger("corrcoef")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
        )
        logger.addHandler(handler)
    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="corrcoef",
        description="Pearson correlation coefficients (packed upper triangle)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Rows are variables, columns are observations
  corrcoef data.npy

  # Variables stored as columns of a CSV file, 8 threads
  corrcoef data.csv --columns --threads 8

  # Full symmetric matrix instead of the packed triangle
  corrcoef data.npy --square --output corr.csv
        """,
    )

    parser.add_argument("input", help="Input matrix (.npy, .npz, .csv, .txt)")

    parser.add_argument(
        "-o", "--output", help="Output file path (default: <input>_corr.npy)"
    )

    parser.add_argument(
        "-t",
        "--threads",
        type=int,
        default=None,
        help="Number of worker threads (default: CORRCOEF_NUM_THREADS or all cores)",
    )

    parser.add_argument(
        "--columns",
        action="store_true",
        help="Treat columns as variables and rows as observations",
    )

    parser.add_argument(
        "--square",
        action="store_true",
        help="Write the full symmetric matrix instead of the packed upper triangle",
    )

    parser.add_argument(
        "--no-memory-check",
        action="store_true",
        help="Skip the available-memory check before allocating",
    )

    parser.add_argument(
        "--version", action="version", version=f"corrcoef {__version__}"
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    return parser


def build_config(args: argparse.Namespace) -> CorrCoefConfig:
    """Environment defaults overridden by command line flags."""
    overrides = {}
    if args.threads is not None:
        overrides["num_threads"] = args.threads
    if args.no_memory_check:
        overrides["check_memory"] = False
    return CorrCoefConfig.from_env(**overrides)


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.threads is not None and args.threads < 0:
        parser.error(f"--threads must be >= 0, got {args.threads}")

    logger = _setup_logging(args.verbose)

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file '{input_path}' not found", file=sys.stderr)
        sys.exit(1)

    output_path = (
        Path(args.output) if args.output else _default_output_path(input_path, args.square)
    )

    try:
        config = build_config(args)
        data = load_matrix(input_path)
        if args.columns:
            data = np.asarray(data).T
        matrix = as_matrix(data)

        logger.info(f"Input: {input_path} {matrix.shape[0]} variables x {matrix.shape[1]} observations")

        result = PearsonCorrelation(config).compute(matrix)
        save_result(output_path, result.triu, result.n_variables, square=args.square)

        if args.verbose:
            print(f"Variables: {result.n_variables}")
            print(f"Observations: {result.n_observations}")
            print(f"Threads: {result.num_threads} ({result.strategy})")
            print(f"Elapsed: {result.elapsed:.3f}s")
            degenerate = result.nonfinite_pairs()
            if degenerate:
                print(f"Non-finite coefficients: {len(degenerate)}")

        print(f"Successfully processed '{input_path}' -> '{output_path}'")

    except Exception as e:
        print(f"Error computing correlations: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
