"""Loading input matrices and saving packed coefficients."""

import logging
from pathlib import Path

import numpy as np
import psutil

from .triu import triu_to_square

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = (".csv", ".txt")
MEMMAP_FRACTION = 0.5


def get_available_memory_mb():
    return psutil.virtual_memory().available / (1024 * 1024)


def load_matrix(file_path) -> np.ndarray:
    """
    Load a variables x observations matrix from disk.

    ``.npy`` files larger than half the available RAM are memory mapped
    read-only instead of being read in full.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Matrix file not found: {file_path}")

    suffix = path.suffix.lower()

    if suffix == ".npy":
        size_mb = path.stat().st_size / (1024 * 1024)
        available_ram_mb = get_available_memory_mb()
        threshold_mb = available_ram_mb * MEMMAP_FRACTION

        logger.info(f"Matrix file: {path.name} (~{size_mb:.2f} MB)")
        logger.info(f"Available RAM: {available_ram_mb:.2f} MB (Threshold: {threshold_mb:.2f} MB)")

        if size_mb > threshold_mb:
            logger.warning("Matrix too large for RAM. Using a read-only memory map...")
            return np.load(path, mmap_mode="r")
        return np.load(path)

    if suffix == ".npz":
        with np.load(path) as archive:
            if not archive.files:
                raise ValueError(f"No arrays stored in {file_path}")
            name = archive.files[0]
            logger.info(f"Using array '{name}' from {path.name}")
            return archive[name]

    if suffix in TEXT_SUFFIXES:
        delimiter = "," if suffix == ".csv" else None
        return np.loadtxt(path, delimiter=delimiter, dtype=np.float64, ndmin=2)

    raise ValueError(f"Unsupported matrix format '{path.suffix}' for {file_path}")


def save_result(file_path, triu: np.ndarray, n: int | None = None, square: bool = False):
    """Write coefficients as ``.npy`` or text; ``square`` expands to n x n first."""
    path = Path(file_path)
    values = triu_to_square(triu, n) if square else np.asarray(triu)

    suffix = path.suffix.lower()
    if suffix == ".npy":
        np.save(path, values)
    elif suffix in TEXT_SUFFIXES:
        delimiter = "," if suffix == ".csv" else " "
        np.savetxt(path, np.atleast_1d(values), delimiter=delimiter, fmt="%.17g")
    else:
        raise ValueError(f"Unsupported output format '{path.suffix}' for {file_path}")

    logger.info(f"Saved {values.size} values to {path}")
    return path
