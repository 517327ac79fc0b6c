"""
Runtime configuration for the correlation kernels.

The worker count is passed explicitly and applied only for the duration of a
call. When it is left at 0 numba's configured maximum is used, which numba
itself reads from ``NUMBA_NUM_THREADS``.
"""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass

import numba

logger = logging.getLogger(__name__)

ENV_NUM_THREADS = "CORRCOEF_NUM_THREADS"
ENV_CHUNK_SIZE = "CORRCOEF_CHUNK_SIZE"
ENV_CHECK_MEMORY = "CORRCOEF_CHECK_MEMORY"

DEFAULT_CHUNK_SIZE = 16384
DEFAULT_INNER_PARALLEL_MIN_OBSERVATIONS = 262144


@dataclass
class CorrCoefConfig:
    """Settings for one ``PearsonCorrelation`` instance."""

    num_threads: int | None = 0
    chunk_size: int = DEFAULT_CHUNK_SIZE
    inner_parallel_min_observations: int = DEFAULT_INNER_PARALLEL_MIN_OBSERVATIONS
    check_memory: bool = True

    def __post_init__(self):
        if self.num_threads is not None and self.num_threads < 0:
            raise ValueError(f"num_threads must be >= 0, got {self.num_threads}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.inner_parallel_min_observations < 1:
            raise ValueError(
                "inner_parallel_min_observations must be >= 1, "
                f"got {self.inner_parallel_min_observations}"
            )

    @classmethod
    def from_env(cls, **overrides) -> "CorrCoefConfig":
        """Build a config from ``CORRCOEF_*`` environment variables."""
        values = {}

        if ENV_NUM_THREADS in os.environ:
            values["num_threads"] = _env_int(ENV_NUM_THREADS)
        if ENV_CHUNK_SIZE in os.environ:
            values["chunk_size"] = _env_int(ENV_CHUNK_SIZE)
        if ENV_CHECK_MEMORY in os.environ:
            raw = os.environ[ENV_CHECK_MEMORY].strip().lower()
            if raw in ("1", "true", "yes", "on"):
                values["check_memory"] = True
            elif raw in ("0", "false", "no", "off"):
                values["check_memory"] = False
            else:
                raise ValueError(f"{ENV_CHECK_MEMORY} must be a boolean, got {raw!r}")

        values.update(overrides)
        return cls(**values)


def _env_int(name: str) -> int:
    raw = os.environ[name]
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def max_threads() -> int:
    """Largest worker count numba was launched with."""
    return numba.config.NUMBA_NUM_THREADS


def resolve_num_threads(num_threads: int | None) -> int:
    """
    Turn a requested worker count into one numba accepts.

    Args:
        num_threads: Requested count; None or 0 selects the default

    Returns:
        Worker count between 1 and ``max_threads()``
    """
    limit = max_threads()

    if not num_threads:
        return limit
    if num_threads < 0:
        raise ValueError(f"num_threads must be >= 0, got {num_threads}")
    if num_threads > limit:
        logger.warning(
            f"Requested {num_threads} threads but numba allows {limit}; using {limit}"
        )
        return limit
    return num_threads


@contextmanager
def thread_limit(num_threads: int | None):
    """Run the enclosed kernels with ``num_threads`` workers, then restore."""
    resolved = resolve_num_threads(num_threads)
    previous = numba.get_num_threads()
    numba.set_num_threads(resolved)
    try:
        yield resolved
    finally:
        numba.set_num_threads(previous)
