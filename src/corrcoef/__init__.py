"""
corrcoef - parallel Pearson correlation coefficients as a packed upper triangle.

Each row of the input is a variable and each column one observation of all
variables. Only the strict upper triangle of the correlation matrix is
computed and returned, row by row.
"""

__version__ = "0.1.0"

from .config import CorrCoefConfig as CorrCoefConfig
from .engine import AllocationError as AllocationError
from .engine import CorrelationResult as CorrelationResult
from .engine import PearsonCorrelation as PearsonCorrelation
from .engine import pearson as pearson
from .triu import pair_count as pair_count
from .triu import pair_from_index as pair_from_index
from .triu import pair_from_slot as pair_from_slot
from .triu import slot_from_pair as slot_from_pair
from .triu import square_to_triu as square_to_triu
from .triu import triu_to_square as triu_to_square

# Mirrors the CorrCoef.Pearson name of the C extension
Pearson = pearson

__all__ = [
    "AllocationError",
    "CorrCoefConfig",
    "CorrelationResult",
    "Pearson",
    "PearsonCorrelation",
    "pair_count",
    "pair_from_index",
    "pair_from_slot",
    "pearson",
    "slot_from_pair",
    "square_to_triu",
    "triu_to_square",
]
