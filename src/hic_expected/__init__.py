"""Hi-C expected contact density engine.

Core idea: accumulate contact weights by genomic distance genome-wide, smooth them into an
expected density curve, and scale it per chromosome so expected and observed totals agree.
"""

from .accumulator import AccumulatorFinalizedError, ExpectedValueAccumulator
from .chromosomes import ChromosomeLengthError, ChromosomeMeta
from .density import ExpectedDensity
from .lookup import ExpectedValueFunction

__all__ = [
    "AccumulatorFinalizedError",
    "ChromosomeLengthError",
    "ChromosomeMeta",
    "ExpectedDensity",
    "ExpectedValueAccumulator",
    "ExpectedValueFunction",
]
