"""
Imbue — Gap-filler for sparse integer-indexed series.
"""
__version__ = "0.1.0"
__license__ = "MIT"

from .engine import (
    AxisRangeError,
    DataPoint,
    DuplicatePositionError,
    EmptyDatasetError,
    GapAnalysisContext,
    ImbueEngine,
    ImbueError,
    InvalidPointError,
    Strategy,
    UnknownStrategyError,
    average,
    imbue,
    last_known,
    zeroed,
)

__all__ = [
    "AxisRangeError",
    "DataPoint",
    "DuplicatePositionError",
    "EmptyDatasetError",
    "GapAnalysisContext",
    "ImbueEngine",
    "ImbueError",
    "InvalidPointError",
    "Strategy",
    "UnknownStrategyError",
    "average",
    "imbue",
    "last_known",
    "zeroed",
]
