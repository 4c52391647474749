"""
ERM Models

This module contains the ERM model, its data partitions and result records.
"""

from .results import NoResults, PointResults, FoldResults, RegPathResults
from .partitions import Unsplit, SplitData, FoldedData
from .model import Model

__all__ = [
    "Model",
    "Unsplit",
    "SplitData",
    "FoldedData",
    "NoResults",
    "PointResults",
    "FoldResults",
    "RegPathResults",
]
