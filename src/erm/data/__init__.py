"""
ERM Data Handling

This module contains data sources and row partitioning utilities.
"""

from .source import (
    DataSource,
    ArraySource,
    FeatureMap,
    OneEmbedding,
    ColumnEmbedding,
    AllEmbedding
)
from .splits import splitrows, getfoldrows

__all__ = [
    # Sources
    "DataSource",
    "ArraySource",
    # Feature maps
    "FeatureMap",
    "OneEmbedding",
    "ColumnEmbedding",
    "AllEmbedding",
    # Partitioning
    "splitrows",
    "getfoldrows"
]
