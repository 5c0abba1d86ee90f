"""
data - Location data structures and configuration

This module contains the LocationDataset container, loaders,
configuration classes and the spatis error types.
"""

from .config import (
    SpatisConfig,
    UDParams,
    SpatisError,
    ValidationError,
    ColumnNotFoundError,
    InsufficientDataError,
    InvalidIndexKindError,
    InvalidMethodError,
    InvalidIterationCountError,
    DegenerateRandomizationError,
    DependencyError,
)

from .core import LocationDataset, LocationRecord
from .loaders import LocationValidator, from_dataframe, read_locations

__all__ = [
    # Core classes
    'LocationDataset',
    'LocationRecord',

    # Configuration
    'SpatisConfig',
    'UDParams',

    # Loaders
    'LocationValidator',
    'from_dataframe',
    'read_locations',

    # Exceptions
    'SpatisError',
    'ValidationError',
    'ColumnNotFoundError',
    'InsufficientDataError',
    'InvalidIndexKindError',
    'InvalidMethodError',
    'InvalidIterationCountError',
    'DegenerateRandomizationError',
    'DependencyError',
]
