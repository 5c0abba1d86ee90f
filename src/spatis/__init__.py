# src/spatis/__init__.py

"""
spatis - Spatial individual specialization (SpatIS / SpatICS) analysis
"""

# Core data structures
from .data.core import LocationDataset, LocationRecord
from .data.config import SpatisConfig, UDParams
from .data.loaders import from_dataframe, read_locations

# Main analysis entry points
from .ud.overlap import OverlapMethod
from .specialization.index import IndexResult, compute_index
from .specialization.randomization import RandomizationResult, randomize, randomize_indices

# Import submodules
from . import data
from . import ud
from . import specialization

__version__ = '0.1.0'

__all__ = [
    # Core classes
    'LocationDataset',
    'LocationRecord',
    'SpatisConfig',
    'UDParams',
    'OverlapMethod',
    'IndexResult',
    'RandomizationResult',

    # Functions
    'from_dataframe',
    'read_locations',
    'compute_index',
    'randomize',
    'randomize_indices',

    # Submodules
    'data',
    'ud',
    'specialization',
]
