"""
ShipWatch: Shared Python Package
=================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so individual tools can import from a single location::

    from shared.python import GeoTool, Validators
    from shared.python.exceptions import GridAlignmentError
"""

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    BandIndexError,
    ConfigurationError,
    CRSError,
    GridAlignmentError,
    InputValidationError,
    NoAcquisitionAvailableError,
    OutputWriteError,
    RasterError,
    ShipWatchError,
    VectorizationLimitError,
)
from shared.python.validators import Validators

__all__ = [
    "GeoTool",
    "Validators",
    "ShipWatchError",
    "InputValidationError",
    "ConfigurationError",
    "CRSError",
    "RasterError",
    "BandIndexError",
    "GridAlignmentError",
    "VectorizationLimitError",
    "NoAcquisitionAvailableError",
    "OutputWriteError",
]
