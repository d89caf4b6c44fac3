"""polarmap - polar-angle retinotopy maps from phase-encoded scans.

Converts each scan's Fourier phase into visual-field polar angle and merges
overlapping scans voxel by voxel, keeping the most coherent scan's estimate.
"""

from .application.algorithms.phase_conversion import phase_to_angle
from .application.algorithms.scan_aggregation import aggregate_scans, aggregate_observations
from .domain.services.error_handler import (
    PolarMapDomainError,
    PreconditionError,
    MissingInputError,
    StorageError,
    RangeAcquisitionCancelled,
)
from .domain.value_objects.angle_range import AngleRange
from .domain.value_objects.scan import AggregateResult, ScanObservation

__version__ = "1.0.0"

__all__ = [
    "phase_to_angle",
    "aggregate_scans",
    "aggregate_observations",
    "AngleRange",
    "AggregateResult",
    "ScanObservation",
    "PolarMapDomainError",
    "PreconditionError",
    "MissingInputError",
    "StorageError",
    "RangeAcquisitionCancelled",
]
