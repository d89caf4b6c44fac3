from .angle_range import AngleRange, RotationDirection, WedgeStimulusParams
from .scan import AggregateResult, MapRecord, ScanDescriptor, ScanObservation

__all__ = [
    "AngleRange",
    "RotationDirection",
    "WedgeStimulusParams",
    "AggregateResult",
    "MapRecord",
    "ScanDescriptor",
    "ScanObservation",
]
