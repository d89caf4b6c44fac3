"""
Phase-to-Angle Conversion

Maps the cyclic phase of a phase-encoded retinotopy scan, [0, 2*pi), linearly
onto the visual-field angle interval the stimulus swept during one cycle.
"""

import logging

import numpy as np

from ...domain.value_objects.angle_range import AngleRange
from ...domain.value_objects.scan import ScanObservation
from ...domain.services.error_handler import PreconditionError

logger = logging.getLogger(__name__)

TWO_PI = 2 * np.pi


def phase_to_angle(phase, angle_range: AngleRange) -> np.ndarray:
    """Rescale a phase field onto angle_range.

    Each phase p becomes a + (p / 2pi) * (b - a). Reversed ranges (b < a)
    reverse the ordering; a == b collapses every phase onto a. Nothing is
    clamped or wrapped, so phases outside [0, 2pi) extrapolate linearly.

    Args:
        phase: Phase values in radians (array-like, any shape)
        angle_range: Target (start, end) interval in degrees

    Returns:
        New array of angles with the shape of phase
    """
    phase = np.asarray(phase)
    start, end = angle_range.as_tuple()
    return start + (phase / TWO_PI) * (end - start)


def convert_scan(observation: ScanObservation) -> np.ndarray:
    """Convert one scan's phase field using its resolved range."""
    if observation.angle_range is None:
        raise PreconditionError(
            f"No angle range resolved for {observation.descriptor}",
            data_type=observation.descriptor.data_type,
            scan=observation.descriptor.scan,
        )

    angles = phase_to_angle(observation.phase, observation.angle_range)
    if logger.isEnabledFor(logging.DEBUG) and np.any(np.isfinite(angles)):
        logger.debug(
            "  %s: phase -> angle over %s, result range [%.1f, %.1f]",
            observation.descriptor,
            observation.angle_range,
            np.nanmin(angles),
            np.nanmax(angles),
        )
    return angles
