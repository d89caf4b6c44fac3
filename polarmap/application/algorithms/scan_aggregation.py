"""
Multi-Scan Aggregation - Winner-Take-All by Coherence

Combines polar-angle estimates from several scans of the same voxels into one
map. At every voxel the scan with the highest coherence supplies the angle
verbatim; ties go to the highest-indexed scan. Angles are never averaged:
a coherence-weighted blend of angles would need circular statistics and is
not offered here.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np

from ...domain.services.error_handler import PreconditionError
from ...domain.value_objects.scan import AggregateResult, ScanDescriptor, ScanObservation
from .phase_conversion import convert_scan

logger = logging.getLogger(__name__)


def _validate_shapes(
    angle_maps: Sequence[np.ndarray],
    coherence_maps: Sequence[np.ndarray]
) -> Tuple[int, ...]:
    """Check scan count and that every field shares one voxel grid."""
    if len(coherence_maps) == 0:
        raise PreconditionError("Aggregation requires at least one scan", n_scans=0)

    if len(angle_maps) != len(coherence_maps):
        raise PreconditionError(
            f"Got {len(angle_maps)} angle maps but {len(coherence_maps)} coherence maps",
            n_angle_maps=len(angle_maps),
            n_coherence_maps=len(coherence_maps),
        )

    expected = np.shape(coherence_maps[0])
    for i, (angles, coherence) in enumerate(zip(angle_maps, coherence_maps)):
        if np.shape(angles) != expected or np.shape(coherence) != expected:
            raise PreconditionError(
                f"Scan {i} has shape angle={np.shape(angles)} coherence={np.shape(coherence)}, "
                f"expected {expected}",
                scan_index=i,
                angle_shape=list(np.shape(angles)),
                coherence_shape=list(np.shape(coherence)),
                expected_shape=list(expected),
            )

    return expected


def aggregate_scans(
    angle_maps: Sequence[np.ndarray],
    coherence_maps: Sequence[np.ndarray],
    scans: Sequence[ScanDescriptor] = (),
    angle_ranges: Sequence = ()
) -> AggregateResult:
    """
    Merge per-scan angle maps into one map by voxelwise maximum coherence.

    Args:
        angle_maps: Converted angle field per scan, in scan order
        coherence_maps: Coherence field per scan, same order and shape
        scans: Optional descriptors recorded on the result
        angle_ranges: Optional ranges recorded on the result

    Returns:
        AggregateResult whose coherence is the elementwise maximum and whose
        map holds, per voxel, the angle of the last scan reaching it

    Raises:
        PreconditionError: No scans, or arrays on different voxel grids
    """
    shape = _validate_shapes(angle_maps, coherence_maps)
    n_scans = len(coherence_maps)

    if n_scans == 1:
        # Nothing to compare against
        logger.info("Single scan: polar-angle map taken directly (%s voxels)", shape)
        return AggregateResult(
            map=np.array(angle_maps[0], copy=True),
            coherence=np.array(coherence_maps[0], copy=True),
            source_scans=tuple(scans),
            angle_ranges=tuple(angle_ranges),
        )

    logger.info("Aggregating %d scans over %s voxels (winner-take-all)", n_scans, shape)

    angles = [np.asarray(a) for a in angle_maps]
    coherences = [np.asarray(c) for c in coherence_maps]

    # NaN in one scan does not mask a valid coherence from another
    covol = np.fmax.reduce(np.stack(coherences), axis=0)

    map_dtype = np.result_type(*angles)
    if not np.issubdtype(map_dtype, np.floating):
        map_dtype = np.float64
    # Stays NaN only where every scan has NaN coherence
    angle_map = np.full(shape, np.nan, dtype=map_dtype)

    # Ascending order; later scans overwrite ties
    for i in range(n_scans):
        winners = coherences[i] == covol
        angle_map[winners] = angles[i][winners]
        logger.debug("  scan %d reaches max coherence at %d voxels", i, int(np.count_nonzero(winners)))

    if np.issubdtype(covol.dtype, np.floating):
        unassigned = int(np.count_nonzero(np.isnan(covol)))
        if unassigned:
            logger.warning("  %d voxels have NaN coherence in every scan and no angle", unassigned)

    return AggregateResult(
        map=angle_map,
        coherence=covol,
        source_scans=tuple(scans),
        angle_ranges=tuple(angle_ranges),
    )


def aggregate_observations(observations: Sequence[ScanObservation]) -> AggregateResult:
    """Convert every observation with its range, then aggregate."""
    if len(observations) == 0:
        raise PreconditionError("Aggregation requires at least one scan", n_scans=0)

    _validate_shapes(
        [obs.phase for obs in observations],
        [obs.coherence for obs in observations],
    )

    angle_maps = [convert_scan(obs) for obs in observations]
    return aggregate_scans(
        angle_maps,
        [obs.coherence for obs in observations],
        scans=[obs.descriptor for obs in observations],
        angle_ranges=[obs.angle_range for obs in observations],
    )
