"""
Range Resolution Domain Service

Determines the AngleRange each scan's phase should be mapped onto. Ranges are
either supplied directly or requested per scan from a pluggable RangeResolver:
a batch one for automation and tests, a stimulus-parameter lookup, or an
interactive prompt (see polarmap.infrastructure.console).
"""

from __future__ import annotations

import logging
from numbers import Real
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

from ..value_objects.angle_range import AngleRange, WedgeStimulusParams
from ..value_objects.scan import ScanDescriptor
from .error_handler import PreconditionError, RangeAcquisitionCancelled

logger = logging.getLogger(__name__)

RangeLike = Union[AngleRange, Sequence[float]]


@runtime_checkable
class RangeResolver(Protocol):
    """Supplies one scan's AngleRange; None means the operator cancelled."""

    def resolve(self, scan: ScanDescriptor) -> Optional[AngleRange]:
        ...


def as_angle_range(value: RangeLike) -> AngleRange:
    """Coerce an AngleRange or a (start, end) pair into an AngleRange."""
    if isinstance(value, AngleRange):
        return value
    try:
        return AngleRange.from_pair(value)
    except (TypeError, ValueError) as e:
        raise PreconditionError(
            f"Not an angle range: {value!r}",
            value=repr(value),
        ) from e


def is_single_range(value) -> bool:
    """True for an AngleRange or a bare (start, end) pair of numbers."""
    if isinstance(value, AngleRange):
        return True
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return False
    return len(value) == 2 and all(isinstance(v, Real) for v in value)


class StaticRangeResolver:
    """Batch/config-driven resolver.

    Per-scan ranges are looked up by scan number; scans without an entry get
    the shared range. A scan with neither is a precondition failure, never a
    cancellation.
    """

    def __init__(
        self,
        shared: Optional[RangeLike] = None,
        per_scan: Optional[Mapping[int, RangeLike]] = None
    ):
        self.shared = as_angle_range(shared) if shared is not None else None
        self.per_scan: Dict[int, AngleRange] = {
            int(scan): as_angle_range(rng) for scan, rng in (per_scan or {}).items()
        }

    def resolve(self, scan: ScanDescriptor) -> Optional[AngleRange]:
        angle_range = self.per_scan.get(scan.scan, self.shared)
        if angle_range is None:
            raise PreconditionError(
                f"No angle range configured for {scan}",
                data_type=scan.data_type,
                scan=scan.scan,
            )
        return angle_range


class StimulusRangeResolver:
    """Derives each scan's range from its rotating-wedge stimulus parameters."""

    def __init__(
        self,
        params: Union[WedgeStimulusParams, Mapping[int, WedgeStimulusParams]]
    ):
        if isinstance(params, WedgeStimulusParams):
            self.default: Optional[WedgeStimulusParams] = params
            self.per_scan: Dict[int, WedgeStimulusParams] = {}
        else:
            self.default = None
            self.per_scan = {int(scan): p for scan, p in params.items()}

    def resolve(self, scan: ScanDescriptor) -> Optional[AngleRange]:
        params = self.per_scan.get(scan.scan, self.default)
        if params is None:
            raise PreconditionError(
                f"No stimulus parameters for {scan}",
                data_type=scan.data_type,
                scan=scan.scan,
            )
        angle_range = params.to_angle_range()
        logger.debug(
            "%s: %s wedge from %.1f deg over %.1f deg -> %s",
            scan, params.direction.value, params.start_angle, params.visual_field, angle_range
        )
        return angle_range


def resolve_ranges(
    scans: Sequence[ScanDescriptor],
    ranges: Optional[Union[RangeLike, Sequence[RangeLike]]] = None,
    resolver: Optional[RangeResolver] = None
) -> List[AngleRange]:
    """
    Produce exactly one AngleRange per scan, in scan order.

    Args:
        scans: Scans needing a range
        ranges: One shared range, or one range per scan
        resolver: Asked once per scan when ranges is None

    Returns:
        List of AngleRange aligned with scans

    Raises:
        PreconditionError: No scans, wrong number of ranges, or nothing to resolve with
        RangeAcquisitionCancelled: The resolver reported a cancellation
    """
    if len(scans) == 0:
        raise PreconditionError("At least one scan is required to resolve angle ranges")

    if ranges is not None:
        if is_single_range(ranges):
            shared = as_angle_range(ranges)
            logger.info("Using shared angle range %s for %d scan(s)", shared, len(scans))
            return [shared] * len(scans)

        resolved = [as_angle_range(rng) for rng in ranges]
        if len(resolved) != len(scans):
            raise PreconditionError(
                f"Got {len(resolved)} angle ranges for {len(scans)} scans",
                n_ranges=len(resolved),
                n_scans=len(scans),
            )
        return resolved

    if resolver is None:
        raise PreconditionError("No angle ranges given and no range resolver configured")

    resolved = []
    for scan in scans:
        angle_range = resolver.resolve(scan)
        if angle_range is None:
            logger.info("Range acquisition cancelled at %s", scan)
            raise RangeAcquisitionCancelled(scan.data_type, scan.scan)
        logger.info("%s: angle range %s", scan, angle_range)
        resolved.append(angle_range)

    return resolved
