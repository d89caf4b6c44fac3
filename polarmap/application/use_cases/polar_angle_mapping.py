"""
Polar Angle Mapping Use Case

Loads the coherence analyses of the requested scans, resolves each scan's
angle range, converts phase to polar angle and merges the scans. The result is
stored only after every step succeeded; a cancelled range prompt or any error
leaves the map collection untouched.
"""

import logging
from typing import List, Optional, Sequence

from ...config import MappingConfig
from ...domain.repositories.coherence_repository import CoherenceRepositoryInterface
from ...domain.services.error_handler import PreconditionError, RangeAcquisitionCancelled
from ...domain.services.range_resolver import RangeResolver, StaticRangeResolver, resolve_ranges
from ...domain.value_objects.scan import AggregateResult, MapRecord, ScanObservation
from ..algorithms.scan_aggregation import aggregate_observations

logger = logging.getLogger(__name__)


class PolarAngleMapping:
    """Builds polar-angle maps from one or more phase-encoded scans.

    All dependencies injected via constructor.
    """

    def __init__(
        self,
        repository: CoherenceRepositoryInterface,
        resolver: Optional[RangeResolver] = None,
        config: Optional[MappingConfig] = None
    ):
        """
        Args:
            repository: Source of coherence analyses and sink for maps
            resolver: Asked for ranges not passed explicitly; defaults to the
                configured ranges when config has any
            config: Map naming, meta-analysis target and configured ranges
        """
        self.repository = repository
        self.config = config or MappingConfig()

        if resolver is None and (self.config.default_range is not None or self.config.scan_ranges):
            resolver = StaticRangeResolver(
                shared=self.config.default_range,
                per_scan=self.config.scan_ranges,
            )
        self.resolver = resolver

    def load_observations(self, data_type: str, scans: Sequence[int]) -> List[ScanObservation]:
        """Load every scan; MissingInputError for the first one absent."""
        if len(scans) == 0:
            raise PreconditionError("No scans selected", data_type=data_type)

        logger.info(f"Loading {len(scans)} scan(s) from {data_type}...")
        return [self.repository.load_scan(data_type, scan) for scan in scans]

    def compute(
        self,
        data_type: str,
        scans: Sequence[int],
        ranges=None
    ) -> Optional[AggregateResult]:
        """
        Compute the polar-angle map without storing it.

        Args:
            data_type: Data type holding the scans
            scans: Scan numbers, in the order used for tie-breaking
            ranges: One shared range or one per scan; the resolver is asked otherwise

        Returns:
            AggregateResult, or None if the operator cancelled range entry
        """
        observations = self.load_observations(data_type, scans)

        try:
            angle_ranges = resolve_ranges(
                [obs.descriptor for obs in observations],
                ranges=ranges,
                resolver=self.resolver,
            )
        except RangeAcquisitionCancelled as e:
            logger.warning(f"{e} - no map computed")
            return None

        observations = [obs.with_range(rng) for obs, rng in zip(observations, angle_ranges)]
        return aggregate_observations(observations)

    def run(
        self,
        data_type: str,
        scans: Sequence[int],
        ranges=None,
        map_name: Optional[str] = None
    ) -> Optional[MapRecord]:
        """
        Compute the polar-angle map and add it to the map collection.

        A single scan's map is stored under that scan; a multi-scan map goes to
        the meta-analysis data type at its next free scan number.

        Returns:
            The stored MapRecord, or None if range entry was cancelled
        """
        result = self.compute(data_type, scans, ranges)
        if result is None:
            return None

        if len(scans) == 1:
            target_type, target_scan = data_type, scans[0]
        else:
            target_type = self.config.meta_analysis_data_type
            target_scan = self.repository.next_scan(target_type)

        record = MapRecord(
            data_type=target_type,
            scan=target_scan,
            map_name=map_name or self.config.map_name,
            result=result,
        )
        self.repository.store_map(record)

        logger.info(
            f"Polar-angle map '{record.map_name}' stored as {target_type} scan {target_scan} "
            f"(from {data_type} scans {list(scans)})"
        )
        return record
