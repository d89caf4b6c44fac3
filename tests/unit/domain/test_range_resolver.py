"""
Unit Tests for range resolution

Tests shared and per-scan ranges, the batch and stimulus resolvers and
cancellation through a resolver.
"""

import pytest
from unittest.mock import Mock

from polarmap.domain.services.error_handler import (
    PolarMapDomainError,
    PreconditionError,
    RangeAcquisitionCancelled,
)
from polarmap.domain.services.range_resolver import (
    RangeResolver,
    StaticRangeResolver,
    StimulusRangeResolver,
    as_angle_range,
    is_single_range,
    resolve_ranges,
)
from polarmap.domain.value_objects.angle_range import AngleRange, RotationDirection, WedgeStimulusParams
from polarmap.domain.value_objects.scan import ScanDescriptor


class TestHelpers:
    """Test range coercion helpers"""

    def test_as_angle_range_passthrough(self, full_circle):
        assert as_angle_range(full_circle) is full_circle

    def test_as_angle_range_from_pair(self):
        assert as_angle_range((10, 20)) == AngleRange(start_angle=10.0, end_angle=20.0)

    @pytest.mark.parametrize("bad", [(1, 2, 3), ("a", "b"), (float("nan"), 0.0), 5])
    def test_as_angle_range_rejects(self, bad):
        with pytest.raises(PreconditionError):
            as_angle_range(bad)

    @pytest.mark.parametrize("value,expected", [
        (AngleRange(start_angle=0, end_angle=1), True),
        ((0, 360), True),
        ([0.0, 360.0], True),
        ([(0, 360), (360, 0)], False),
        ([(0, 360)], False),
        ("ab", False),
    ])
    def test_is_single_range(self, value, expected):
        assert is_single_range(value) is expected


class TestResolveRanges:
    """Test producing one range per scan"""

    def test_shared_range_applies_to_all(self, scan_descriptors):
        ranges = resolve_ranges(scan_descriptors, ranges=(0, 360))

        assert ranges == [AngleRange(start_angle=0, end_angle=360)] * 3

    def test_list_of_ranges(self, scan_descriptors):
        ranges = resolve_ranges(scan_descriptors, ranges=[(0, 360), (360, 0), (90, 270)])

        assert [r.as_tuple() for r in ranges] == [(0, 360), (360, 0), (90, 270)]

    def test_list_length_must_match(self, scan_descriptors):
        with pytest.raises(PreconditionError) as exc_info:
            resolve_ranges(scan_descriptors, ranges=[(0, 360), (360, 0)])
        assert exc_info.value.context == {"n_ranges": 2, "n_scans": 3}

    def test_no_scans(self):
        with pytest.raises(PreconditionError):
            resolve_ranges([], ranges=(0, 360))

    def test_nothing_to_resolve_with(self, scan_descriptors):
        with pytest.raises(PreconditionError):
            resolve_ranges(scan_descriptors)

    def test_explicit_ranges_skip_resolver(self, scan_descriptors):
        resolver = Mock()
        resolve_ranges(scan_descriptors, ranges=(0, 360), resolver=resolver)
        resolver.resolve.assert_not_called()

    def test_resolver_called_in_scan_order(self, scan_descriptors):
        resolver = Mock()
        resolver.resolve.side_effect = lambda scan: AngleRange(start_angle=scan.scan, end_angle=0)

        ranges = resolve_ranges(scan_descriptors, resolver=resolver)

        assert [r.start_angle for r in ranges] == [1.0, 2.0, 3.0]

    def test_cancel_stops_prompting(self, scan_descriptors):
        resolver = Mock()
        resolver.resolve.side_effect = [AngleRange(start_angle=0, end_angle=360), None, None]

        with pytest.raises(RangeAcquisitionCancelled) as exc_info:
            resolve_ranges(scan_descriptors, resolver=resolver)

        assert resolver.resolve.call_count == 2
        assert exc_info.value.scan == 2
        assert exc_info.value.data_type == "Original"

    def test_cancellation_is_not_a_domain_error(self):
        assert not issubclass(RangeAcquisitionCancelled, PolarMapDomainError)


class TestStaticRangeResolver:
    """Test the batch resolver"""

    def test_shared(self, scan_descriptors):
        resolver = StaticRangeResolver(shared=(0, 360))
        assert isinstance(resolver, RangeResolver)
        assert resolver.resolve(scan_descriptors[2]) == AngleRange(start_angle=0, end_angle=360)

    def test_per_scan_overrides_shared(self, scan_descriptors):
        resolver = StaticRangeResolver(shared=(0, 360), per_scan={"2": (360, 0)})

        assert resolver.resolve(scan_descriptors[0]).as_tuple() == (0, 360)
        assert resolver.resolve(scan_descriptors[1]).as_tuple() == (360, 0)

    def test_missing_scan_is_precondition_error(self, scan_descriptors):
        resolver = StaticRangeResolver(per_scan={1: (0, 360)})

        with pytest.raises(PreconditionError) as exc_info:
            resolver.resolve(scan_descriptors[1])
        assert exc_info.value.context["scan"] == 2


class TestStimulusRangeResolver:
    """Test ranges derived from wedge stimulus parameters"""

    def test_single_params_for_all_scans(self, scan_descriptors):
        resolver = StimulusRangeResolver(WedgeStimulusParams(start_angle=90.0))

        assert resolver.resolve(scan_descriptors[0]).as_tuple() == (90.0, 450.0)
        assert resolver.resolve(scan_descriptors[2]).as_tuple() == (90.0, 450.0)

    def test_per_scan_params(self, scan_descriptors):
        resolver = StimulusRangeResolver({
            1: WedgeStimulusParams(),
            2: WedgeStimulusParams(start_angle=360.0, direction=RotationDirection.COUNTERCLOCKWISE),
        })

        ranges = resolve_ranges(scan_descriptors[:2], resolver=resolver)

        assert [r.as_tuple() for r in ranges] == [(0.0, 360.0), (360.0, 0.0)]

    def test_unknown_scan(self, scan_descriptors):
        resolver = StimulusRangeResolver({1: WedgeStimulusParams()})

        with pytest.raises(PreconditionError):
            resolver.resolve(ScanDescriptor("Original", 9))
