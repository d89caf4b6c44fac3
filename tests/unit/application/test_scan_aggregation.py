"""
Tests for winner-take-all multi-scan aggregation

Covers the single-scan identity path, voxelwise maximum coherence, the
highest-index tie rule, shape preconditions and output freshness.
"""

import numpy as np
import pytest

from polarmap.application.algorithms.phase_conversion import phase_to_angle
from polarmap.application.algorithms.scan_aggregation import aggregate_scans, aggregate_observations
from polarmap.domain.services.error_handler import PreconditionError, ErrorCategory
from polarmap.domain.value_objects.angle_range import AngleRange


def reference_winner_take_all(angle_maps, coherence_maps):
    """Voxel-by-voxel restatement of the selection rule"""
    coherence = np.max(np.stack(coherence_maps), axis=0)
    result = np.empty_like(coherence)
    for index in np.ndindex(coherence.shape):
        winners = [i for i, c in enumerate(coherence_maps) if c[index] == coherence[index]]
        result[index] = angle_maps[max(winners)][index]
    return result, coherence


class TestSingleScan:
    """N == 1 degenerates to identity"""

    def test_identity(self, phase_field, coherence_fields, full_circle):
        angles = phase_to_angle(phase_field, full_circle)

        result = aggregate_scans([angles], [coherence_fields[0]])

        np.testing.assert_array_equal(result.map, angles)
        np.testing.assert_array_equal(result.coherence, coherence_fields[0])

    def test_outputs_do_not_alias_inputs(self, coherence_fields):
        angles = np.full(coherence_fields[0].shape, 12.5)

        result = aggregate_scans([angles], [coherence_fields[0]])

        assert not np.shares_memory(result.map, angles)
        assert not np.shares_memory(result.coherence, coherence_fields[0])

    def test_nan_coherence_passes_through(self):
        result = aggregate_scans([np.array([10.0, 20.0])], [np.array([np.nan, 0.4])])
        assert np.isnan(result.coherence[0])
        assert result.map[0] == 10.0


class TestWinnerTakeAll:
    """N > 1: maximum coherence wins, highest index on ties"""

    def test_two_voxel_scenario_higher_coherence_wins(self, make_observation, full_circle):
        scan_a = make_observation(1, [np.pi], [0.3], full_circle)
        scan_b = make_observation(2, [np.pi / 2], [0.7], full_circle)

        result = aggregate_observations([scan_a, scan_b])

        assert result.coherence[0] == 0.7
        assert result.map[0] == 90.0

    def test_order_does_not_matter_without_ties(self, make_observation, full_circle):
        scan_a = make_observation(1, [np.pi], [0.3], full_circle)
        scan_b = make_observation(2, [np.pi / 2], [0.7], full_circle)

        result = aggregate_observations([scan_b, scan_a])

        assert result.coherence[0] == 0.7
        assert result.map[0] == 90.0

    def test_tie_goes_to_highest_index(self):
        result = aggregate_scans(
            [np.array([10.0]), np.array([200.0])],
            [np.array([0.5]), np.array([0.5])],
        )
        assert result.coherence[0] == 0.5
        assert result.map[0] == 200.0

    def test_tie_among_leaders_only(self):
        """A later scan below the maximum never overrides a tie winner"""
        result = aggregate_scans(
            [np.array([1.0]), np.array([2.0]), np.array([3.0])],
            [np.array([0.8]), np.array([0.8]), np.array([0.2])],
        )
        assert result.map[0] == 2.0
        assert result.coherence[0] == 0.8

    def test_matches_reference_over_random_grid(self, phase_field, coherence_fields, rng):
        angle_maps = [phase_to_angle(rng.permutation(phase_field.ravel()).reshape(phase_field.shape),
                                     AngleRange(start_angle=0.0, end_angle=360.0))
                      for _ in coherence_fields]
        # Force some exact ties
        coherence_fields[2][0, 0, :] = coherence_fields[0][0, 0, :]
        coherence_fields[1][1, :, 0] = 1.0
        coherence_fields[2][1, :, 0] = 1.0

        result = aggregate_scans(angle_maps, coherence_fields)
        expected_map, expected_coherence = reference_winner_take_all(angle_maps, coherence_fields)

        np.testing.assert_array_equal(result.coherence, expected_coherence)
        np.testing.assert_array_equal(result.map, expected_map)
        np.testing.assert_array_equal(result.map[1, :, 0], angle_maps[2][1, :, 0])

    def test_coherence_is_elementwise_maximum(self, coherence_fields):
        angle_maps = [np.full(coherence_fields[0].shape, float(i)) for i in range(3)]

        result = aggregate_scans(angle_maps, coherence_fields)

        np.testing.assert_array_equal(result.coherence, np.maximum.reduce(coherence_fields))

    def test_exact_equality_not_tolerance(self):
        """A near-tie is not a tie: the strictly larger coherence wins"""
        slightly_lower = np.nextafter(0.5, 0.0)
        result = aggregate_scans(
            [np.array([10.0]), np.array([200.0])],
            [np.array([0.5]), np.array([slightly_lower])],
        )
        assert result.map[0] == 10.0

    def test_inputs_not_mutated(self, coherence_fields):
        angle_maps = [np.full(coherence_fields[0].shape, float(i)) for i in range(3)]
        snapshots = [c.copy() for c in coherence_fields] + [a.copy() for a in angle_maps]

        aggregate_scans(angle_maps, coherence_fields)

        for before, after in zip(snapshots, coherence_fields + angle_maps):
            np.testing.assert_array_equal(before, after)

    def test_records_sources_and_ranges(self, make_observation, full_circle, reversed_circle):
        scans = [
            make_observation(1, [0.0], [0.1], full_circle),
            make_observation(4, [0.0], [0.9], reversed_circle),
        ]

        result = aggregate_observations(scans)

        assert [s.scan for s in result.source_scans] == [1, 4]
        assert result.angle_ranges == (full_circle, reversed_circle)
        assert result.map[0] == 360.0

    def test_nan_coherence_in_one_scan_is_skipped(self):
        result = aggregate_scans(
            [np.array([10.0, 20.0]), np.array([30.0, 40.0])],
            [np.array([np.nan, 0.2]), np.array([0.9, np.nan])],
        )
        np.testing.assert_array_equal(result.coherence, [0.9, 0.2])
        np.testing.assert_array_equal(result.map, [30.0, 20.0])

    def test_nan_coherence_in_every_scan_leaves_voxel_unassigned(self):
        result = aggregate_scans(
            [np.array([10.0, 20.0]), np.array([30.0, 40.0])],
            [np.array([np.nan, 0.2]), np.array([np.nan, 0.1])],
        )
        assert np.isnan(result.coherence[0])
        assert np.isnan(result.map[0])
        assert result.map[1] == 20.0


class TestPreconditions:
    """Invalid inputs are rejected before any computation"""

    def test_empty_scan_list(self):
        with pytest.raises(PreconditionError) as exc_info:
            aggregate_scans([], [])
        assert exc_info.value.category == ErrorCategory.VALIDATION

    def test_empty_observation_list(self):
        with pytest.raises(PreconditionError):
            aggregate_observations([])

    def test_mismatched_coherence_shapes(self):
        with pytest.raises(PreconditionError) as exc_info:
            aggregate_scans(
                [np.zeros((2, 2)), np.zeros((2, 2))],
                [np.zeros((2, 2)), np.zeros((2, 3))],
            )
        assert exc_info.value.context["scan_index"] == 1

    def test_angle_shape_differs_from_coherence(self):
        with pytest.raises(PreconditionError):
            aggregate_scans([np.zeros(4)], [np.zeros((2, 2))])

    def test_counts_differ(self):
        with pytest.raises(PreconditionError):
            aggregate_scans([np.zeros(3)], [np.zeros(3), np.zeros(3)])

    def test_phase_coherence_mismatch_within_observation(self, make_observation, full_circle):
        scans = [
            make_observation(1, [0.0, 1.0], [0.5, 0.5], full_circle),
            make_observation(2, [0.0, 1.0, 2.0], [0.5, 0.5], full_circle),
        ]
        with pytest.raises(PreconditionError):
            aggregate_observations(scans)
