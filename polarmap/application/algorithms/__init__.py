"""Core algorithms: phase-to-angle conversion and winner-take-all aggregation."""

from .phase_conversion import phase_to_angle, convert_scan
from .scan_aggregation import aggregate_scans, aggregate_observations

__all__ = ["phase_to_angle", "convert_scan", "aggregate_scans", "aggregate_observations"]
