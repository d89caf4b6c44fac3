"""
Scan Value Objects

Containers for per-scan phase/coherence fields and for the merged polar-angle
map. Arrays are numpy ndarrays over the same voxel grid.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

import numpy as np

from .angle_range import AngleRange


@dataclass(frozen=True)
class ScanDescriptor:
    """Identity of one scan within a data type."""

    data_type: str
    scan: int
    annotation: str = ""

    def __str__(self) -> str:
        label = f"{self.data_type} scan {self.scan}"
        return f"{label} ({self.annotation})" if self.annotation else label


@dataclass(frozen=True, eq=False)
class ScanObservation:
    """Everything needed to convert one scan: phase, coherence and range.

    angle_range stays None until the scan's range has been resolved.
    """

    descriptor: ScanDescriptor
    phase: np.ndarray
    coherence: np.ndarray
    angle_range: Optional[AngleRange] = None

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.coherence.shape

    def with_range(self, angle_range: AngleRange) -> ScanObservation:
        return replace(self, angle_range=angle_range)


@dataclass(frozen=True, eq=False)
class AggregateResult:
    """Merged polar-angle map and the coherence that won at each voxel."""

    map: np.ndarray
    coherence: np.ndarray
    source_scans: Tuple[ScanDescriptor, ...] = ()
    angle_ranges: Tuple[AngleRange, ...] = ()

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.map.shape


@dataclass(frozen=True)
class MapRecord:
    """A stored polar-angle map: where it lives and what it holds."""

    data_type: str
    scan: int
    map_name: str
    result: AggregateResult
    created_timestamp: Optional[str] = field(default=None, compare=False)
