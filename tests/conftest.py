"""
Test Configuration and Fixtures

Shared fixtures for the polarmap test suite: synthetic phase/coherence fields,
temporary HDF5 data roots and a repository pre-populated with scans.
"""

import tempfile
from pathlib import Path

import numpy as np
import pytest

from polarmap.domain.value_objects.angle_range import AngleRange
from polarmap.domain.value_objects.scan import ScanDescriptor, ScanObservation
from polarmap.infrastructure.storage.hdf5_repository import HDF5CoherenceRepository

GRID_SHAPE = (4, 5, 3)


@pytest.fixture
def rng():
    """Seeded generator so failures are reproducible"""
    return np.random.default_rng(20240611)


@pytest.fixture
def phase_field(rng):
    """Phase values in [0, 2*pi) over the test voxel grid"""
    return rng.uniform(0.0, 2 * np.pi, GRID_SHAPE)


@pytest.fixture
def coherence_fields(rng):
    """Three coherence fields over the test voxel grid"""
    return [rng.uniform(0.0, 1.0, GRID_SHAPE) for _ in range(3)]


@pytest.fixture
def full_circle():
    return AngleRange(start_angle=0.0, end_angle=360.0)


@pytest.fixture
def reversed_circle():
    return AngleRange(start_angle=360.0, end_angle=0.0)


@pytest.fixture
def scan_descriptors():
    return [
        ScanDescriptor("Original", 1, "wedge cw"),
        ScanDescriptor("Original", 2, "wedge ccw"),
        ScanDescriptor("Original", 3),
    ]


@pytest.fixture
def make_observation():
    """Factory for ScanObservation built from plain lists or arrays"""
    def _make(scan, phase, coherence, angle_range=None, data_type="Original"):
        return ScanObservation(
            descriptor=ScanDescriptor(data_type, scan),
            phase=np.asarray(phase, dtype=float),
            coherence=np.asarray(coherence, dtype=float),
            angle_range=angle_range,
        )
    return _make


@pytest.fixture
def temp_data_root():
    """Create temporary data root for HDF5 files"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def repository(temp_data_root):
    return HDF5CoherenceRepository(temp_data_root)


@pytest.fixture
def populated_repository(repository, rng):
    """Repository holding scans 1-3 of data type 'Original'"""
    for scan, annotation in [(1, "wedge cw"), (2, "wedge ccw"), (3, "")]:
        repository.write_coherence_analysis(
            "Original",
            scan,
            phase=rng.uniform(0.0, 2 * np.pi, GRID_SHAPE),
            coherence=rng.uniform(0.0, 1.0, GRID_SHAPE),
            annotation=annotation,
        )
    return repository
