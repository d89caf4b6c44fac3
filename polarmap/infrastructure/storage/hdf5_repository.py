"""
HDF5 Repository - coherence analyses in, polar-angle maps out

Layout under the data root, one directory per data type:

    <data_root>/<data_type>/coherence_analysis.h5
        /scan_<n>/phase, /scan_<n>/coherence    (attr: annotation)
    <data_root>/<data_type>/polar_angle_map.h5
        /scan_<n>/map, /scan_<n>/coherence      (attrs: map_name, source_scans,
                                                 angle_ranges, created_timestamp)

Pre-computed .npy pairs (phase_scan<n>.npy, coherence_scan<n>.npy) in the data
type directory are read when the HDF5 file has no entry for a scan.

Writes go to a .tmp copy that is renamed over the original, so a failed write
never leaves a half-written collection behind.
"""

import json
import logging
import os
import re
import shutil
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import h5py
import numpy as np

from ...domain.repositories.coherence_repository import CoherenceRepositoryInterface
from ...domain.services.error_handler import (
    ErrorHandlingService,
    LoggingErrorLogger,
    MissingInputError,
    StorageError,
)
from ...domain.value_objects.angle_range import AngleRange
from ...domain.value_objects.scan import AggregateResult, MapRecord, ScanDescriptor, ScanObservation

logger = logging.getLogger(__name__)

_SCAN_GROUP = re.compile(r"^scan_(\d+)$")
_NPY_PHASE = re.compile(r"^phase_scan(\d+)\.npy$")


def scan_group_name(scan: int) -> str:
    return f"scan_{scan}"


class HDF5CoherenceRepository(CoherenceRepositoryInterface):
    """
    HDF5-based repository for coherence analyses and polar-angle map collections
    """

    def __init__(
        self,
        data_root: Path,
        coherence_file: str = "coherence_analysis.h5",
        map_file: str = "polar_angle_map.h5",
        error_handler: Optional[ErrorHandlingService] = None
    ):
        """
        Args:
            data_root: Directory holding one sub-directory per data type
            coherence_file: File name of the per-data-type coherence analysis
            map_file: File name of the per-data-type polar-angle map collection
            error_handler: Converts storage exceptions into domain errors
        """
        self.data_root = Path(data_root)
        self.coherence_file = coherence_file
        self.map_file = map_file
        self.error_handler = error_handler or ErrorHandlingService(LoggingErrorLogger(logger))

        logger.info(f"HDF5CoherenceRepository initialized: {self.data_root}")

    # ========== PATHS ==========

    def data_type_dir(self, data_type: str) -> Path:
        return self.data_root / data_type

    def coherence_path(self, data_type: str) -> Path:
        return self.data_type_dir(data_type) / self.coherence_file

    def map_path(self, data_type: str) -> Path:
        return self.data_type_dir(data_type) / self.map_file

    # ========== COHERENCE ANALYSES ==========

    def list_scans(self, data_type: str) -> List[int]:
        scans = set(self._h5_scans(self.coherence_path(data_type)))

        directory = self.data_type_dir(data_type)
        if directory.is_dir():
            for entry in directory.iterdir():
                match = _NPY_PHASE.match(entry.name)
                if match and (directory / f"coherence_scan{match.group(1)}.npy").exists():
                    scans.add(int(match.group(1)))

        return sorted(scans)

    def has_scan(self, data_type: str, scan: int) -> bool:
        return scan in self.list_scans(data_type)

    def load_scan(self, data_type: str, scan: int) -> ScanObservation:
        """Load phase and coherence for one scan.

        Raises:
            MissingInputError: No coherence analysis for this scan
            StorageError: The files exist but could not be read
        """
        h5_path = self.coherence_path(data_type)
        group = scan_group_name(scan)

        try:
            if h5_path.exists():
                with h5py.File(h5_path, "r") as f:
                    if group in f:
                        phase = f[group]["phase"][()]
                        coherence = f[group]["coherence"][()]
                        annotation = str(f[group].attrs.get("annotation", ""))
                        logger.info(f"  Loaded {data_type} scan {scan} from {h5_path.name}: {coherence.shape}")
                        return ScanObservation(
                            descriptor=ScanDescriptor(data_type, scan, annotation),
                            phase=phase,
                            coherence=coherence,
                        )

            phase_file = self.data_type_dir(data_type) / f"phase_scan{scan}.npy"
            coherence_file = self.data_type_dir(data_type) / f"coherence_scan{scan}.npy"
            if phase_file.exists() and coherence_file.exists():
                phase = np.load(str(phase_file))
                coherence = np.load(str(coherence_file))
                logger.info(f"  Loaded {data_type} scan {scan} from .npy files: {coherence.shape}")
                return ScanObservation(
                    descriptor=ScanDescriptor(data_type, scan),
                    phase=phase,
                    coherence=coherence,
                )
        except (OSError, KeyError, ValueError) as e:
            domain_error = self.error_handler.handle_exception(
                e,
                "STORAGE_ERROR",
                f"Could not read coherence analysis for {data_type} scan {scan}",
                data_type=data_type,
                scan=scan,
                path=str(h5_path),
            )
            raise StorageError(domain_error) from e

        raise MissingInputError(
            f"No coherence analysis for {data_type} scan {scan} - run the coherence analysis first",
            data_type=data_type,
            scan=scan,
            path=str(h5_path),
        )

    def write_coherence_analysis(
        self,
        data_type: str,
        scan: int,
        phase: np.ndarray,
        coherence: np.ndarray,
        annotation: str = ""
    ) -> Path:
        """Store (or replace) one scan's phase and coherence fields."""
        path = self.coherence_path(data_type)
        with self._atomic_update(path) as f:
            group_name = scan_group_name(scan)
            if group_name in f:
                del f[group_name]
            group = f.create_group(group_name)
            group.create_dataset("phase", data=np.ascontiguousarray(phase))
            group.create_dataset("coherence", data=np.ascontiguousarray(coherence))
            group.attrs["annotation"] = annotation

        logger.info(f"Stored coherence analysis for {data_type} scan {scan}")
        return path

    # ========== POLAR-ANGLE MAPS ==========

    def store_map(self, record: MapRecord) -> Path:
        """Write one map into the data type's collection, keeping other scans' maps."""
        path = self.map_path(record.data_type)
        result = record.result
        timestamp = record.created_timestamp or datetime.now().isoformat()

        with self._atomic_update(path) as f:
            group_name = scan_group_name(record.scan)
            if group_name in f:
                del f[group_name]
            group = f.create_group(group_name)
            group.create_dataset("map", data=np.ascontiguousarray(result.map))
            group.create_dataset("coherence", data=np.ascontiguousarray(result.coherence))
            group.attrs["map_name"] = record.map_name
            group.attrs["created_timestamp"] = timestamp
            group.attrs["source_scans"] = json.dumps([
                {"data_type": s.data_type, "scan": s.scan, "annotation": s.annotation}
                for s in result.source_scans
            ])
            group.attrs["angle_ranges"] = json.dumps([list(r.as_tuple()) for r in result.angle_ranges])
            f.attrs["map_name"] = record.map_name

        logger.info(f"Stored '{record.map_name}' for {record.data_type} scan {record.scan} in {path}")
        return path

    def load_map(self, data_type: str, scan: int) -> MapRecord:
        path = self.map_path(data_type)
        group_name = scan_group_name(scan)

        if not path.exists():
            raise MissingInputError(
                f"No polar-angle maps stored for {data_type}",
                data_type=data_type,
                path=str(path),
            )

        try:
            with h5py.File(path, "r") as f:
                if group_name not in f:
                    raise MissingInputError(
                        f"No polar-angle map stored for {data_type} scan {scan}",
                        data_type=data_type,
                        scan=scan,
                    )
                group = f[group_name]
                sources = json.loads(group.attrs.get("source_scans", "[]"))
                ranges = json.loads(group.attrs.get("angle_ranges", "[]"))
                result = AggregateResult(
                    map=group["map"][()],
                    coherence=group["coherence"][()],
                    source_scans=tuple(
                        ScanDescriptor(s["data_type"], int(s["scan"]), s.get("annotation", ""))
                        for s in sources
                    ),
                    angle_ranges=tuple(AngleRange.from_pair(r) for r in ranges),
                )
                return MapRecord(
                    data_type=data_type,
                    scan=scan,
                    map_name=str(group.attrs.get("map_name", "")),
                    result=result,
                    created_timestamp=group.attrs.get("created_timestamp"),
                )
        except (OSError, KeyError, ValueError) as e:
            domain_error = self.error_handler.handle_exception(
                e,
                "STORAGE_ERROR",
                f"Could not read polar-angle map for {data_type} scan {scan}",
                data_type=data_type,
                scan=scan,
                path=str(path),
            )
            raise StorageError(domain_error) from e

    def list_maps(self, data_type: str) -> Dict[int, str]:
        path = self.map_path(data_type)
        if not path.exists():
            return {}
        with self._open_for_read(path) as f:
            return {
                int(_SCAN_GROUP.match(name).group(1)): str(f[name].attrs.get("map_name", ""))
                for name in f
                if _SCAN_GROUP.match(name)
            }

    def next_scan(self, data_type: str) -> int:
        used = set(self.list_scans(data_type)) | set(self.list_maps(data_type))
        return max(used) + 1 if used else 1

    # ========== HELPERS ==========

    def _h5_scans(self, path: Path) -> List[int]:
        if not path.exists():
            return []
        with self._open_for_read(path) as f:
            return [int(m.group(1)) for m in map(_SCAN_GROUP.match, f) if m]

    @contextmanager
    def _open_for_read(self, path: Path) -> Iterator[h5py.File]:
        try:
            f = h5py.File(path, "r")
        except OSError as e:
            domain_error = self.error_handler.handle_exception(
                e,
                "STORAGE_ERROR",
                f"Could not open {path}",
                path=str(path),
            )
            raise StorageError(domain_error) from e
        with f:
            yield f

    @contextmanager
    def _atomic_update(self, path: Path) -> Iterator[h5py.File]:
        """Open a temporary copy of path for writing and rename it into place on success."""
        tmp_path = path.with_name(path.name + ".tmp")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Remove any existing temp file from previous failed writes
            if tmp_path.exists():
                tmp_path.unlink()
            if path.exists():
                shutil.copy2(path, tmp_path)

            with h5py.File(tmp_path, "a") as f:
                yield f

            os.replace(tmp_path, path)
        except (OSError, ValueError, TypeError) as e:
            if tmp_path.exists():
                tmp_path.unlink()
            domain_error = self.error_handler.handle_exception(
                e,
                "STORAGE_ERROR",
                f"Could not write {path}",
                path=str(path),
            )
            raise StorageError(domain_error) from e
