"""
Domain Repository Interface for coherence analyses and polar-angle maps

Abstract interface following clean architecture: the domain and application
layers depend on this, infrastructure implements it.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List

from ..value_objects.scan import MapRecord, ScanObservation


class CoherenceRepositoryInterface(ABC):
    """Storage of per-scan coherence analyses and the maps derived from them"""

    @abstractmethod
    def list_scans(self, data_type: str) -> List[int]:
        """Scans of data_type that have a stored coherence analysis"""
        pass

    @abstractmethod
    def has_scan(self, data_type: str, scan: int) -> bool:
        pass

    @abstractmethod
    def load_scan(self, data_type: str, scan: int) -> ScanObservation:
        """Load phase and coherence for one scan (angle range left unset).

        Raises MissingInputError when the scan has no coherence analysis.
        """
        pass

    @abstractmethod
    def store_map(self, record: MapRecord) -> Path:
        """Persist a map, keeping maps already stored for other scans"""
        pass

    @abstractmethod
    def load_map(self, data_type: str, scan: int) -> MapRecord:
        pass

    @abstractmethod
    def list_maps(self, data_type: str) -> Dict[int, str]:
        """Stored maps of data_type as {scan: map_name}"""
        pass

    @abstractmethod
    def next_scan(self, data_type: str) -> int:
        """First scan number not used by a coherence analysis or map"""
        pass
