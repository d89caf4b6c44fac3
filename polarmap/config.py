"""Runtime configuration primitives.

All runtime configuration is expressed as immutable dataclasses so that
components receive explicit settings during initialization. A JSON file can
override any field; anything it leaves out falls back to the defaults below.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

from .domain.services.error_handler import ConfigurationError
from .logging_config import resolve_level

DEFAULT_COHERENCE_FILE = "coherence_analysis.h5"
DEFAULT_MAP_FILE = "polar_angle_map.h5"


@dataclass(frozen=True)
class StorageConfig:
    """Where coherence analyses are read from and maps are written to."""

    data_root: Path
    coherence_file: str = DEFAULT_COHERENCE_FILE
    map_file: str = DEFAULT_MAP_FILE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "data_root": str(self.data_root),
            "coherence_file": self.coherence_file,
            "map_file": self.map_file,
        }


@dataclass(frozen=True)
class MappingConfig:
    """Polar-angle mapping configuration."""

    map_name: str = "Polar Angle"
    meta_analysis_data_type: str = "MetaAnalysis"
    default_range: Optional[Tuple[float, float]] = None  # Applied to every scan
    scan_ranges: Dict[int, Tuple[float, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "map_name": self.map_name,
            "meta_analysis_data_type": self.meta_analysis_data_type,
            "default_range": list(self.default_range) if self.default_range is not None else None,
            "scan_ranges": {str(scan): list(rng) for scan, rng in self.scan_ranges.items()},
        }


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    log_file: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "level": self.level,
            "log_file": str(self.log_file) if self.log_file is not None else None,
        }


@dataclass(frozen=True)
class AppConfig:
    """Composite application configuration."""

    storage: StorageConfig
    mapping: MappingConfig
    logging: LoggingConfig

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "storage": self.storage.to_dict(),
            "mapping": self.mapping.to_dict(),
            "logging": self.logging.to_dict(),
        }

    def save(self, path: str) -> None:
        """Write configuration to a JSON file readable by from_file()."""
        with open(Path(path), "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @staticmethod
    def from_file(path: str) -> "AppConfig":
        """Load configuration from JSON file.

        Relative paths in the file are resolved against the file's directory.

        Args:
            path: Path to JSON configuration file

        Returns:
            AppConfig instance populated from file
        """
        file_path = Path(path)
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                config_path=str(file_path),
            )

        try:
            with open(file_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Configuration file is not valid JSON: {file_path}",
                config_path=str(file_path),
                reason=str(e),
            ) from e

        return AppConfig.from_dict(data, base_dir=file_path.parent)

    @staticmethod
    def from_dict(data: Dict[str, Any], base_dir: Optional[Path] = None) -> "AppConfig":
        """Build configuration from a plain dictionary (the JSON file structure)."""
        base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

        storage = data.get("storage", {})
        mapping = data.get("mapping", {})
        logging_section = data.get("logging", {})

        data_root = Path(storage.get("data_root", "."))
        if not data_root.is_absolute():
            data_root = base_dir / data_root

        log_file = logging_section.get("log_file")
        if log_file is not None:
            log_file = Path(log_file)
            if not log_file.is_absolute():
                log_file = base_dir / log_file

        level = logging_section.get("level", "WARNING")
        try:
            resolve_level(level)
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown logging level: {level!r}",
                level=str(level),
            ) from e

        try:
            default_range = mapping.get("default_range")
            if default_range is not None:
                default_range = _as_pair(default_range)

            scan_ranges = {
                int(scan): _as_pair(rng)
                for scan, rng in mapping.get("scan_ranges", {}).items()
            }
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                "Angle ranges must be [start, end] pairs keyed by scan number",
                reason=str(e),
            ) from e

        return AppConfig(
            storage=StorageConfig(
                data_root=data_root,
                coherence_file=storage.get("coherence_file", DEFAULT_COHERENCE_FILE),
                map_file=storage.get("map_file", DEFAULT_MAP_FILE),
            ),
            mapping=MappingConfig(
                map_name=mapping.get("map_name", "Polar Angle"),
                meta_analysis_data_type=mapping.get("meta_analysis_data_type", "MetaAnalysis"),
                default_range=default_range,
                scan_ranges=scan_ranges,
            ),
            logging=LoggingConfig(
                level=level,
                log_file=log_file,
            ),
        )

    @staticmethod
    def default(data_root: Optional[Path] = None) -> "AppConfig":
        """Build the default configuration rooted at data_root (cwd if omitted)."""
        return AppConfig(
            storage=StorageConfig(data_root=Path(data_root) if data_root is not None else Path.cwd()),
            mapping=MappingConfig(),
            logging=LoggingConfig(),
        )


def _as_pair(value) -> Tuple[float, float]:
    start, end = value
    return float(start), float(end)
