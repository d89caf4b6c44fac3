"""Centralized logging configuration for polarmap.

Call configure_logging() ONCE at application startup. Library modules only
create module-level loggers with logging.getLogger(__name__).
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(level: Union[int, str]) -> int:
    """Translate a level name ("INFO", "debug") or number into a logging level."""
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown logging level: {level!r}")
    return resolved


def configure_logging(
    level: Union[int, str] = logging.WARNING,
    format_string: Optional[str] = None,
    log_file: Optional[Path] = None
) -> None:
    """Configure logging for the entire application.

    Args:
        level: Logging level (logging.DEBUG, "INFO", etc.)
        format_string: Custom format string (optional)
        log_file: Also write records to this file when given
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    numeric_level = resolve_level(level)

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    # Root level set explicitly so child loggers inherit it
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    logging.basicConfig(
        level=numeric_level,
        format=format_string,
        handlers=handlers,
        force=True  # Override any previous configuration
    )
