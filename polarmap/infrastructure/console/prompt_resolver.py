"""Interactive angle-range entry on the terminal."""

import logging
import math
import re
import sys
from typing import Callable, Optional, TextIO

from ...domain.value_objects.angle_range import AngleRange
from ...domain.value_objects.scan import ScanDescriptor

logger = logging.getLogger(__name__)

CANCEL_WORDS = {"q", "quit", "cancel", "exit"}


def parse_range(text: str) -> Optional[AngleRange]:
    """Parse "start end" (space or comma separated); None if malformed."""
    parts = [p for p in re.split(r"[\s,;]+", text.strip().strip("[]()")) if p]
    if len(parts) != 2:
        return None
    try:
        start, end = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(start) and math.isfinite(end)):
        return None
    return AngleRange(start_angle=start, end_angle=end)


class ConsoleRangeResolver:
    """Asks the operator for each scan's (start, end) angles.

    A blank answer, a cancel word, end of input or Ctrl-C cancels; anything
    else that does not parse is asked again.
    """

    def __init__(
        self,
        input_func: Optional[Callable[[str], str]] = None,
        output: Optional[TextIO] = None
    ):
        self.input_func = input_func or input
        self.output = output

    def resolve(self, scan: ScanDescriptor) -> Optional[AngleRange]:
        annotation = f" [{scan.annotation}]" if scan.annotation else ""
        prompt = (
            f"{scan.data_type} scan {scan.scan}{annotation} - "
            f"angles at phase 0 and 2pi in degrees (blank to cancel): "
        )

        while True:
            try:
                answer = self.input_func(prompt)
            except (EOFError, KeyboardInterrupt):
                logger.info(f"Range entry aborted for {scan}")
                return None

            answer = answer.strip()
            if not answer or answer.lower() in CANCEL_WORDS:
                return None

            angle_range = parse_range(answer)
            if angle_range is not None:
                return angle_range

            print(
                f"Could not read '{answer}' - enter two numbers, e.g. '0 360' or '360 0'",
                file=self.output or sys.stdout,
            )
