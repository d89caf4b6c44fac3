"""
Angle Range Value Objects

An AngleRange is the interval of visual-field angle (degrees, clockwise from
the reference meridian) that one full stimulus cycle, phase 0 to 2*pi, sweeps
through. Direction is implicit in the order of the endpoints.
"""

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, Field


class AngleRange(BaseModel):
    """Target interval for one scan's phase-to-angle conversion.

    Endpoints are kept exactly as given: no ordering requirement and no
    wraparound into [0, 360).
    """
    start_angle: float = Field(allow_inf_nan=False, description="Angle at phase 0 (degrees)")
    end_angle: float = Field(allow_inf_nan=False, description="Angle at phase 2*pi (degrees)")

    model_config = {"frozen": True}

    @classmethod
    def from_pair(cls, pair) -> "AngleRange":
        """Build from any two-element sequence (start, end)."""
        start, end = pair
        return cls(start_angle=float(start), end_angle=float(end))

    def as_tuple(self) -> Tuple[float, float]:
        return self.start_angle, self.end_angle

    @property
    def span(self) -> float:
        """Signed extent; negative for counterclockwise ranges"""
        return self.end_angle - self.start_angle

    @property
    def is_reversed(self) -> bool:
        return self.end_angle < self.start_angle

    def __str__(self) -> str:
        return f"[{self.start_angle:g}, {self.end_angle:g}]"


class RotationDirection(Enum):
    """Wedge rotation direction as seen by the subject"""
    CLOCKWISE = "clockwise"
    COUNTERCLOCKWISE = "counterclockwise"


class WedgeStimulusParams(BaseModel):
    """Rotating-wedge stimulus description used to derive a scan's AngleRange"""
    start_angle: float = Field(default=0.0, allow_inf_nan=False, description="Wedge angle at cycle start (degrees)")
    width: float = Field(default=45.0, gt=0.0, le=360.0, description="Wedge width (degrees)")
    direction: RotationDirection = RotationDirection.CLOCKWISE
    visual_field: float = Field(default=360.0, gt=0.0, le=360.0, description="Angle swept per cycle (degrees)")

    model_config = {"frozen": True}

    def to_angle_range(self) -> AngleRange:
        """Range swept by one stimulus cycle.

        The wedge width does not shift the range; start_angle is where the
        wedge sits at phase 0.
        """
        if self.direction == RotationDirection.CLOCKWISE:
            end_angle = self.start_angle + self.visual_field
        else:
            end_angle = self.start_angle - self.visual_field
        return AngleRange(start_angle=self.start_angle, end_angle=end_angle)
