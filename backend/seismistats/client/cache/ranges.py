"""Magnitude interval used for cache keys and covering lookups."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MagnitudeRange:
    """Closed magnitude interval [min_magnitude, max_magnitude]."""

    min_magnitude: float
    max_magnitude: float

    def __post_init__(self) -> None:
        if self.min_magnitude > self.max_magnitude:
            raise ValueError(
                f"min_magnitude {self.min_magnitude} exceeds max_magnitude {self.max_magnitude}"
            )

    def covers(self, other: "MagnitudeRange") -> bool:
        """True if every magnitude in other also lies in this range."""
        return (
            self.min_magnitude <= other.min_magnitude
            and self.max_magnitude >= other.max_magnitude
        )

    def contains(self, magnitude: float) -> bool:
        return self.min_magnitude <= magnitude <= self.max_magnitude


def format_magnitude(value: float) -> str:
    """Render 4.0 as "4" and 2.5 as "2.5" so keys stay stable across int/float inputs."""
    return f"{value:g}"
