"""Geographic scopes understood by the upstream client."""

from dataclasses import dataclass
from enum import Enum


class RegionScope(str, Enum):
    """Region tag carried by cache entries and fetch requests."""

    WORLDWIDE = "worldwide"
    US = "us"


@dataclass(frozen=True)
class GeoBounds:
    min_latitude: float
    max_latitude: float
    min_longitude: float
    max_longitude: float

    def as_params(self) -> dict[str, float]:
        return {
            "minlatitude": self.min_latitude,
            "maxlatitude": self.max_latitude,
            "minlongitude": self.min_longitude,
            "maxlongitude": self.max_longitude,
        }


US_REGION_BOUNDS: dict[str, GeoBounds] = {
    "continental": GeoBounds(24.396, 49.384, -125.0, -66.93),
    "alaska": GeoBounds(51.0, 71.5, -180.0, -130.0),
    "hawaii": GeoBounds(18.5, 28.5, -178.5, -154.5),
    "puerto_rico_usvi": GeoBounds(17.5, 18.6, -68.0, -64.5),
    "guam": GeoBounds(13.0, 14.0, 144.0, 145.5),
}
