import math
from typing import Iterable, NamedTuple, Optional

EARTH_RADIUS_KM = 6371


def to_radians(degrees: float) -> float:
    return degrees * math.pi / 180


def to_degrees(radians: float) -> float:
    return radians * 180 / math.pi


class Coordinate(NamedTuple):
    latitude: float
    longitude: float

    def is_valid(self) -> bool:
        return -90 <= self.latitude <= 90 and -180 <= self.longitude <= 180

    def rounded(self, precision: int) -> "Coordinate":
        return Coordinate(round(self.latitude, precision), round(self.longitude, precision))

    def to_dict(self):
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data) -> "Coordinate":
        return cls(float(data["latitude"]), float(data["longitude"]))


def haversine_meters(a: Coordinate, b: Coordinate) -> float:
    """
    Calculate the great-circle distance between two points on Earth, in meters.
    """
    phi1 = to_radians(a.latitude)
    phi2 = to_radians(b.latitude)
    delta_phi = to_radians(b.latitude - a.latitude)
    delta_lambda = to_radians(b.longitude - a.longitude)
    h = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c * 1000


class Bounds(NamedTuple):
    min: Coordinate
    max: Coordinate

    def contains(self, point: Coordinate) -> bool:
        return (self.min.latitude <= point.latitude <= self.max.latitude and
                self.min.longitude <= point.longitude <= self.max.longitude)

    def to_dict(self):
        return {"min": self.min.to_dict(), "max": self.max.to_dict()}


def bounds_of(points: Iterable[Coordinate]) -> Optional[Bounds]:
    """Return the smallest lat/lon box holding every point, or None if there are none."""
    min_lat = min_lon = float("inf")
    max_lat = max_lon = float("-inf")
    seen = False
    for lat, lon in points:
        seen = True
        min_lat = min(min_lat, lat)
        min_lon = min(min_lon, lon)
        max_lat = max(max_lat, lat)
        max_lon = max(max_lon, lon)
    if not seen:
        return None
    return Bounds(Coordinate(min_lat, min_lon), Coordinate(max_lat, max_lon))
