import datetime
from enum import Enum
from typing import List, Optional

from .event import status_is_confirmed, status_name
from .geo import Coordinate


class TravelMode(Enum):
    DRIVING = "driving"
    TRAIN = "train"
    FLIGHT = "flight"


class ResolvedLocation:
    """A trip event's place reduced to a coordinate and a display name."""

    def __init__(self, coordinate: Coordinate, display_name: str, source_event_id, source_event_type, status=None):
        self.coordinate = coordinate
        self.display_name = display_name
        self.source_event_id = source_event_id
        self.source_event_type = source_event_type
        self.status = status

    @property
    def is_routable(self) -> bool:
        # Events without a status count as confirmed
        return status_is_confirmed(self.status)

    def to_dict(self):
        return {
            "coordinate": self.coordinate.to_dict(),
            "displayName": self.display_name,
            "sourceEventId": self.source_event_id,
            "sourceEventType": self.source_event_type.value if self.source_event_type else None,
            "status": status_name(self.status),
        }

    def __repr__(self):
        return f"ResolvedLocation({self.display_name!r}, {self.coordinate.latitude}, {self.coordinate.longitude}, {self.source_event_id})"


class RouteInfo:
    """
    A synthesized travel path between two resolved locations.

    Treat instances as immutable: with_mode() and with_schedule() return copies.
    """

    def __init__(self, coordinates: List[Coordinate], duration_minutes: float, distance_meters: float,
                 mode: TravelMode, departure_time: Optional[datetime.datetime] = None,
                 arrival_time: Optional[datetime.datetime] = None):
        self.coordinates = tuple(coordinates)
        self.duration_minutes = float(duration_minutes)
        self.distance_meters = float(distance_meters)
        self.mode = mode
        self.departure_time = departure_time
        self.arrival_time = arrival_time

    def with_mode(self, mode: TravelMode) -> "RouteInfo":
        return RouteInfo(self.coordinates, self.duration_minutes, self.distance_meters, mode,
                         self.departure_time, self.arrival_time)

    def with_schedule(self, departure_time, arrival_time) -> "RouteInfo":
        return RouteInfo(self.coordinates, self.duration_minutes, self.distance_meters, self.mode,
                         departure_time, arrival_time)

    def to_dict(self):
        return {
            "coordinates": [[c.latitude, c.longitude] for c in self.coordinates],
            "durationMinutes": self.duration_minutes,
            "distanceMeters": self.distance_meters,
            "mode": self.mode.value,
            "departureTime": self.departure_time.isoformat() if self.departure_time else None,
            "arrivalTime": self.arrival_time.isoformat() if self.arrival_time else None,
        }

    @classmethod
    def from_dict(cls, data) -> "RouteInfo":
        def parse_time(value):
            return datetime.datetime.fromisoformat(value) if value else None

        return cls(
            coordinates=[Coordinate(float(lat), float(lon)) for lat, lon in data["coordinates"]],
            duration_minutes=data["durationMinutes"],
            distance_meters=data["distanceMeters"],
            mode=TravelMode(data["mode"]),
            departure_time=parse_time(data.get("departureTime")),
            arrival_time=parse_time(data.get("arrivalTime")),
        )

    def __eq__(self, other):
        if not isinstance(other, RouteInfo):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"RouteInfo({self.mode.value}, {len(self.coordinates)} points, "
                f"{self.distance_meters:.0f} m, {self.duration_minutes:.1f} min)")
