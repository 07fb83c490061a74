import datetime
import logging
import re
from enum import Enum
from typing import Dict, Any, List, Optional

import pytz

from .config import Config
from .geo import Coordinate

# Words that carry no place information in transport searches
STOP_WORDS = {"trip", "to", "in", "at", "the", "a", "an"}


class EventType(Enum):
    ARRIVAL = "arrival"
    DEPARTURE = "departure"
    STAY = "stay"
    DESTINATION = "destination"
    FLIGHT = "flight"
    TRAIN = "train"
    RENTAL_CAR = "rental_car"
    BUS = "bus"


class EventStatus(Enum):
    CONFIRMED = "confirmed"
    EXPLORING = "exploring"
    ALTERNATIVE = "alternative"


# Dual-location events: (departure field, arrival field)
TRANSPORT_FIELDS = {
    EventType.FLIGHT: ("departureAirport", "arrivalAirport"),
    EventType.TRAIN: ("departureStation", "arrivalStation"),
    EventType.BUS: ("departureStation", "arrivalStation"),
    EventType.RENTAL_CAR: ("pickupLocation", "dropoffLocation"),
}


def keyword_query(text: str) -> str:
    """Lower-cases, strips punctuation and drops stop words from a place search."""
    cleaned = re.sub(r"[^\w\s]", "", (text or "").lower())
    return " ".join(word for word in cleaned.split() if word not in STOP_WORDS)


def _parse_enum(enum_cls, value):
    try:
        return enum_cls(value)
    except ValueError:
        return None


def parse_status(value):
    """EventStatus for known statuses, the raw string for unknown ones, None when unset."""
    if not value:
        return None
    return _parse_enum(EventStatus, value) or str(value)


def status_is_confirmed(status) -> bool:
    # Only a missing status defaults to confirmed
    return status is None or status == EventStatus.CONFIRMED


def status_name(status):
    if status is None:
        return None
    return status.value if isinstance(status, EventStatus) else status


class Event:
    def __init__(self, event_dict: Dict[str, Any]) -> None:
        # Initialize the event with data from a dictionary
        self.raw = dict(event_dict)
        self.id = event_dict.get('id') or event_dict.get('_id')
        self.type_name = event_dict.get('type')
        self.event_type = _parse_enum(EventType, self.type_name)
        self.status = parse_status(event_dict.get('status'))
        self.date = event_dict.get('date') or event_dict.get('startDate')
        self.location = event_dict.get('location') or None

    def field(self, name) -> str:
        value = self.raw.get(name)
        return str(value).strip() if value else ''

    @property
    def is_confirmed(self) -> bool:
        return status_is_confirmed(self.status)

    def direct_coordinate(self) -> Optional[Coordinate]:
        """Coordinates attached to the event itself, if any."""
        if not isinstance(self.location, dict):
            return None
        lat = self.location.get('lat')
        lng = self.location.get('lng')
        if lat is None or lng is None:
            return None
        try:
            coordinate = Coordinate(float(lat), float(lng))
        except (TypeError, ValueError):
            return None
        if not coordinate.is_valid():
            logging.warning(f"Ignoring out-of-range coordinates on event {self.id}: {coordinate}")
            return None
        return coordinate

    def display_label(self) -> str:
        """Marker name for an event placed by its own coordinates."""
        if self.event_type == EventType.STAY:
            return self.field('accommodationName') or 'Stay'
        if self.event_type == EventType.DESTINATION:
            return self.field('placeName') or 'Destination'
        if isinstance(self.location, dict) and self.location.get('address'):
            return self.location['address']
        return 'Location'

    def search_queries(self) -> List[str]:
        """
        Derives the geocoding searches for this event.

        Single-location events give one query, transport events give a
        departure and an arrival query. Empty entries mean nothing to search.
        """
        event_type = self.event_type
        if event_type is None:
            return []
        if event_type in (EventType.ARRIVAL, EventType.DEPARTURE):
            return [self.field('airport')]
        if event_type == EventType.STAY:
            return [f"{self.field('accommodationName')} {self.field('address')}".strip()]
        if event_type == EventType.DESTINATION:
            return [f"{self.field('placeName')} {self.field('address')}".strip()]
        if event_type in TRANSPORT_FIELDS:
            departure_field, arrival_field = TRANSPORT_FIELDS[event_type]
            return [keyword_query(self.field(departure_field)), keyword_query(self.field(arrival_field))]
        raise ValueError(f"No search rule for event type {event_type}")

    @property
    def is_transport(self) -> bool:
        return self.event_type in TRANSPORT_FIELDS

    def departure_datetime(self) -> Optional[datetime.datetime]:
        field = 'pickupTime' if self.event_type == EventType.RENTAL_CAR else 'departureTime'
        return self._parse_datetime(self.raw.get(field))

    def arrival_datetime(self) -> Optional[datetime.datetime]:
        field = 'dropoffTime' if self.event_type == EventType.RENTAL_CAR else 'arrivalTime'
        return self._parse_datetime(self.raw.get(field))

    def _parse_datetime(self, datetime_str):
        """Parse an ISO datetime, or an HH:MM time on the event's date."""
        if not datetime_str:
            return None
        parsed = None
        try:
            parsed = datetime.datetime.fromisoformat(str(datetime_str).replace('Z', '+00:00'))
        except (ValueError, AttributeError):
            if self.date:
                try:
                    parsed = datetime.datetime.fromisoformat(f"{str(self.date)[:10]}T{datetime_str}")
                except ValueError:
                    return None
        if parsed is None:
            return None
        if parsed.tzinfo is None:
            parsed = pytz.timezone(Config.TIMEZONE).localize(parsed)
        return parsed

    def __str__(self):
        """String representation of the event."""
        return f"Event({self.id}, {self.type_name}, {status_name(self.status) or 'confirmed'})"

    def __repr__(self):
        """Representation of the event."""
        return self.__str__()


class Trip:
    def __init__(self, trip_dict: Dict[str, Any]) -> None:
        self.id = trip_dict.get('_id') or trip_dict.get('id')
        self.name = trip_dict.get('name', '')
        self.events = [e if isinstance(e, Event) else Event(e) for e in trip_dict.get('events', [])]

    def __repr__(self):
        return f"Trip({self.name!r}, {len(self.events)} events)"
