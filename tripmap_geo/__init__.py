"""
TripMap Geo

This module turns a trip's events into a geographic scene for a map: resolved
locations, routes between confirmed stops and a bounding region.
Includes Nominatim geocoding, OSRM driving routes, drawn train and flight
paths, and write-through caches that survive restarts.

To use, build a Trip from its JSON and pass it to TripGeoAssembler.

Example:
    from tripmap_geo import TripGeoAssembler, Trip

    trip = Trip({
        "name": "Paris",
        "events": [
            {"id": "1", "type": "flight", "status": "confirmed",
             "departureAirport": "JFK", "arrivalAirport": "CDG"},
            {"id": "2", "type": "stay", "status": "confirmed", "accommodationName": "Ritz Paris"},
        ]
    })

    assembler = TripGeoAssembler()
    scene = assembler.assemble(trip)
    # scene.locations, scene.routes, scene.bounds
"""

from .trip_assembler import TripGeoAssembler, TripScene
from .event import Event, EventType, EventStatus, Trip
from .geo import Coordinate, Bounds, haversine_meters
from .models import ResolvedLocation, RouteInfo, TravelMode

# Ensure the public classes are available at the package level
__all__ = [
    'TripGeoAssembler', 'TripScene', 'Event', 'EventType', 'EventStatus', 'Trip',
    'Coordinate', 'Bounds', 'haversine_meters', 'ResolvedLocation', 'RouteInfo', 'TravelMode',
]
