import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from .api_client import APIClient
from .cache import FileStore, PersistentCache
from .config import Config
from .event import Event, EventStatus, EventType, Trip, keyword_query
from .geo import bounds_of
from .location_resolver import LocationResolver
from .models import ResolvedLocation, TravelMode
from .route_synthesizer import RouteSynthesizer

TRIP_LOCATION_ID = "trip-location"


def pick_mode(a: ResolvedLocation, b: ResolvedLocation) -> TravelMode:
    """Train beats flight beats driving, whichever endpoint carries the type."""
    types = {a.source_event_type, b.source_event_type}
    if EventType.TRAIN in types:
        return TravelMode.TRAIN
    if EventType.FLIGHT in types:
        return TravelMode.FLIGHT
    return TravelMode.DRIVING


class TripScene:
    """One assembly pass: locations, routes and the region covering them."""

    def __init__(self, locations, routes, bounds, generation=0, superseded=False):
        self.locations = locations
        self.routes = routes
        self.bounds = bounds
        self.generation = generation
        self.superseded = superseded

    def to_dict(self):
        return {
            "locations": [loc.to_dict() for loc in self.locations],
            "routes": [route.to_dict() for route in self.routes],
            "bounds": self.bounds.to_dict() if self.bounds else None,
        }

    def __repr__(self):
        return f"TripScene({len(self.locations)} locations, {len(self.routes)} routes, generation={self.generation})"


class TripGeoAssembler:
    def __init__(self, resolver=None, synthesizer=None, max_workers=None):
        """
        Initialize the assembler. Without collaborators, file-backed caches in
        Config.CACHE_DIR and a shared APIClient are used.
        """
        if resolver is None or synthesizer is None:
            store = FileStore(Config.CACHE_DIR)
            api_client = APIClient()
            if resolver is None:
                resolver = LocationResolver(PersistentCache(store, Config.LOCATION_CACHE_NAMESPACE), api_client)
            if synthesizer is None:
                synthesizer = RouteSynthesizer(PersistentCache(store, Config.ROUTE_CACHE_NAMESPACE), api_client)
        self.resolver = resolver
        self.synthesizer = synthesizer
        self.max_workers = max_workers or Config.ROUTE_WORKERS
        self._generation = 0
        self._generation_lock = threading.Lock()

    def _next_generation(self):
        with self._generation_lock:
            self._generation += 1
            return self._generation

    def is_current(self, scene: TripScene) -> bool:
        """True unless a newer assemble() pass has started since this scene's."""
        return not scene.superseded and scene.generation == self._generation

    def assemble(self, trip) -> TripScene:
        """
        Resolves every event of the trip, routes the confirmed stops in order
        and returns the scene. Failures drop single events or routes, never the pass.
        """
        if isinstance(trip, dict):
            trip = Trip(trip)
        generation = self._next_generation()
        logging.info(f"Assembling trip '{trip.name}' with {len(trip.events)} events (pass {generation})")

        locations, superseded = self._resolve_locations(trip.events, generation)
        if superseded:
            logging.info("Pass %d superseded, returning partial locations", generation)
            return TripScene(locations, [], bounds_of(loc.coordinate for loc in locations), generation, True)

        if not locations and trip.name:
            fallback = self._trip_name_location(trip)
            if fallback:
                locations.append(fallback)

        routes = self._build_routes(locations, trip.events)

        points = [loc.coordinate for loc in locations]
        for route in routes:
            points.extend(route.coordinates)
        scene = TripScene(locations, routes, bounds_of(points), generation)
        logging.info("Assembled %s", scene)
        return scene

    def _resolve_locations(self, events, generation):
        locations = []
        for event in events:
            if generation != self._generation:
                return locations, True
            try:
                locations.extend(self._locations_for_event(event))
            except Exception as e:
                logging.error(f"Error processing event {event}: {e}", exc_info=True)
        logging.info("Resolved %d locations from %d events", len(locations), len(events))
        return locations, False

    def _locations_for_event(self, event: Event):
        if event.event_type is None:
            logging.debug(f"Skipping event {event} - unknown type '{event.type_name}'")
            return []

        coordinate = event.direct_coordinate()
        if coordinate is not None:
            return [self._location(event, coordinate, event.display_label())]

        queries = event.search_queries()
        if not all(queries):
            logging.debug(f"Skipping event {event} - missing place fields")
            return []

        resolved = []
        for query in queries:
            result = self.resolver.resolve(query)
            if result is None:
                # Transport legs only count when both ends are found
                return []
            resolved.append(self._location(event, *result))
        return resolved

    @staticmethod
    def _location(event, coordinate, display_name):
        return ResolvedLocation(coordinate, display_name, event.id, event.event_type, event.status)

    def _trip_name_location(self, trip):
        keywords = keyword_query(trip.name)
        result = self.resolver.resolve(keywords)
        if result is None:
            return None
        logging.info(f"No event locations, falling back to trip name '{trip.name}'")
        coordinate, display_name = result
        return ResolvedLocation(coordinate, display_name, TRIP_LOCATION_ID, EventType.DESTINATION,
                                EventStatus.EXPLORING)

    def _build_routes(self, locations, events):
        stops = [loc for loc in locations if loc.is_routable]
        pairs = list(zip(stops, stops[1:]))
        if not pairs:
            return []

        events_by_id = {event.id: event for event in events if event.id is not None}

        def synthesize(pair):
            start, end = pair
            mode = pick_mode(start, end)
            departure_time = arrival_time = None
            # Both ends of one transport event: use its own timetable
            source = events_by_id.get(start.source_event_id)
            if source is not None and source.is_transport and start.source_event_id == end.source_event_id:
                departure_time = source.departure_datetime()
                arrival_time = source.arrival_datetime()
            try:
                return self.synthesizer.synthesize(start.coordinate, end.coordinate, mode,
                                                   departure_time, arrival_time)
            except Exception as e:
                logging.error(f"Error building {mode.value} route from {start} to {end}: {e}", exc_info=True)
                return None

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            # map() keeps pair order
            results = list(executor.map(synthesize, pairs))

        routes = [route for route in results if route is not None]
        logging.info("Planned %d of %d routes", len(routes), len(pairs))
        return routes
