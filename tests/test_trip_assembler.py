import datetime
from unittest.mock import MagicMock

from tripmap_geo.cache import MemoryStore, PersistentCache
from tripmap_geo.errors import TransportError
from tripmap_geo.event import EventType, Trip
from tripmap_geo.geo import Coordinate
from tripmap_geo.location_resolver import LocationResolver
from tripmap_geo.models import TravelMode
from tripmap_geo.route_synthesizer import RouteSynthesizer
from tripmap_geo.trip_assembler import TRIP_LOCATION_ID, TripGeoAssembler, pick_mode

PLACES = {
    "jfk": (40.6413, -73.7781, "John F. Kennedy International Airport"),
    "cdg": (49.0097, 2.5479, "Paris Charles de Gaulle Airport"),
    "ritz paris": (48.8681, 2.3294, "Ritz Paris"),
    "louvre": (48.8606, 2.3376, "Musée du Louvre"),
    "gare de lyon": (48.8443, 2.3730, "Gare de Lyon"),
    "lyon partdieu": (45.7605, 4.8596, "Lyon Part-Dieu"),
    "hotel lyon": (45.7640, 4.8357, "Hotel Lyon"),
    "musee": (45.7700, 4.8300, "Musée"),
    "park": (45.7800, 4.8500, "Parc de la Tête d'Or"),
    "kyoto": (35.0116, 135.7681, "Kyoto, Japan"),
}


def fake_search(failing=()):
    def search(query):
        if query in failing:
            raise TransportError("geocoder down")
        place = PLACES.get(query.lower())
        if place is None:
            return []
        lat, lon, name = place
        return [{"latitude": lat, "longitude": lon, "display_name": name}]
    return search


def fake_route(start, end):
    return {"path": [start, end], "duration_seconds": 600, "distance_meters": 5000}


def make_assembler(failing=()):
    api_client = MagicMock()
    api_client.search.side_effect = fake_search(failing)
    api_client.route.side_effect = fake_route
    resolver = LocationResolver(PersistentCache(MemoryStore(), "locations"), api_client, MagicMock())
    synthesizer = RouteSynthesizer(PersistentCache(MemoryStore(), "routes"), api_client,
                                   include_mode_in_key=True, rail_geometry=False)
    return TripGeoAssembler(resolver, synthesizer, max_workers=3), api_client


def coord(name):
    lat, lon, _ = PLACES[name]
    return Coordinate(lat, lon)


def stay(event_id, name, status="confirmed"):
    return {"id": event_id, "type": "stay", "status": status, "accommodationName": name}


def destination(event_id, name, status="confirmed"):
    return {"id": event_id, "type": "destination", "status": status, "placeName": name}


def test_end_to_end_flight_stay_destination():
    assembler, _ = make_assembler()
    trip = Trip({"name": "Paris", "events": [
        {"id": "f1", "type": "flight", "status": "confirmed", "departureAirport": "JFK", "arrivalAirport": "CDG"},
        stay("s1", "Ritz Paris"),
        destination("d1", "Louvre", status="exploring"),
    ]})
    scene = assembler.assemble(trip)

    names = [loc.display_name for loc in scene.locations]
    assert names[:3] == ["John F. Kennedy International Airport", "Paris Charles de Gaulle Airport", "Ritz Paris"]
    assert [loc.source_event_id for loc in scene.locations] == ["f1", "f1", "s1", "d1"]

    first = scene.routes[0]
    assert first.mode == TravelMode.FLIGHT
    assert first.coordinates[0] == coord("jfk")
    assert first.coordinates[-1] == coord("cdg")

    louvre = coord("louvre")
    for route in scene.routes:
        assert route.coordinates[0] != louvre
        assert route.coordinates[-1] != louvre

    for name in ("jfk", "cdg", "ritz paris"):
        assert scene.bounds.contains(coord(name))


def test_confirmed_only_routing():
    assembler, _ = make_assembler()
    trip = Trip({"name": "Lyon", "events": [
        stay("1", "Hotel Lyon"),
        destination("2", "Louvre", status="exploring"),
        destination("3", "Musee"),
        destination("4", "Ritz Paris", status="exploring"),
        destination("5", "Park"),
    ]})
    scene = assembler.assemble(trip)

    assert len(scene.locations) == 5
    assert len(scene.routes) == 2
    assert [r.mode for r in scene.routes] == [TravelMode.DRIVING, TravelMode.DRIVING]
    assert scene.routes[0].coordinates[0] == coord("hotel lyon")
    assert scene.routes[0].coordinates[-1] == coord("musee")
    assert scene.routes[1].coordinates[0] == coord("musee")
    assert scene.routes[1].coordinates[-1] == coord("park")

    exploring = {coord("louvre"), coord("ritz paris")}
    for route in scene.routes:
        assert not exploring & set(route.coordinates)


def test_partial_failure_resilience():
    assembler, _ = make_assembler(failing={"Musee"})
    trip = Trip({"name": "Lyon", "events": [
        stay("1", "Hotel Lyon"),
        destination("2", "Musee"),
        destination("3", "Park"),
        destination("4", "Louvre"),
        destination("5", "Ritz Paris"),
    ]})
    scene = assembler.assemble(trip)

    assert len(scene.locations) == 4
    assert "2" not in [loc.source_event_id for loc in scene.locations]
    assert len(scene.routes) == 3
    assert scene.routes[0].coordinates[-1] == coord("park")


def test_missing_status_counts_as_confirmed():
    assembler, _ = make_assembler()
    trip = Trip({"name": "", "events": [
        {"id": "1", "type": "stay", "accommodationName": "Hotel Lyon"},
        {"id": "2", "type": "destination", "placeName": "Park"},
    ]})
    scene = assembler.assemble(trip)
    assert len(scene.routes) == 1


def test_alternative_status_is_not_routed():
    assembler, api_client = make_assembler()
    trip = Trip({"name": "", "events": [stay("1", "Hotel Lyon"), destination("2", "Park", status="alternative")]})
    scene = assembler.assemble(trip)

    assert len(scene.locations) == 2
    assert not scene.locations[1].is_routable
    assert scene.routes == []
    api_client.route.assert_not_called()


def test_unknown_status_is_not_routed():
    assembler, _ = make_assembler()
    trip = Trip({"name": "", "events": [stay("1", "Hotel Lyon"), destination("2", "Park", status="maybe")]})
    scene = assembler.assemble(trip)

    assert scene.routes == []
    assert scene.to_dict()["locations"][1]["status"] == "maybe"


def test_train_leg_gets_train_mode_and_timetable():
    assembler, _ = make_assembler()
    trip = Trip({"name": "", "events": [
        {"id": "t1", "type": "train", "date": "2025-06-01", "departureStation": "Gare de Lyon",
         "arrivalStation": "Lyon Part-Dieu", "departureTime": "09:00", "arrivalTime": "11:00"},
        stay("s1", "Hotel Lyon"),
    ]})
    scene = assembler.assemble(trip)

    assert [r.mode for r in scene.routes] == [TravelMode.TRAIN, TravelMode.TRAIN]
    leg = scene.routes[0]
    assert list(leg.coordinates) == [coord("gare de lyon"), coord("lyon partdieu")]
    assert leg.departure_time.replace(tzinfo=None) == datetime.datetime(2025, 6, 1, 9, 0)
    assert leg.arrival_time.replace(tzinfo=None) == datetime.datetime(2025, 6, 1, 11, 0)


def test_transport_event_needs_both_ends():
    assembler, _ = make_assembler()
    trip = Trip({"name": "", "events": [
        {"id": "f1", "type": "flight", "departureAirport": "JFK", "arrivalAirport": "Nowhere Intl"},
        stay("s1", "Ritz Paris"),
    ]})
    scene = assembler.assemble(trip)
    assert [loc.source_event_id for loc in scene.locations] == ["s1"]
    assert scene.routes == []


def test_direct_coordinates_skip_geocoding():
    assembler, api_client = make_assembler()
    trip = Trip({"name": "", "events": [
        {"id": "1", "type": "stay", "accommodationName": "Cabin", "location": {"lat": 61.2, "lng": -149.9}},
    ]})
    scene = assembler.assemble(trip)
    assert scene.locations[0].coordinate == Coordinate(61.2, -149.9)
    assert scene.locations[0].display_name == "Cabin"
    api_client.search.assert_not_called()


def test_out_of_range_direct_coordinates_fall_back_to_geocoding():
    assembler, api_client = make_assembler()
    trip = Trip({"name": "", "events": [
        {"id": "1", "type": "stay", "accommodationName": "Hotel Lyon", "location": {"lat": 200, "lng": 500}},
        {"id": "2", "type": "stay", "accommodationName": "Nowhere Inn", "location": {"lat": 200, "lng": 500}},
    ]})
    scene = assembler.assemble(trip)

    assert [loc.source_event_id for loc in scene.locations] == ["1"]
    assert scene.locations[0].coordinate == coord("hotel lyon")
    assert all(loc.coordinate.is_valid() for loc in scene.locations)
    assert api_client.search.call_count == 2


def test_repeat_assembly_uses_caches():
    assembler, api_client = make_assembler()
    trip = Trip({"name": "", "events": [stay("1", "Hotel Lyon"), destination("2", "Park")]})
    first = assembler.assemble(trip)
    second = assembler.assemble(trip)

    assert api_client.search.call_count == 2
    api_client.route.assert_called_once()
    assert second.to_dict() == first.to_dict()


def test_trip_name_fallback():
    assembler, _ = make_assembler()
    trip = Trip({"name": "Trip to Kyoto", "events": [destination("1", "Unknown Shrine")]})
    scene = assembler.assemble(trip)

    assert len(scene.locations) == 1
    fallback = scene.locations[0]
    assert fallback.source_event_id == TRIP_LOCATION_ID
    assert fallback.coordinate == coord("kyoto")
    assert not fallback.is_routable
    assert scene.routes == []


def test_empty_trip():
    assembler, _ = make_assembler()
    scene = assembler.assemble({"name": "", "events": []})
    assert scene.locations == []
    assert scene.routes == []
    assert scene.bounds is None
    assert scene.to_dict() == {"locations": [], "routes": [], "bounds": None}


def test_unexpected_route_error_drops_only_that_route():
    assembler, _ = make_assembler()
    real_synthesize = assembler.synthesizer.synthesize

    def flaky(start, end, mode, departure_time=None, arrival_time=None):
        if start == coord("musee"):
            raise RuntimeError("unexpected")
        return real_synthesize(start, end, mode, departure_time, arrival_time)

    assembler.synthesizer = MagicMock()
    assembler.synthesizer.synthesize.side_effect = flaky
    trip = Trip({"name": "", "events": [stay("1", "Hotel Lyon"), destination("2", "Musee"), destination("3", "Park")]})
    scene = assembler.assemble(trip)

    assert len(scene.routes) == 1
    assert scene.routes[0].coordinates[-1] == coord("musee")


def test_newer_pass_supersedes_older():
    assembler, _ = make_assembler()
    newer_trip = Trip({"name": "", "events": [stay("9", "Ritz Paris")]})
    inner = {}
    real_resolve = assembler.resolver.resolve

    def resolve_and_interrupt(query):
        if "started" not in inner:
            inner["started"] = True
            # The trip changes while the first pass is still resolving
            inner["scene"] = assembler.assemble(newer_trip)
        return real_resolve(query)

    assembler.resolver = MagicMock()
    assembler.resolver.resolve.side_effect = resolve_and_interrupt
    trip = Trip({"name": "", "events": [stay("1", "Hotel Lyon"), destination("2", "Park"), destination("3", "Musee")]})
    stale = assembler.assemble(trip)

    assert stale.superseded
    assert not assembler.is_current(stale)
    assert assembler.is_current(inner["scene"])
    assert len(stale.locations) == 1
    assert stale.routes == []


def test_pick_mode_precedence():
    def loc(event_type):
        location = MagicMock()
        location.source_event_type = event_type
        return location

    assert pick_mode(loc(EventType.TRAIN), loc(EventType.FLIGHT)) == TravelMode.TRAIN
    assert pick_mode(loc(EventType.STAY), loc(EventType.FLIGHT)) == TravelMode.FLIGHT
    assert pick_mode(loc(EventType.RENTAL_CAR), loc(EventType.BUS)) == TravelMode.DRIVING
