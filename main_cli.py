#!/usr/bin/env python3
import argparse
import logging
import json
import sys
import os

# Add the parent directory to the path so we can import the package
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from tripmap_geo.api_client import APIClient
from tripmap_geo.cache import FileStore, PersistentCache
from tripmap_geo.config import Config
from tripmap_geo.event import Trip, status_name
from tripmap_geo.location_resolver import LocationResolver
from tripmap_geo.models import TravelMode
from tripmap_geo.route_synthesizer import RouteSynthesizer
from tripmap_geo.trip_assembler import TripGeoAssembler


def setup_logging(debug=False):
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_assembler(cache_dir):
    """Wire resolver and synthesizer onto file-backed caches in cache_dir."""
    store = FileStore(cache_dir)
    api_client = APIClient()
    resolver = LocationResolver(PersistentCache(store, Config.LOCATION_CACHE_NAMESPACE), api_client)
    synthesizer = RouteSynthesizer(PersistentCache(store, Config.ROUTE_CACHE_NAMESPACE), api_client)
    return TripGeoAssembler(resolver, synthesizer)


def geocode_query(assembler, query):
    """Test geocoding a single query."""
    result = assembler.resolver.resolve(query)
    if result:
        coordinate, display_name = result
        print(f"✅ Query successfully geocoded:")
        print(f"  📍 {query}")
        print(f"  🏷️  {display_name}")
        print(f"  🌐 Latitude: {coordinate.latitude}")
        print(f"  🌐 Longitude: {coordinate.longitude}")
    else:
        print(f"❌ Failed to geocode: {query}")


def route_between(assembler, from_query, to_query, mode_name):
    """Test routing between two places."""
    start = assembler.resolver.resolve(from_query)
    if start is None:
        print(f"❌ Failed to geocode: {from_query}")
        return
    end = assembler.resolver.resolve(to_query)
    if end is None:
        print(f"❌ Failed to geocode: {to_query}")
        return

    mode = TravelMode(mode_name)
    route = assembler.synthesizer.synthesize(start[0], end[0], mode)
    if route:
        print(f"✅ Route built successfully:")
        print(f"  🚩 From: {start[1]}")
        print(f"  🏁 To: {end[1]}")
        print(f"  🧭 Mode: {route.mode.value}")
        print(f"  📏 Distance: {route.distance_meters / 1000:.1f} km")
        print(f"  ⏱️ Travel time: {route.duration_minutes:.1f} minutes")
        print(f"  📌 Points: {len(route.coordinates)}")
        if route.departure_time:
            print(f"  🕒 Departure: {route.departure_time.isoformat()}")
            print(f"  🕒 Arrival: {route.arrival_time.isoformat()}")
    else:
        print(f"❌ Failed to build a {mode_name} route between {from_query} and {to_query}")


def assemble_trip(assembler, trip_file, as_json=False):
    """Assemble the map scene for a trip stored as JSON."""
    try:
        with open(trip_file, 'r') as f:
            trip_data = json.load(f)
    except FileNotFoundError:
        print(f"❌ Trip file not found: {trip_file}")
        return
    except json.JSONDecodeError:
        print(f"❌ Invalid JSON in trip file: {trip_file}")
        return

    # A bare list of events is accepted as an unnamed trip
    if isinstance(trip_data, list):
        trip_data = {"name": "", "events": trip_data}

    trip = Trip(trip_data)
    print(f"🗺️  Assembling {len(trip.events)} events...")
    scene = assembler.assemble(trip)

    if as_json:
        print(json.dumps(scene.to_dict(), indent=2))
        return

    if not scene.locations:
        print("❌ No locations found for this trip")
        return

    print(f"✅ Resolved {len(scene.locations)} locations:")
    for i, loc in enumerate(scene.locations):
        status = status_name(loc.status) or "confirmed"
        print(f"  {i+1}. {loc.display_name} ({loc.coordinate.latitude:.4f}, {loc.coordinate.longitude:.4f}) [{status}]")

    print(f"\n🧭 {len(scene.routes)} routes:")
    for i, route in enumerate(scene.routes):
        print(f"  {i+1}. {route.mode.value}: {route.distance_meters / 1000:.1f} km, {route.duration_minutes:.1f} min")

    if scene.bounds:
        print(f"\n📐 Bounds: ({scene.bounds.min.latitude:.4f}, {scene.bounds.min.longitude:.4f}) - "
              f"({scene.bounds.max.latitude:.4f}, {scene.bounds.max.longitude:.4f})")


def main():
    parser = argparse.ArgumentParser(
        description="TripMap Geo CLI - Test and demo tool for trip map assembly",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Geocode a place
  ./main_cli.py geocode "Ritz Paris"

  # Build a route between two places
  ./main_cli.py route "JFK" "CDG" --mode flight

  # Assemble a whole trip from a JSON file
  ./main_cli.py assemble trip.json --json
        """
    )

    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--cache-dir', type=str, default=Config.CACHE_DIR, help='Directory for the persistent caches')

    subparsers = parser.add_subparsers(dest='command', help='Sub-command help')

    # Geocode command
    geocode_parser = subparsers.add_parser('geocode', help='Geocode a place')
    geocode_parser.add_argument('query', type=str, help='Place to geocode')

    # Route command
    route_parser = subparsers.add_parser('route', help='Build a route between two places')
    route_parser.add_argument('from_query', type=str, help='Starting place')
    route_parser.add_argument('to_query', type=str, help='Destination place')
    route_parser.add_argument('--mode', choices=[m.value for m in TravelMode], default='driving',
                              help='Travel mode')

    # Assemble command
    assemble_parser = subparsers.add_parser('assemble', help='Assemble the map scene for a trip')
    assemble_parser.add_argument('trip_file', type=str, help='JSON file with the trip or its events')
    assemble_parser.add_argument('--json', action='store_true', help='Print the scene as JSON')

    args = parser.parse_args()
    setup_logging(args.debug)

    assembler = build_assembler(args.cache_dir)

    if args.command == 'geocode':
        geocode_query(assembler, args.query)
    elif args.command == 'route':
        route_between(assembler, args.from_query, args.to_query, args.mode)
    elif args.command == 'assemble':
        assemble_trip(assembler, args.trip_file, as_json=args.json)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
