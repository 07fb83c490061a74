import datetime
import logging
import math

import pytz

from .api_client import APIClient
from .config import Config
from .errors import TransportError
from .geo import Coordinate, haversine_meters
from .models import RouteInfo, TravelMode

# Below this separation two endpoints are treated as the same place
SAME_PLACE_METERS = 1.0


def route_key(start: Coordinate, end: Coordinate, mode: TravelMode = None, precision=None,
              include_mode=None) -> str:
    precision = Config.ROUTE_KEY_PRECISION if precision is None else precision
    include_mode = Config.ROUTE_CACHE_KEY_INCLUDES_MODE if include_mode is None else include_mode
    a = start.rounded(precision)
    b = end.rounded(precision)
    key = f"route_{a.latitude}_{a.longitude}_{b.latitude}_{b.longitude}"
    if include_mode and mode is not None:
        key = f"{key}_{mode.value}"
    return key


def minutes_at_speed(distance_meters: float, speed_kmh: float) -> float:
    return distance_meters / 1000 / speed_kmh * 60


def flight_path(start: Coordinate, end: Coordinate, steps: int):
    """
    Curved path for drawing a flight: a straight interpolation lifted by
    sin(t*pi)*0.5 degrees of latitude, peaking halfway. Not a geodesic.
    """
    points = []
    for i in range(steps + 1):
        t = i / steps
        lat = start.latitude + (end.latitude - start.latitude) * t
        lon = start.longitude + (end.longitude - start.longitude) * t
        curve = math.sin(t * math.pi) * 0.5
        points.append(Coordinate(max(-90.0, min(90.0, lat + curve)), lon))
    # sin(pi) is not exactly zero
    points[0] = start
    points[-1] = end
    return points


def order_along(start: Coordinate, end: Coordinate, lines):
    """
    Flattens rail polylines into one path from start to end.
    Nodes are kept if they project between the endpoints and ordered by that projection.
    """
    d_lat = end.latitude - start.latitude
    d_lon = end.longitude - start.longitude
    length_sq = d_lat * d_lat + d_lon * d_lon
    if length_sq == 0:
        return [start, end]

    projected = []
    for line in lines:
        for point in line:
            t = ((point.latitude - start.latitude) * d_lat + (point.longitude - start.longitude) * d_lon) / length_sq
            if 0 < t < 1:
                projected.append((t, point))
    projected.sort(key=lambda item: item[0])
    return [start] + [point for _, point in projected] + [end]


class RouteSynthesizer:
    """
    Builds a RouteInfo between two coordinates for a travel mode.

    Driving routes come from the routing service. Train and flight routes are
    drawn locally. Every computed route goes through the route cache.
    """

    def __init__(self, cache, api_client=None, include_mode_in_key=None, rail_geometry=None):
        self.cache = cache
        self.api_client = api_client or APIClient()
        self.include_mode_in_key = (Config.ROUTE_CACHE_KEY_INCLUDES_MODE
                                    if include_mode_in_key is None else include_mode_in_key)
        self.rail_geometry = Config.TRAIN_RAIL_GEOMETRY if rail_geometry is None else rail_geometry

    def synthesize(self, start: Coordinate, end: Coordinate, mode: TravelMode,
                   departure_time=None, arrival_time=None):
        """
        Returns a RouteInfo, or None when no driving route could be fetched.
        Train and flight routes are scheduled from the given times, or from now.
        """
        route = self._cached_or_computed(start, end, mode)
        if route is None:
            return None
        if mode in (TravelMode.TRAIN, TravelMode.FLIGHT):
            route = self._scheduled(route, departure_time, arrival_time)
        return route

    def _cached_or_computed(self, start, end, mode):
        key = route_key(start, end, mode, include_mode=self.include_mode_in_key)
        cached = self.cache.get(key)
        if cached is not None:
            try:
                route = RouteInfo.from_dict(cached)
                logging.info("Cache hit for route %s", key)
                # Without mode in the key one path serves every mode
                return route.with_mode(mode)
            except (KeyError, TypeError, ValueError) as e:
                logging.warning(f"Discarding unreadable route cache entry {key}: {e}")

        if haversine_meters(start, end) < SAME_PLACE_METERS:
            logging.info("Start and end coincide, returning a zero-length %s route", mode.value)
            return RouteInfo([start, end], 0.0, 0.0, mode)

        if mode == TravelMode.DRIVING:
            route = self._driving_route(start, end)
        elif mode == TravelMode.TRAIN:
            route = self._train_route(start, end)
        elif mode == TravelMode.FLIGHT:
            route = self._flight_route(start, end)
        else:
            raise ValueError(f"Unsupported travel mode {mode}")

        if route is not None:
            self.cache.set(key, route.to_dict())
        return route

    def _driving_route(self, start, end):
        try:
            result = self.api_client.route(start, end)
        except TransportError as e:
            logging.error(f"Driving route failed from {start} to {end}: {e}")
            return None

        path = result["path"]
        if len(path) < 2:
            path = [start, end]
        route = RouteInfo(path, result["duration_seconds"] / 60, result["distance_meters"], TravelMode.DRIVING)
        logging.info(f"Driving route: {route.distance_meters / 1000:.1f} km ({route.duration_minutes:.1f} min)")
        return route

    def _train_route(self, start, end):
        distance = haversine_meters(start, end)
        path = [start, end]
        if self.rail_geometry:
            path = self._rail_path(start, end) or path
        return RouteInfo(path, minutes_at_speed(distance, Config.TRAIN_SPEED_KMH), distance, TravelMode.TRAIN)

    def _rail_path(self, start, end):
        margin = Config.RAIL_BBOX_MARGIN_DEG
        south = min(start.latitude, end.latitude) - margin
        north = max(start.latitude, end.latitude) + margin
        west = min(start.longitude, end.longitude) - margin
        east = max(start.longitude, end.longitude) + margin
        try:
            lines = self.api_client.lines_near(south, west, north, east)
        except TransportError as e:
            logging.warning(f"Rail lookup failed, drawing a straight line: {e}")
            return None
        if not lines:
            logging.info("No railway lines found, drawing a straight line")
            return None
        return order_along(start, end, lines)

    def _flight_route(self, start, end):
        distance = haversine_meters(start, end)
        path = flight_path(start, end, Config.FLIGHT_PATH_STEPS)
        return RouteInfo(path, minutes_at_speed(distance, Config.FLIGHT_SPEED_KMH), distance, TravelMode.FLIGHT)

    def _scheduled(self, route, departure_time, arrival_time):
        duration = datetime.timedelta(minutes=route.duration_minutes)
        if departure_time is None and arrival_time is None:
            departure_time = datetime.datetime.now(pytz.timezone(Config.TIMEZONE))
        if departure_time is None:
            departure_time = arrival_time - duration
        if arrival_time is None:
            arrival_time = departure_time + duration
        return route.with_schedule(departure_time, arrival_time)
