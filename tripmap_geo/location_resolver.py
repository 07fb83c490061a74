import logging

from .api_client import APIClient
from .config import Config
from .errors import TransportError
from .geo import Coordinate
from .rate_limiter import FixedDelayLimiter


def location_key(query: str) -> str:
    """Cache key for a location search: case-insensitive, whitespace-normalized."""
    return "loc_" + " ".join((query or "").lower().split())


class LocationResolver:
    """
    Turns a free-text search into a coordinate and display name.
    Uses the location cache first and only geocodes on a miss.
    """

    def __init__(self, cache, api_client=None, limiter=None):
        self.cache = cache
        self.api_client = api_client or APIClient()
        self.limiter = limiter or FixedDelayLimiter(Config.GEOCODE_DELAY_SECONDS)

    def resolve(self, query: str):
        """
        Returns (Coordinate, display_name), or None when nothing was found.
        """
        if not query or not query.strip():
            logging.debug("Empty search query, nothing to resolve")
            return None

        key = location_key(query)
        cached = self.cache.get(key)
        if cached is not None:
            try:
                logging.info("Cache hit for location '%s'", query)
                return Coordinate(float(cached["lat"]), float(cached["lon"])), cached["displayName"]
            except (KeyError, TypeError, ValueError) as e:
                logging.warning(f"Discarding unreadable cache entry for '{query}': {e}")

        # Respect API limits
        self.limiter.wait()
        try:
            results = self.api_client.search(query.strip())
        except TransportError as e:
            logging.error("Geocoding failed for '%s': %s", query, e)
            return None

        if not results:
            logging.error("No geocoding result for query: %s", query)
            return None

        first = results[0]
        coordinate = Coordinate(first["latitude"], first["longitude"])
        if not coordinate.is_valid():
            logging.error(f"Geocoder returned out-of-range coordinate for '{query}': {coordinate}")
            return None

        display_name = first["display_name"]
        self.cache.set(key, {"lat": coordinate.latitude, "lon": coordinate.longitude, "displayName": display_name})
        logging.info("Geocoded '%s' to lat: %s, lon: %s", query, coordinate.latitude, coordinate.longitude)
        return coordinate, display_name
