import requests
import logging
import time
from .config import Config
from .errors import TransportError
from .geo import Coordinate


class APIClient:
    """
    Client for the OpenStreetMap family of services.
    Handles Nominatim geocoding, OSRM driving routes and Overpass rail lines.
    """

    def __init__(self, session=None, max_retries=None, retry_delay=None, backoff_factor=None, timeout=None):
        """
        Initialize the API client.
        """
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": Config.USER_AGENT})
        self.max_retries = Config.MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = Config.RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self.backoff_factor = Config.BACKOFF_FACTOR if backoff_factor is None else backoff_factor
        self.timeout = Config.HTTP_TIMEOUT if timeout is None else timeout

    def _request_json(self, method, url, **kwargs):
        """
        Sends a request and returns the decoded JSON body.

        Retries up to max_retries times. A 429 response stretches the delay by the
        backoff factor. Raises TransportError once every attempt has failed.
        """
        delay = self.retry_delay
        last_error = None
        for attempt in range(self.max_retries + 1):
            rate_limited = False
            try:
                response = self.session.request(method, url, timeout=self.timeout, **kwargs)
                if response.status_code == 429:
                    rate_limited = True
                    last_error = "HTTP 429: rate limited"
                elif response.status_code != 200:
                    last_error = f"HTTP {response.status_code}: {response.text[:200]}"
                else:
                    try:
                        return response.json()
                    except ValueError as e:
                        # A garbled body will not improve on retry
                        raise TransportError(f"Invalid JSON from {url}: {e}") from e
            except requests.exceptions.Timeout:
                last_error = f"Timeout connecting to {url}"
            except requests.exceptions.ConnectionError as e:
                last_error = f"Connection error: {e}"
            except requests.exceptions.RequestException as e:
                last_error = f"Request error: {e}"

            if attempt < self.max_retries:
                if rate_limited:
                    delay = delay * self.backoff_factor
                logging.warning(f"Retrying request to {url}, {self.max_retries - attempt} attempts remaining, "
                                f"delay: {delay:.1f}s ({last_error})")
                time.sleep(delay)

        logging.error("All attempts to %s failed. Last error: %s", url, last_error)
        raise TransportError(last_error)

    def search(self, query: str):
        """
        Geocodes a free-text query using Nominatim.
        Returns a list of {latitude, longitude, display_name} dicts, possibly empty.
        """
        params = {"q": query, "format": "json", "limit": Config.GEOCODE_RESULT_LIMIT}
        data = self._request_json("GET", Config.NOMINATIM_URL, params=params)
        if not isinstance(data, list):
            raise TransportError(f"Unexpected geocoding response for '{query}': {type(data).__name__}")

        results = []
        for item in data:
            try:
                results.append({
                    "latitude": float(item["lat"]),
                    "longitude": float(item["lon"]),
                    "display_name": item.get("display_name") or query,
                })
            except (KeyError, TypeError, ValueError) as e:
                logging.error(f"Error parsing geocoding result for '{query}': {e}")
        return results

    def route(self, start: Coordinate, end: Coordinate):
        """
        Fetches a driving route from OSRM.
        Returns {path, duration_seconds, distance_meters}; raises TransportError if no route exists.
        """
        # OSRM wants lon,lat pairs
        coords = f"{start.longitude},{start.latitude};{end.longitude},{end.latitude}"
        url = f"{Config.OSRM_URL}/route/v1/driving/{coords}"
        data = self._request_json("GET", url, params={"overview": "full", "geometries": "geojson"})

        if data.get("code") != "Ok" or not data.get("routes"):
            raise TransportError(f"OSRM error: {data.get('message', data.get('code', 'no route'))}")

        route = data["routes"][0]
        try:
            path = [Coordinate(float(lat), float(lon)) for lon, lat in route["geometry"]["coordinates"]]
            return {
                "path": path,
                "duration_seconds": float(route["duration"]),
                "distance_meters": float(route["distance"]),
            }
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Malformed OSRM route: {e}") from e

    def lines_near(self, south, west, north, east):
        """
        Fetches railway lines inside a bounding box from Overpass.
        Returns a list of polylines, each a list of Coordinates.
        """
        query = f"""
        [out:json][timeout:25];
        way["railway"="rail"]({south},{west},{north},{east});
        out geom;
        """
        data = self._request_json("POST", Config.OVERPASS_URL, data={"data": query})

        lines = []
        for element in data.get("elements", []):
            if element.get("type") != "way" or not element.get("geometry"):
                continue
            lines.append([Coordinate(float(node["lat"]), float(node["lon"])) for node in element["geometry"]])
        logging.info(f"Found {len(lines)} railway lines in bbox ({south}, {west}, {north}, {east})")
        return lines
