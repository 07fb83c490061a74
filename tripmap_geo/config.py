import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()


def _env_bool(name, default):
    return os.environ.get(name, str(default)).strip().lower() in ("1", "true", "yes")


class Config:
    """
    Configuration class for TripMap Geo.
    This class loads configuration values from environment variables or uses default values.
    """
    # General configuration
    DEBUG = os.environ.get('DEBUG', 'False') == 'True'

    # Timezone used when an event time carries no offset
    TIMEZONE = os.environ.get('TIMEZONE', 'UTC')

    # External services
    NOMINATIM_URL = os.environ.get('NOMINATIM_URL', 'https://nominatim.openstreetmap.org/search')
    OSRM_URL = os.environ.get('OSRM_URL', 'https://router.project-osrm.org')
    OVERPASS_URL = os.environ.get('OVERPASS_URL', 'https://overpass-api.de/api/interpreter')
    USER_AGENT = os.environ.get('USER_AGENT', 'TripMapGeo/1.0')

    # HTTP behaviour
    HTTP_TIMEOUT = float(os.environ.get('HTTP_TIMEOUT', 30))
    MAX_RETRIES = int(os.environ.get('MAX_RETRIES', 3))
    RETRY_DELAY_SECONDS = float(os.environ.get('RETRY_DELAY_SECONDS', 2.0))
    BACKOFF_FACTOR = float(os.environ.get('BACKOFF_FACTOR', 1.5))

    # Geocoding
    GEOCODE_DELAY_SECONDS = float(os.environ.get('GEOCODE_DELAY_SECONDS', 0.1))
    GEOCODE_RESULT_LIMIT = int(os.environ.get('GEOCODE_RESULT_LIMIT', 1))

    # Caches
    CACHE_DIR = os.environ.get('CACHE_DIR', os.path.join(os.path.expanduser('~'), '.tripmap_geo'))
    LOCATION_CACHE_NAMESPACE = os.environ.get('LOCATION_CACHE_NAMESPACE', 'tripMapLocationCache')
    ROUTE_CACHE_NAMESPACE = os.environ.get('ROUTE_CACHE_NAMESPACE', 'tripMapRouteCache')
    ROUTE_KEY_PRECISION = int(os.environ.get('ROUTE_KEY_PRECISION', 5))
    ROUTE_CACHE_KEY_INCLUDES_MODE = _env_bool('ROUTE_CACHE_KEY_INCLUDES_MODE', True)

    # Route synthesis
    TRAIN_RAIL_GEOMETRY = _env_bool('TRAIN_RAIL_GEOMETRY', False)
    RAIL_BBOX_MARGIN_DEG = float(os.environ.get('RAIL_BBOX_MARGIN_DEG', 0.05))
    TRAIN_SPEED_KMH = float(os.environ.get('TRAIN_SPEED_KMH', 120))
    FLIGHT_SPEED_KMH = float(os.environ.get('FLIGHT_SPEED_KMH', 800))
    FLIGHT_PATH_STEPS = int(os.environ.get('FLIGHT_PATH_STEPS', 50))
    ROUTE_WORKERS = int(os.environ.get('ROUTE_WORKERS', 4))
