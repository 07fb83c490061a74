class TripMapError(Exception):
    """Base error for the trip map geo core."""


class TransportError(TripMapError):
    """An external service call failed (network, HTTP status or unreadable payload)."""


class CacheWriteError(TripMapError):
    """The durable store rejected a write."""
