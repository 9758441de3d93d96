"""
Geographic helpers for vendor dispatch.

Distances use the haversine formula; addresses without coordinates are
geocoded with the Google Geocoding API.
"""

import logging
import math

import requests

from homster import config

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points.

    Args:
        lat1: Latitude of the first point in degrees
        lng1: Longitude of the first point in degrees
        lat2: Latitude of the second point in degrees
        lng2: Longitude of the second point in degrees

    Returns:
        Distance in kilometres
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def default_location() -> tuple[float, float]:
    """Fallback coordinates used when an address cannot be geocoded."""
    return config.DEFAULT_LATITUDE, config.DEFAULT_LONGITUDE


def geocode_address(address: str) -> tuple[float, float]:
    """
    Resolve an address string to coordinates.

    Without an API key, or when the lookup fails or finds nothing,
    the default location is returned so dispatch can still proceed.

    Args:
        address: Free-form address text

    Returns:
        Tuple of (latitude, longitude)
    """
    if not config.GOOGLE_MAPS_API_KEY or not address.strip():
        return default_location()

    try:
        resp = requests.get(
            GEOCODE_URL,
            params={"address": address, "key": config.GOOGLE_MAPS_API_KEY},
            timeout=5,
        )
        resp.raise_for_status()
        body = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(
            "Geocoding request failed, using default location",
            extra={"json_fields": {"address": address, "error": str(e)}},
        )
        return default_location()

    results = body.get("results") or []
    if body.get("status") != "OK" or not results:
        logger.info(
            "Geocoding returned no match, using default location",
            extra={"json_fields": {"address": address, "status": body.get("status")}},
        )
        return default_location()

    location = results[0]["geometry"]["location"]
    return float(location["lat"]), float(location["lng"])
