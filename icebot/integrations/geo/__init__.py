"""
Reverse geocoder factory.
"""

from icebot.integrations.geo.base import BaseGeocoder
from icebot.integrations.geo.nominatim import NominatimGeocoder


def get_geocoder(settings) -> BaseGeocoder:
    """
    Build the configured reverse geocoder.

    Args:
        settings: Application settings

    Returns:
        Geocoder instance
    """
    return NominatimGeocoder(
        url=settings.geocoder_url,
        user_agent=settings.geocoder_user_agent,
        timeout_seconds=settings.geocoder_timeout_seconds,
    )


__all__ = [
    "BaseGeocoder",
    "NominatimGeocoder",
    "get_geocoder",
]
