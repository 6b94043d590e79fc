"""
Base interface for reverse geocoders.
"""

from abc import ABC, abstractmethod


class BaseGeocoder(ABC):
    """Abstract base class for reverse geocoding providers."""

    @abstractmethod
    async def lookup(self, latitude: float, longitude: float) -> str:
        """
        Resolve coordinates to a display address.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees

        Returns:
            Human readable address

        Raises:
            GeocodeUnavailable: provider failed or returned nothing usable
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""
        pass
