"""
Nominatim (OpenStreetMap) reverse geocoder.
"""

import asyncio
import logging

import aiohttp

from icebot.core.orders.errors import GeocodeUnavailable
from icebot.integrations.geo.base import BaseGeocoder

logger = logging.getLogger(__name__)


class NominatimGeocoder(BaseGeocoder):
    """Reverse geocoding through the public Nominatim API."""

    def __init__(
        self,
        url: str = "https://nominatim.openstreetmap.org/reverse",
        user_agent: str = "IceOrderBot/1.0",
        timeout_seconds: float = 5.0,
    ):
        self.url = url
        self.user_agent = user_agent
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        return self._session

    async def lookup(self, latitude: float, longitude: float) -> str:
        """Resolve coordinates to Nominatim's display_name."""
        params = {
            "format": "json",
            "lat": str(latitude),
            "lon": str(longitude),
            "zoom": "18",
            "addressdetails": "1",
        }
        try:
            async with self._get_session().get(self.url, params=params) as response:
                if response.status != 200:
                    raise GeocodeUnavailable(f"Nominatim returned HTTP {response.status}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Reverse geocoding failed for {latitude}, {longitude}: {e}")
            raise GeocodeUnavailable(str(e)) from e

        display_name = data.get("display_name") if isinstance(data, dict) else None
        if not display_name:
            raise GeocodeUnavailable("Nominatim returned no display_name")
        return display_name

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    @property
    def name(self) -> str:
        return "nominatim"
