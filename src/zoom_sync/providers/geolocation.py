"""Geolocation provider (ipinfo-style JSON)"""

from zoom_sync.models.enums import FieldID
from zoom_sync.models.errors import TransientProviderError
from zoom_sync.models.reading import Location
from zoom_sync.providers.http import HttpProvider
from zoom_sync.providers.registry import register_provider

DEFAULT_URL = "https://ipinfo.io/json"


@register_provider("geolocation")
class GeolocationProvider(HttpProvider):
    """
    Resolves the host's location from its public IP

    Options:
        url: lookup endpoint (default ipinfo.io)
        token: optional API token
        latitude / longitude: fixed coordinates, no lookup
    """

    field = FieldID.LOCATION

    async def fetch(self) -> Location:
        if "latitude" in self.options and "longitude" in self.options:
            return Location(
                latitude=float(self.options["latitude"]),
                longitude=float(self.options["longitude"]),
                city=str(self.options.get("city", "")),
            )

        params = {"token": self.options["token"]} if self.options.get("token") else None
        data = await self._get_json(self.options.get("url", DEFAULT_URL), params)
        return parse_location(data)


def parse_location(data: dict) -> Location:
    """Parse {"loc": "lat,lon", "city": ..., "region": ..., "country": ...}"""
    loc = data.get("loc")
    try:
        lat_str, lon_str = str(loc).split(",")
        latitude, longitude = float(lat_str), float(lon_str)
    except (TypeError, ValueError) as e:
        raise TransientProviderError(f"Malformed location: {loc!r}") from e

    return Location(
        latitude=latitude,
        longitude=longitude,
        city=data.get("city") or "",
        region=data.get("region") or "",
        country=data.get("country") or "",
    )
