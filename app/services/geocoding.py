"""Google Geocoding API client scoped to Jamaica."""

import asyncio
import logging
from typing import Any

import asyncpg
import httpx

from app.core.config import settings
from app.services.settings_store import get_setting_value
from app.utils.geo import within_jamaica

logger = logging.getLogger(__name__)

MAPS_KEY_SETTING = "google_maps_api_key"
BATCH_SIZE = 5
BATCH_PAUSE_SECONDS = 0.2


class MapsKeyMissing(Exception):
    pass


async def resolve_maps_api_key(conn: asyncpg.Connection) -> str:  # type: ignore[no-any-unimported]
    """Environment key first, then the ``google_maps_api_key`` runtime setting."""
    api_key = settings.GOOGLE_MAPS_API_KEY or await get_setting_value(conn, MAPS_KEY_SETTING)
    if not api_key:
        raise MapsKeyMissing(
            "Google Maps API key not configured. Set GOOGLE_MAPS_API_KEY or the "
            f"'{MAPS_KEY_SETTING}' setting."
        )
    return api_key


def build_address(address: str, parish: str | None = None) -> str:
    if parish:
        return f"{address}, {parish}, Jamaica"
    if "jamaica" not in address.lower():
        return f"{address}, Jamaica"
    return address


def extract_parish(address_components: list[dict[str, Any]]) -> str | None:
    for component in address_components:
        if "administrative_area_level_1" in component.get("types", []):
            return component.get("long_name")
    return None


def _failure(error: str, original: str) -> dict[str, Any]:
    return {"success": False, "error": error, "originalAddress": original}


class GeocodingService:
    """
    Thin async wrapper over the Geocoding API.

    Pass ``client`` to reuse a connection pool or to inject a mock transport.
    """

    def __init__(self, api_key: str, client: httpx.AsyncClient | None = None):
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=10.0)
        self._owns_client = client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GeocodingService":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _get(self, params: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.get(
            f"{settings.GOOGLE_MAPS_BASE_URL}/geocode/json",
            params={**params, "key": self.api_key},
        )
        response.raise_for_status()
        return response.json()

    async def geocode(self, address: str, parish: str | None = None) -> dict[str, Any]:
        full_address = build_address(address, parish)
        try:
            data = await self._get(
                {"address": full_address, "region": "jm", "components": "country:JM"}
            )
        except httpx.HTTPError as e:
            logger.error(f"Geocoding request failed for '{full_address}': {e}")
            return _failure(f"Geocoding request failed: {e}", address)

        status = data.get("status")
        if status != "OK":
            return _failure(
                f"Geocoding failed: {status} - {data.get('error_message', 'Unknown error')}",
                address,
            )
        if not data.get("results"):
            return _failure("No results found for the provided address", address)

        result = data["results"][0]
        location = result["geometry"]["location"]
        if not within_jamaica(location["lat"], location["lng"]):
            logger.warning(f"Geocoded '{full_address}' outside Jamaica: {location}")
            return _failure(
                "Address resolved to location outside Jamaica. "
                "Please provide a more specific Jamaican address.",
                address,
            )

        components = result.get("address_components", [])
        return {
            "success": True,
            "data": {
                "latitude": location["lat"],
                "longitude": location["lng"],
                "formattedAddress": result.get("formatted_address"),
                "placeId": result.get("place_id"),
                "parish": extract_parish(components),
            },
        }

    async def reverse_geocode(self, latitude: float, longitude: float) -> dict[str, Any]:
        original = f"{latitude}, {longitude}"
        try:
            data = await self._get({"latlng": f"{latitude},{longitude}"})
        except httpx.HTTPError as e:
            logger.error(f"Reverse geocoding request failed for {original}: {e}")
            return _failure(f"Reverse geocoding request failed: {e}", original)

        if data.get("status") != "OK":
            return _failure(f"Reverse geocoding failed: {data.get('status')}", original)
        if not data.get("results"):
            return _failure("No address found for the provided coordinates", original)

        result = data["results"][0]
        return {
            "success": True,
            "data": {
                "latitude": latitude,
                "longitude": longitude,
                "formattedAddress": result.get("formatted_address"),
                "placeId": result.get("place_id"),
                "parish": extract_parish(result.get("address_components", [])),
            },
        }

    async def batch_geocode(self, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        Geocode ``{"id", "address", "parish"}`` items in groups of five.

        Returns ``{"id", "result"}`` per item, in input order.
        """
        results: list[dict[str, Any]] = []
        for start in range(0, len(items), BATCH_SIZE):
            batch = items[start : start + BATCH_SIZE]
            geocoded = await asyncio.gather(
                *(self.geocode(item["address"], item.get("parish")) for item in batch)
            )
            results.extend(
                {"id": item.get("id"), "result": result}
                for item, result in zip(batch, geocoded, strict=True)
            )
            if start + BATCH_SIZE < len(items):
                await asyncio.sleep(BATCH_PAUSE_SECONDS)
        return results
