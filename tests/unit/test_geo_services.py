"""
Unit tests for geocoding, traffic and geographic helpers.

Google Maps calls go through ``httpx.MockTransport``.
"""

from datetime import UTC, datetime

import httpx
import pytest

from app.services import geocoding, traffic
from app.services.geocoding import GeocodingService, MapsKeyMissing, build_address
from app.services.traffic import TrafficService, classify_severity, congestion_level
from app.utils.geo import haversine_meters, within_jamaica

HALF_WAY_TREE = (18.0123, -76.7973)
NATIONAL_STADIUM = (18.0009, -76.7756)


def geocode_payload(lat: float, lng: float, parish: str = "St. Andrew") -> dict:
    return {
        "status": "OK",
        "results": [
            {
                "formatted_address": "Half Way Tree, Kingston, Jamaica",
                "place_id": "abc123",
                "geometry": {"location": {"lat": lat, "lng": lng}},
                "address_components": [
                    {"long_name": "Kingston", "types": ["locality", "political"]},
                    {
                        "long_name": f"{parish} Parish",
                        "types": ["administrative_area_level_1", "political"],
                    },
                ],
            }
        ],
    }


def directions_payload(normal: int, in_traffic: int, distance: int, routes: int = 1) -> dict:
    leg = {
        "duration": {"value": normal, "text": f"{normal // 60} mins"},
        "duration_in_traffic": {"value": in_traffic, "text": f"{in_traffic // 60} mins"},
        "distance": {"value": distance, "text": f"{distance / 1000} km"},
    }
    return {"status": "OK", "routes": [{"legs": [leg]}] * routes}


def mock_client(payload=None, status_code: int = 200, seen: list | None = None) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload or {})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGeoHelpers:
    """Test distance and bounds helpers."""

    def test_haversine_zero(self):
        assert haversine_meters(*HALF_WAY_TREE, *HALF_WAY_TREE) == 0

    def test_haversine_known_distance(self):
        """Half Way Tree to the National Stadium is roughly 2.6 km."""
        distance = haversine_meters(*HALF_WAY_TREE, *NATIONAL_STADIUM)

        assert 2500 < distance < 2900

    def test_within_jamaica(self):
        assert within_jamaica(*HALF_WAY_TREE)
        assert not within_jamaica(25.04, -77.35)  # Nassau


class TestGeocoding:
    """Test the Geocoding API wrapper."""

    def test_build_address(self):
        assert build_address("12 Hope Rd", "St. Andrew") == "12 Hope Rd, St. Andrew, Jamaica"
        assert build_address("12 Hope Rd") == "12 Hope Rd, Jamaica"
        assert build_address("12 Hope Rd, Kingston, Jamaica") == "12 Hope Rd, Kingston, Jamaica"

    @pytest.mark.asyncio
    async def test_geocode_success(self):
        seen: list[httpx.Request] = []
        service = GeocodingService("key", client=mock_client(geocode_payload(18.0123, -76.7973), seen=seen))

        result = await service.geocode("Half Way Tree Primary", "St. Andrew")

        assert result["success"] is True
        assert result["data"]["latitude"] == 18.0123
        assert result["data"]["parish"] == "St. Andrew Parish"
        params = seen[0].url.params
        assert params["address"] == "Half Way Tree Primary, St. Andrew, Jamaica"
        assert params["region"] == "jm"
        assert params["components"] == "country:JM"
        assert params["key"] == "key"

    @pytest.mark.asyncio
    async def test_geocode_outside_jamaica(self):
        service = GeocodingService("key", client=mock_client(geocode_payload(25.04, -77.35)))

        result = await service.geocode("Bay Street")

        assert result["success"] is False
        assert "outside Jamaica" in result["error"]
        assert result["originalAddress"] == "Bay Street"

    @pytest.mark.asyncio
    async def test_geocode_zero_results(self):
        payload = {"status": "ZERO_RESULTS", "results": []}
        service = GeocodingService("key", client=mock_client(payload))

        result = await service.geocode("Nowhere")

        assert result["success"] is False
        assert result["error"].startswith("Geocoding failed: ZERO_RESULTS")

    @pytest.mark.asyncio
    async def test_geocode_http_error(self):
        service = GeocodingService("key", client=mock_client(status_code=500))

        result = await service.geocode("Somewhere")

        assert result["success"] is False
        assert "request failed" in result["error"]

    @pytest.mark.asyncio
    async def test_reverse_geocode(self):
        seen: list[httpx.Request] = []
        service = GeocodingService(
            "key", client=mock_client(geocode_payload(18.0123, -76.7973, "Kingston"), seen=seen)
        )

        result = await service.reverse_geocode(18.0123, -76.7973)

        assert result["data"]["parish"] == "Kingston Parish"
        assert seen[0].url.params["latlng"] == "18.0123,-76.7973"

    @pytest.mark.asyncio
    async def test_batch_geocode_keeps_order_and_pauses(self, mocker):
        sleep = mocker.patch.object(geocoding.asyncio, "sleep", new=mocker.AsyncMock())
        service = GeocodingService("key", client=mock_client(geocode_payload(18.0123, -76.7973)))
        items = [{"id": i, "address": f"Station {i}"} for i in range(7)]

        results = await service.batch_geocode(items)

        assert [r["id"] for r in results] == list(range(7))
        assert all(r["result"]["success"] for r in results)
        sleep.assert_awaited_once_with(geocoding.BATCH_PAUSE_SECONDS)

    @pytest.mark.asyncio
    async def test_resolve_key_from_settings_table(self, mock_conn, mocker):
        mocker.patch.object(geocoding.settings, "GOOGLE_MAPS_API_KEY", None)
        mock_conn.fetchval.return_value = "db-key"

        assert await geocoding.resolve_maps_api_key(mock_conn) == "db-key"

    @pytest.mark.asyncio
    async def test_resolve_key_missing(self, mock_conn, mocker):
        mocker.patch.object(geocoding.settings, "GOOGLE_MAPS_API_KEY", None)
        mock_conn.fetchval.return_value = ""

        with pytest.raises(MapsKeyMissing):
            await geocoding.resolve_maps_api_key(mock_conn)


class TestTraffic:
    """Test traffic classification and the Directions API wrapper."""

    @pytest.mark.parametrize(
        "delay,severity",
        [(0, "light"), (3, "light"), (4, "moderate"), (8, "moderate"), (9, "heavy"), (16, "severe")],
    )
    def test_classify_severity(self, delay, severity):
        assert classify_severity(delay)[0] == severity

    def test_congestion_level(self):
        assert congestion_level(600, 600) == 1
        assert congestion_level(600, 660) == 2
        assert congestion_level(600, 1200) == 10
        assert congestion_level(600, 6000) == 10
        assert congestion_level(0, 100) == 1

    @pytest.mark.asyncio
    async def test_route_traffic(self):
        seen: list[httpx.Request] = []
        payload = directions_payload(normal=600, in_traffic=1200, distance=10000, routes=2)
        service = TrafficService("key", client=mock_client(payload, seen=seen))

        route = await service.route_traffic(HALF_WAY_TREE, NATIONAL_STADIUM)

        assert route["available"] is True
        assert route["delayMinutes"] == 10
        assert route["severity"] == "heavy"
        # 10 km in 20 minutes
        assert route["speed"] == 30
        assert route["alternativeRoutes"] == 1
        params = seen[0].url.params
        assert params["departure_time"] == "now"
        assert params["traffic_model"] == "best_guess"

    @pytest.mark.asyncio
    async def test_route_traffic_unavailable(self):
        service = TrafficService("key", client=mock_client({"status": "REQUEST_DENIED"}))

        route = await service.route_traffic(HALF_WAY_TREE, NATIONAL_STADIUM)

        assert route["available"] is False
        assert route["severity"] == "light"
        assert route["speed"] == 50
        assert route["delayMinutes"] == 0
        assert route["description"] == "Traffic data unavailable"

    @pytest.mark.asyncio
    async def test_record_observation_uses_sunday_zero(self, mock_conn):
        station = {"id": "st-1", "latitude": NATIONAL_STADIUM[0], "longitude": NATIONAL_STADIUM[1]}
        route = traffic.unavailable_route()
        # 2025-09-07 was a Sunday
        observed_at = datetime(2025, 9, 7, 14, 30)

        await traffic.record_observation(mock_conn, station, HALF_WAY_TREE, route, observed_at)

        args = mock_conn.fetchrow.call_args[0]
        assert args[15] == 14
        assert args[16] == 0
        assert args[17] == "fallback"

    @pytest.mark.asyncio
    async def test_record_observation_buckets_in_jamaica_time(self, mock_conn):
        station = {"id": "st-1", "latitude": NATIONAL_STADIUM[0], "longitude": NATIONAL_STADIUM[1]}
        # Monday 03:00 UTC is Sunday 22:00 in Kingston
        observed_at = datetime(2025, 9, 8, 3, 0, tzinfo=UTC)

        await traffic.record_observation(
            mock_conn, station, HALF_WAY_TREE, traffic.unavailable_route(), observed_at
        )

        args = mock_conn.fetchrow.call_args[0]
        assert args[15] == 22
        assert args[16] == 0
        assert args[18] == observed_at
