"""
Unit tests for parish analytics and usage event tracking.
"""

import json
from datetime import UTC, datetime

import pytest
from google.cloud import bigquery

from app.services import event_tracking
from app.services.analytics import parish_comparison, parish_totals


def parish(name, incidents=0, critical=0, observers=0, stations=0, check_ins=0):
    return {
        "parishName": name,
        "pollingStations": stations,
        "totalIncidents": incidents,
        "criticalIncidents": critical,
        "activeObservers": observers,
        "checkInsToday": check_ins,
    }


class TestParishAggregates:
    def test_totals(self):
        stats = [
            parish("Kingston", incidents=4, critical=1, observers=10, stations=30, check_ins=8),
            parish("St. Andrew", incidents=2, observers=12, stations=45, check_ins=11),
        ]

        totals = parish_totals(stats)

        assert totals == {
            "totalParishes": 2,
            "totalStations": 75,
            "totalIncidents": 6,
            "totalCritical": 1,
            "totalObservers": 22,
            "totalCheckInsToday": 19,
        }

    def test_totals_empty(self):
        assert parish_totals([])["totalParishes"] == 0

    def test_comparison_ties_go_to_first_parish(self):
        stats = [
            parish("Kingston", incidents=5, observers=3),
            parish("St. Catherine", incidents=5, observers=9, critical=2),
        ]

        comparison = parish_comparison(stats)

        assert comparison["highestIncidents"] == "Kingston"
        assert comparison["mostObservers"] == "St. Catherine"
        assert comparison["criticalAlerts"] == ["St. Catherine: 2 critical incidents"]

    def test_comparison_empty(self):
        assert parish_comparison([]) == {
            "highestIncidents": None,
            "mostObservers": None,
            "criticalAlerts": [],
        }


class TestEventRows:
    def test_location_becomes_wkt_point(self):
        row = event_tracking.build_event_row(
            "42",
            "report_submitted",
            {"reportId": "abc"},
            timestamp=datetime(2025, 9, 3, tzinfo=UTC),
            location={"latitude": 18.0, "longitude": -76.8},
        )

        assert row["location"] == "POINT(-76.8 18.0)"
        assert json.loads(row["event_data"]) == {"reportId": "abc"}
        assert row["timestamp"] == "2025-09-03T00:00:00+00:00"

    def test_row_without_location(self):
        row = event_tracking.build_event_row("42", "user_login")

        assert row["location"] is None
        assert row["event_data"] == "{}"


class TestReportQuery:
    @pytest.fixture(autouse=True)
    def project(self, mocker):
        mocker.patch.object(event_tracking.settings, "GOOGLE_CLOUD_PROJECT_ID", "caffe-test")

    def test_no_filters(self):
        query, params = event_tracking.build_report_query()

        assert "WHERE" not in query
        assert "LIMIT" not in query
        assert "`caffe-test.electoral_observation.events`" in query
        assert params == []

    def test_filters_are_parameters(self):
        query, params = event_tracking.build_report_query(
            event_type="user_login", user_id="7", limit=100
        )

        assert "event_type = @event_type AND user_id = @user_id" in query
        assert query.endswith("LIMIT @limit")
        assert [p.name for p in params] == ["event_type", "user_id", "limit"]
        assert params[-1].value == 100
        assert "user_login" not in query


class TestEventTracking:
    @pytest.mark.asyncio
    async def test_track_skipped_without_project(self, mocker):
        mocker.patch.object(event_tracking.settings, "GOOGLE_CLOUD_PROJECT_ID", None)
        get_client = mocker.patch.object(event_tracking, "get_client")

        assert await event_tracking.track_event({"event_type": "user_login"}) is False
        get_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_track_raises_on_insert_errors(self, mocker):
        mocker.patch.object(event_tracking.settings, "GOOGLE_CLOUD_PROJECT_ID", "caffe-test")
        client = mocker.MagicMock(spec=bigquery.Client)
        client.insert_rows_json.return_value = [{"index": 0, "errors": ["bad row"]}]
        mocker.patch.object(event_tracking, "get_client", return_value=client)

        with pytest.raises(event_tracking.EventTrackingError):
            await event_tracking.track_event({"event_type": "user_login"})

    @pytest.mark.asyncio
    async def test_metrics_default_without_project(self, mocker):
        mocker.patch.object(event_tracking.settings, "GOOGLE_CLOUD_PROJECT_ID", None)

        assert await event_tracking.get_metrics() == event_tracking.EMPTY_METRICS

    @pytest.mark.asyncio
    async def test_custom_report_without_project(self, mocker):
        mocker.patch.object(event_tracking.settings, "GOOGLE_CLOUD_PROJECT_ID", None)

        report = await event_tracking.run_custom_report(event_type="user_login")

        assert report["data"] == []
        assert report["parameters"] == {"event_type": "user_login"}
