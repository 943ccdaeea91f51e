"""
Unit tests for CSV export utilities.
"""

import csv
import io
from uuid import uuid4

from app.utils.csv_export import REPORT_COLUMNS, flatten_metadata, reports_to_csv


def read_csv(text):
    return list(csv.DictReader(io.StringIO(text)))


class TestFlattenMetadata:
    """Test metadata flattening."""

    def test_flat_data_unchanged(self):
        data = {"incidentType": "violence", "injuries": 0}

        assert flatten_metadata(data) == data

    def test_nested_data(self):
        data = {
            "incidentType": "intimidation",
            "location": {"area": "Spanish Town", "coordinates": {"lat": 17.99, "lng": -76.95}},
            "witnesses": ["JLP agent", "PNP agent"],
        }

        result = flatten_metadata(data)

        assert result == {
            "incidentType": "intimidation",
            "location.area": "Spanish Town",
            "location.coordinates.lat": 17.99,
            "location.coordinates.lng": -76.95,
            "witnesses": "JLP agent, PNP agent",
        }

    def test_prefix(self):
        assert flatten_metadata({"a": 1}, "metadata") == {"metadata.a": 1}

    def test_empty(self):
        assert flatten_metadata({}) == {}


class TestReportsToCsv:
    """Test report CSV rendering."""

    def test_empty_list(self):
        assert reports_to_csv([]) == ""

    def test_single_report(self):
        report_id = str(uuid4())
        reports = [
            {
                "id": report_id,
                "created_at": "2025-09-03T10:00:00Z",
                "observer_id": "042137",
                "first_name": "Jane",
                "last_name": "Brown",
                "username": "jbrown",
                "station_code": "KGN-001",
                "station_name": "Kingston College",
                "parish_name": "Kingston",
                "type": "incident",
                "priority": "high",
                "status": "submitted",
                "title": "Late opening",
                "description": "Station opened 40 minutes late",
                "attachments": ["a.jpg", "b.jpg"],
                "metadata": {"incidentType": "procedural", "delay": {"minutes": 40}},
            }
        ]

        rows = read_csv(reports_to_csv(reports))

        assert len(rows) == 1
        row = rows[0]
        assert row["report_id"] == report_id
        assert row["observer"] == "Jane Brown"
        assert row["parish"] == "Kingston"
        assert row["attachments"] == "2"
        assert row["metadata.incidentType"] == "procedural"
        assert row["metadata.delay.minutes"] == "40"

    def test_metadata_columns_follow_fixed_columns(self):
        reports = [
            {"id": "1", "title": "A", "metadata": {"zeta": 1}},
            {"id": "2", "title": "B", "metadata": {"alpha": 2}},
        ]

        output = reports_to_csv(reports)
        header = output.splitlines()[0].split(",")

        assert header == REPORT_COLUMNS + ["metadata.alpha", "metadata.zeta"]
        rows = read_csv(output)
        assert rows[0]["metadata.alpha"] == ""
        assert rows[1]["metadata.alpha"] == "2"

    def test_observer_falls_back_to_username(self):
        rows = read_csv(reports_to_csv([{"id": "1", "username": "observer7"}]))

        assert rows[0]["observer"] == "observer7"
        assert rows[0]["station_code"] == ""
