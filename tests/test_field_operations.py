"""
Tests for reports, check-ins and alerts over HTTP.
"""

from datetime import UTC, datetime
from uuid import uuid4

STATION = {
    "id": str(uuid4()),
    "name": "Kingston College",
    "station_code": "KGN-001",
    "parish_name": "Kingston",
    "latitude": 17.9784,
    "longitude": -76.7836,
}


def report_row(user_id, **overrides):
    report = {
        "id": str(uuid4()),
        "user_id": user_id,
        "type": "incident",
        "title": "Ballot box removed",
        "description": "Presiding officer left with the box",
        "priority": "normal",
        "status": "submitted",
        "metadata": {},
        "attachments": [],
    }
    report.update(overrides)
    return report


async def test_submit_report(make_client, observer_user, mocker):
    create_report = mocker.patch(
        "app.api.routes.reports.create_report", return_value=report_row(observer_user["id"])
    )
    create_alert = mocker.patch("app.api.routes.reports.create_alert")
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/reports",
        json={"type": "incident", "title": "  Ballot box removed ", "description": "..."},
    )

    assert response.status_code == 201
    assert response.json()["data"]["alert_id"] is None
    assert create_report.call_args.kwargs["title"] == "Ballot box removed"
    create_alert.assert_not_called()


async def test_critical_report_raises_alert(make_client, observer_user, mocker):
    report = report_row(observer_user["id"], priority="critical")
    alert_id = str(uuid4())
    mocker.patch("app.api.routes.reports.get_station", return_value=STATION)
    mocker.patch("app.api.routes.reports.create_report", return_value=report)
    create_alert = mocker.patch(
        "app.api.routes.reports.create_alert",
        return_value={"id": alert_id, "title": "Critical incident: Ballot box removed"},
    )
    notify_staff = mocker.patch("app.api.routes.reports.notify_staff")
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/reports",
        json={
            "type": "incident",
            "title": "Ballot box removed",
            "description": "...",
            "priority": "critical",
            "station_id": STATION["id"],
        },
    )

    assert response.status_code == 201
    assert response.json()["data"]["alert_id"] == alert_id
    kwargs = create_alert.call_args.kwargs
    assert kwargs["severity"] == "critical"
    assert kwargs["parish"] == "Kingston"
    assert kwargs["coordinates"] == {"latitude": 17.9784, "longitude": -76.7836}
    notify_staff.assert_awaited_once()


async def test_report_unknown_station(make_client, observer_user, mocker):
    mocker.patch("app.api.routes.reports.get_station", return_value=None)
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/reports",
        json={"type": "routine", "title": "Opening", "description": "...", "station_id": str(uuid4())},
    )

    assert response.status_code == 404


async def test_observer_cannot_see_others_report(make_client, observer_user, mocker):
    mocker.patch(
        "app.api.routes.reports.get_report", return_value=report_row(str(uuid4()))
    )
    client = make_client(observer_user)

    response = await client.get(f"/api/v1/reports/{uuid4()}")

    assert response.status_code == 404


async def test_coordinator_sees_any_report(make_client, coordinator_user, mocker):
    mocker.patch(
        "app.api.routes.reports.get_report", return_value=report_row(str(uuid4()))
    )
    client = make_client(coordinator_user)

    response = await client.get(f"/api/v1/reports/{uuid4()}")

    assert response.status_code == 200


async def test_observer_report_list_is_scoped(make_client, observer_user, mocker):
    list_reports = mocker.patch("app.api.routes.reports.list_reports", return_value=([], 0))
    client = make_client(observer_user)

    response = await client.get("/api/v1/reports", params={"page": 2, "limit": 10})

    assert response.status_code == 200
    assert response.json()["data"]["pagination"]["page"] == 2
    kwargs = list_reports.call_args.kwargs
    assert str(kwargs["user_id"]) == observer_user["id"]
    assert kwargs["offset"] == 10


async def test_export_requires_admin(make_client, coordinator_user):
    client = make_client(coordinator_user)

    response = await client.get("/api/v1/reports/export")

    assert response.status_code == 403


async def test_export_csv(make_client, admin_user, mocker):
    mocker.patch(
        "app.api.routes.reports.list_reports",
        return_value=([report_row(admin_user["id"], metadata={"incidentType": "violence"})], 1),
    )
    mocker.patch("app.api.routes.reports.create_audit_log")
    client = make_client(admin_user)

    response = await client.get("/api/v1/reports/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "metadata.incidentType" in response.text.splitlines()[0]


async def test_check_in_outside_radius_warns(make_client, observer_user, mocker):
    mocker.patch("app.api.routes.check_ins.get_station", return_value=STATION)
    mocker.patch(
        "app.api.routes.check_ins.create_check_in",
        return_value={"id": str(uuid4()), "distance_meters": 812.4, "within_radius": False},
    )
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/check-ins",
        json={"station_id": STATION["id"], "latitude": 17.985, "longitude": -76.78},
    )

    assert response.status_code == 201
    warning = response.json()["data"]["warning"]
    assert warning.startswith("You are 812m from Kingston College")


async def test_check_in_within_radius(make_client, observer_user, mocker):
    mocker.patch("app.api.routes.check_ins.get_station", return_value=STATION)
    mocker.patch(
        "app.api.routes.check_ins.create_check_in",
        return_value={"id": str(uuid4()), "distance_meters": 12.0, "within_radius": True},
    )
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/check-ins",
        json={"station_id": STATION["id"], "latitude": 17.9784, "longitude": -76.7836},
    )

    assert response.json()["data"]["warning"] is None


async def test_check_in_rejects_bad_latitude(make_client, observer_user):
    client = make_client(observer_user)

    response = await client.post(
        "/api/v1/check-ins",
        json={"station_id": STATION["id"], "latitude": 91, "longitude": -76.78},
    )

    assert response.status_code == 422


async def test_alerts_are_staff_only(make_client, observer_user):
    client = make_client(observer_user)

    response = await client.get("/api/v1/alerts")

    assert response.status_code == 403


async def test_resolve_resolved_alert(make_client, coordinator_user, mocker):
    mocker.patch(
        "app.api.routes.alerts.get_alert",
        return_value={
            "id": str(uuid4()),
            "status": "resolved",
            "created_at": datetime(2025, 9, 3, tzinfo=UTC),
        },
    )
    client = make_client(coordinator_user)

    response = await client.post(f"/api/v1/alerts/{uuid4()}/resolve")

    assert response.status_code == 400
    assert response.json()["message"] == "Alert is already resolved"


async def test_missing_alert(make_client, coordinator_user, mocker):
    mocker.patch("app.api.routes.alerts.get_alert", return_value=None)
    client = make_client(coordinator_user)

    response = await client.post(f"/api/v1/alerts/{uuid4()}/escalate")

    assert response.status_code == 404
    assert response.json()["message"] == "Alert not found"
