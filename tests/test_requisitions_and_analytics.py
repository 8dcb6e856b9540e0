from datetime import date, datetime, timedelta

import pytest

from app.routes.analytics import (
    dashboard_metrics,
    driver_performance,
    hour_label,
    performance_band,
    period_report,
    period_start,
    route_performance,
)
from app.schemas.analytics import ReportPeriod
from app.services.trip_lifecycle import cancel_trip, end_trip, start_trip, update_trip_details
from conftest import NOW

REQUISITION = {
    "name": "Nadia",
    "department": "CSE",
    "purpose": "Study tour",
    "requestedDate": "2026-11-02",
    "requestedTime": "09:30",
    "numberOfPassengers": 35,
}


@pytest.fixture
def student(make_user):
    return make_user("STUDENT", email="nadia@campus.edu")


def test_student_submits_and_admin_approves(client, student, admin, headers_for, admin_headers):
    submitted = client.post("/requisitions/", json=REQUISITION, headers=headers_for(student))
    assert submitted.status_code == 201
    requisition = submitted.json()["requisition"]
    assert requisition["status"] == "PENDING"
    assert requisition["requestedDate"] == "2026-11-02"

    listed = client.get("/requisitions/", params={"status": "PENDING"}, headers=admin_headers).json()
    assert [r["id"] for r in listed] == [requisition["id"]]
    assert listed[0]["userEmail"] == "nadia@campus.edu"

    reviewed = client.put(
        f"/requisitions/{requisition['id']}",
        json={"status": "APPROVED", "adminNotes": "Bus 2 assigned"},
        headers=admin_headers,
    )
    assert reviewed.status_code == 200
    assert reviewed.json()["status"] == "APPROVED"
    assert reviewed.json()["reviewedAt"] is not None

    mine = client.get("/requisitions/mine", headers=headers_for(student)).json()
    assert mine[0]["adminNotes"] == "Bus 2 assigned"


def test_review_needs_final_status(client, student, headers_for, admin_headers):
    requisition = client.post("/requisitions/", json=REQUISITION, headers=headers_for(student)).json()["requisition"]

    response = client.put(f"/requisitions/{requisition['id']}", json={"status": "PENDING"}, headers=admin_headers)

    assert response.status_code == 400


def test_requisition_validation(client, student, headers_for):
    bad = {**REQUISITION, "numberOfPassengers": 0}
    assert client.post("/requisitions/", json=bad, headers=headers_for(student)).status_code == 422


def test_drivers_cannot_submit_requisitions(client, make_user, headers_for):
    response = client.post("/requisitions/", json=REQUISITION, headers=headers_for(make_user("DRIVER")))
    assert response.status_code == 403


def test_hour_labels():
    assert hour_label(6) == "6 AM"
    assert hour_label(12) == "12 PM"
    assert hour_label(19) == "7 PM"


def test_dashboard_metrics(db, make_vehicle, make_schedule):
    busy = make_vehicle()
    make_schedule(busy)
    make_vehicle()
    make_vehicle(is_active=False)
    db["requisitions"].insert_one({"status": "PENDING"})

    # 10:00 local on Sunday
    start_trip(db, busy["_id"], NOW)
    end_trip(db, busy["_id"], NOW + timedelta(minutes=45))
    # Wednesday, still running at 08:00 local
    start_trip(db, busy["_id"], datetime(2026, 10, 21, 2, 0, 0))

    metrics = dashboard_metrics(db, now=datetime(2026, 10, 21, 3, 0, 0))

    assert metrics["totalVehicles"] == 2
    assert metrics["activeTrips"] == 1
    assert metrics["pendingRequisitions"] == 1
    assert [d["day"] for d in metrics["weeklyTripsData"]] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    assert [d["trips"] for d in metrics["weeklyTripsData"]] == [1, 0, 0, 1, 0, 0, 0]
    peak = {p["hour"]: p["trips"] for p in metrics["peakHoursData"]}
    assert len(peak) == 14
    assert peak["10 AM"] == 1
    assert peak["8 AM"] == 1
    assert sum(peak.values()) == 2


def test_dashboard_is_admin_only(client, make_user, headers_for):
    response = client.get("/analytics/dashboard", headers=headers_for(make_user("DRIVER")))
    assert response.status_code == 403


@pytest.fixture
def fleet_history(db, make_user, make_vehicle, make_schedule, make_route):
    """Saturday and Sunday of one week across three buses and routes."""
    make_user("STUDENT", name="Nadia")
    karim = make_user("DRIVER", name="Karim")
    rahim = make_user("DRIVER", name="Rahim")
    loop = make_vehicle(registration="DHA-1", driver=karim)
    hill = make_vehicle(registration="DHA-2", driver=rahim)
    night = make_vehicle(registration="DHA-3")
    make_schedule(loop, route=make_route("Campus Loop"))
    make_schedule(hill, route=make_route("Hill Line"))
    make_schedule(night, route=make_route("Night Shuttle"))

    # Saturday, 15 minutes on time
    saturday = NOW - timedelta(days=1)
    start_trip(db, loop["_id"], saturday)
    end_trip(db, loop["_id"], saturday + timedelta(minutes=15))

    # Sunday: 45 minutes on time, one stuck in traffic, one called off
    start_trip(db, loop["_id"], NOW)
    end_trip(db, loop["_id"], NOW + timedelta(minutes=45))
    delayed = start_trip(db, hill["_id"], NOW + timedelta(minutes=5))
    update_trip_details(db, delayed["tripId"], {"driverStatus": "DELAYED_TRAFFIC"})
    start_trip(db, night["_id"], NOW + timedelta(minutes=10))
    cancel_trip(db, night["_id"], NOW + timedelta(minutes=20))
    return {"karim": karim, "rahim": rahim}


def test_route_performance(db, fleet_history):
    routes = route_performance(db, now=NOW + timedelta(hours=1))

    assert [r["route"] for r in routes] == ["Campus Loop", "Hill Line"]
    assert routes[0]["trips"] == 2
    assert routes[0]["efficiency"] == 100.0
    assert routes[0]["avgDuration"] == 30.0
    assert routes[1]["trips"] == 1
    assert routes[1]["efficiency"] == 0.0
    assert routes[1]["avgDuration"] == 0.0


def test_route_performance_ignores_trips_older_than_thirty_days(db, fleet_history):
    assert route_performance(db, now=NOW + timedelta(days=45)) == []


def test_driver_performance(db, fleet_history):
    now = NOW + timedelta(hours=1)

    report = driver_performance(db, now=now)

    drivers = {d["driver"]: d for d in report["driverPerformance"]}
    assert [d["driver"] for d in report["driverPerformance"]] == ["Karim", "Rahim"]
    assert drivers["Karim"]["totalTrips"] == 2
    assert drivers["Karim"]["onTimePercentage"] == 100.0
    assert drivers["Karim"]["performance"] == "excellent"
    assert drivers["Rahim"]["driverId"] == str(fleet_history["rahim"]["_id"])
    assert drivers["Rahim"]["completionRate"] == 0.0
    assert drivers["Rahim"]["performance"] == "needs_improvement"
    assert report["delayAnalysis"] == [{"reason": "Traffic", "count": 1}]
    assert report["lastUpdated"] == now.isoformat()


@pytest.mark.parametrize("percentage, band", [
    (95.0, "excellent"),
    (90.0, "excellent"),
    (85.5, "good"),
    (70.0, "average"),
    (69.9, "needs_improvement"),
])
def test_performance_bands(percentage, band):
    assert performance_band(percentage) == band


@pytest.mark.parametrize("period, first_day", [
    (ReportPeriod.WEEK, date(2026, 11, 15)),
    (ReportPeriod.MONTH, date(2026, 11, 1)),
    (ReportPeriod.QUARTER, date(2026, 10, 1)),
    (ReportPeriod.YEAR, date(2026, 1, 1)),
])
def test_period_start(period, first_day):
    # a Thursday
    assert period_start(date(2026, 11, 19), period) == first_day


def test_weekly_report(db, fleet_history):
    report = period_report(db, ReportPeriod.WEEK, now=NOW + timedelta(hours=1))

    assert report["period"] == "week"
    assert report["tripHistoryData"] == [{"date": "2026-10-18", "trips": 3, "completed": 1, "cancelled": 1}]
    assert report["punctualityData"] == [
        {"registrationNumber": "DHA-1", "onTime": 1, "delayed": 0},
        {"registrationNumber": "DHA-2", "onTime": 0, "delayed": 1},
        {"registrationNumber": "DHA-3", "onTime": 0, "delayed": 0},
    ]
    assert report["userActivityData"] == [{"name": "Drivers", "value": 2}, {"name": "Students", "value": 1}]
    recent = report["recentTrips"]
    assert [t["routeName"] for t in recent] == ["Night Shuttle", "Hill Line", "Campus Loop"]
    assert [t["registrationNumber"] for t in recent] == ["DHA-3", "DHA-2", "DHA-1"]
    assert recent[1]["driverStatus"] == "DELAYED_TRAFFIC"
    assert recent[2]["departureTime"] == "08:00"


def test_monthly_report_reaches_back_past_the_week(db, fleet_history):
    report = period_report(db, ReportPeriod.MONTH, now=NOW + timedelta(hours=1))

    assert [d["date"] for d in report["tripHistoryData"]] == ["2026-10-17", "2026-10-18"]
    assert report["punctualityData"][0] == {"registrationNumber": "DHA-1", "onTime": 2, "delayed": 0}


def test_reports_endpoint(client, admin_headers):
    response = client.get("/analytics/reports", params={"period": "quarter"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["period"] == "quarter"
    assert response.json()["userActivityData"] == [{"name": "Admins", "value": 1}]


def test_reports_reject_unknown_period(client, admin_headers):
    response = client.get("/analytics/reports", params={"period": "decade"}, headers=admin_headers)
    assert response.status_code == 422


@pytest.mark.parametrize("path", ["/analytics/route-performance", "/analytics/drivers", "/analytics/reports"])
def test_performance_analytics_are_admin_only(client, make_user, headers_for, path):
    response = client.get(path, headers=headers_for(make_user("STUDENT")))
    assert response.status_code == 403


def test_performance_endpoints_with_no_trips(client, admin_headers):
    assert client.get("/analytics/route-performance", headers=admin_headers).json() == []
    drivers = client.get("/analytics/drivers", headers=admin_headers).json()
    assert drivers["driverPerformance"] == []
    assert drivers["delayAnalysis"] == []
