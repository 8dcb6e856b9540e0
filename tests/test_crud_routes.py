import pytest


@pytest.fixture
def student_headers(make_user, headers_for):
    return headers_for(make_user("STUDENT"))


def create_stop(client, headers, name, coordinates):
    response = client.post("/stops/", json={"name": name, "coordinates": coordinates}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestVehicles:
    def test_create_normalizes_registration(self, client, db, admin_headers):
        response = client.post(
            "/vehicles/",
            json={"registrationNumber": " dha-1234 ", "type": "BUS", "capacity": 40},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["registrationNumber"] == "DHA-1234"
        assert db["vehicles"].find_one()["registration_number"] == "DHA-1234"

    def test_duplicate_registration_is_rejected(self, client, admin_headers, make_vehicle):
        make_vehicle(registration="DHA-1234")

        response = client.post(
            "/vehicles/",
            json={"registrationNumber": "dha-1234", "type": "MINIBUS", "capacity": 20},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_students_cannot_create_vehicles(self, client, student_headers):
        response = client.post(
            "/vehicles/",
            json={"registrationNumber": "DHA-1", "type": "BUS", "capacity": 40},
            headers=student_headers,
        )
        assert response.status_code == 403

    def test_driver_assignment(self, client, admin_headers, make_user, make_vehicle):
        driver = make_user("DRIVER", name="Karim")
        make_vehicle(registration="DHA-1", driver=driver)

        taken = client.post(
            "/vehicles/",
            json={"registrationNumber": "DHA-2", "type": "BUS", "capacity": 40, "driverId": str(driver["_id"])},
            headers=admin_headers,
        )
        assert taken.status_code == 400
        assert taken.json()["detail"] == "Driver is already assigned to another active vehicle"

        not_a_driver = client.post(
            "/vehicles/",
            json={"registrationNumber": "DHA-3", "type": "BUS", "capacity": 40, "driverId": str(make_user("STUDENT")["_id"])},
            headers=admin_headers,
        )
        assert not_a_driver.status_code == 400

    def test_update_and_unassign_driver(self, client, admin_headers, make_user, make_vehicle):
        driver = make_user("DRIVER", name="Karim")
        vehicle = make_vehicle(registration="DHA-1", driver=driver)

        assigned = client.get(f"/vehicles/{vehicle['_id']}", headers=admin_headers).json()
        assert assigned["driverName"] == "Karim"

        response = client.put(
            f"/vehicles/{vehicle['_id']}",
            json={"capacity": 30, "driverId": None},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["capacity"] == 30
        assert response.json()["driverId"] is None

    def test_reactivating_vehicle_keeps_driver_on_one_active_vehicle(self, client, db, admin_headers, make_user, make_vehicle):
        driver = make_user("DRIVER", name="Karim")
        make_vehicle(registration="DHA-1", driver=driver)
        parked = make_vehicle(registration="DHA-2", driver=driver, is_active=False)

        response = client.put(f"/vehicles/{parked['_id']}", json={"isActive": True}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Driver is already assigned to another active vehicle"
        assert db["vehicles"].count_documents({"driver_id": driver["_id"], "is_active": True}) == 1

    def test_reactivating_vehicle_with_free_driver(self, client, admin_headers, make_user, make_vehicle):
        driver = make_user("DRIVER", name="Karim")
        parked = make_vehicle(registration="DHA-2", driver=driver, is_active=False)

        response = client.put(f"/vehicles/{parked['_id']}", json={"isActive": True}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["isActive"] is True

    def test_active_vehicles_are_visible_to_students(self, client, student_headers, make_vehicle):
        make_vehicle(registration="DHA-1")
        make_vehicle(registration="DHA-2", is_active=False)

        response = client.get("/vehicles/active", headers=student_headers)

        assert response.status_code == 200
        assert [v["registrationNumber"] for v in response.json()] == ["DHA-1"]
        assert response.json()[0]["status"] == "OFFLINE"

    def test_delete_vehicle(self, client, admin_headers, make_vehicle):
        vehicle = make_vehicle()

        assert client.delete(f"/vehicles/{vehicle['_id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/vehicles/{vehicle['_id']}", headers=admin_headers).status_code == 404


class TestStopsAndRoutes:
    def test_stop_coordinates_are_stored_lng_lat(self, client, db, admin_headers):
        stop = create_stop(client, admin_headers, "Library", [22.4625, 91.9700])

        assert stop["location"] == {"lat": 22.4625, "lng": 91.97}
        assert db["stops"].find_one()["location"]["coordinates"] == [91.97, 22.4625]

    def test_stop_out_of_range(self, client, admin_headers):
        response = client.post("/stops/", json={"name": "Nowhere", "coordinates": [95, 10]}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"

    def test_duplicate_stop_name(self, client, admin_headers):
        create_stop(client, admin_headers, "Library", [22.46, 91.97])

        response = client.post("/stops/", json={"name": "Library", "coordinates": [22.47, 91.98]}, headers=admin_headers)

        assert response.status_code == 400

    def test_route_stops_are_numbered_in_order(self, client, admin_headers):
        library = create_stop(client, admin_headers, "Library", [22.46, 91.97])
        gate = create_stop(client, admin_headers, "Main Gate", [22.47, 91.98])

        response = client.post(
            "/routes/",
            json={"name": "Campus Loop", "stops": [gate["id"], library["id"]]},
            headers=admin_headers,
        )

        assert response.status_code == 201
        stops = response.json()["stops"]
        assert [(s["order"], s["stop"]["name"]) for s in stops] == [(1, "Main Gate"), (2, "Library")]

    def test_route_with_unknown_stop(self, client, admin_headers):
        response = client.post(
            "/routes/",
            json={"name": "Ghost Route", "stops": ["64b7f0c2a1b2c3d4e5f60718"]},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_stop_in_use_cannot_be_deleted(self, client, admin_headers):
        library = create_stop(client, admin_headers, "Library", [22.46, 91.97])
        client.post("/routes/", json={"name": "Campus Loop", "stops": [library["id"]]}, headers=admin_headers)

        response = client.delete(f"/stops/{library['id']}", headers=admin_headers)

        assert response.status_code == 400


class TestSchedules:
    def test_create_schedule_normalizes_time(self, client, admin_headers, make_vehicle, make_route):
        vehicle = make_vehicle(registration="DHA-1")
        route = make_route("Campus Loop")

        response = client.post(
            "/schedules/",
            json={"route": str(route["_id"]), "vehicle": str(vehicle["_id"]), "departureTime": "7:05", "daysOfWeek": [3, 1, 1]},
            headers=admin_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["departureTime"] == "07:05"
        assert body["daysOfWeek"] == [1, 3]
        assert body["routeName"] == "Campus Loop"
        assert body["registrationNumber"] == "DHA-1"

    @pytest.mark.parametrize("payload", [
        {"departureTime": "25:00", "daysOfWeek": [1]},
        {"departureTime": "08:00", "daysOfWeek": [7]},
        {"departureTime": "08:00", "daysOfWeek": []},
    ])
    def test_invalid_schedule_fields(self, client, admin_headers, make_vehicle, make_route, payload):
        payload = {"route": str(make_route()["_id"]), "vehicle": str(make_vehicle()["_id"]), **payload}

        response = client.post("/schedules/", json=payload, headers=admin_headers)

        assert response.status_code == 422

    def test_schedule_requires_existing_vehicle(self, client, admin_headers, make_route):
        response = client.post(
            "/schedules/",
            json={"route": str(make_route()["_id"]), "vehicle": "64b7f0c2a1b2c3d4e5f60718", "departureTime": "08:00", "daysOfWeek": [1]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Vehicle not found"

    def test_list_sorted_by_departure(self, client, student_headers, make_vehicle, make_schedule):
        vehicle = make_vehicle()
        make_schedule(vehicle, departure_time="16:00")
        make_schedule(vehicle, departure_time="07:30")

        response = client.get("/schedules/", headers=student_headers)

        assert [s["departureTime"] for s in response.json()] == ["07:30", "16:00"]
