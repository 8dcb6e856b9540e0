import pytest

from app.utils.auth_token import verify_access_token
from app.utils.password_hashing import hash_password, verify_password


@pytest.fixture
def roster(db):
    db["students"].insert_one({"name": "Nadia", "email": "nadia@campus.edu", "reg_id": "CSE-2021-001"})


def test_student_signup_and_login(client, roster):
    signup = client.post(
        "/users/signup",
        json={"name": "Nadia", "email": "Nadia@campus.edu", "password": "secret123"},
    )
    assert signup.status_code == 201
    assert signup.json()["role"] == "STUDENT"
    assert signup.json()["email"] == "nadia@campus.edu"

    login = client.post("/users/login", json={"email": "nadia@campus.edu", "password": "secret123"})
    assert login.status_code == 200
    claims = verify_access_token(login.json()["access_token"])
    assert claims["role"] == "STUDENT"
    assert claims["user_id"] == signup.json()["id"]


def test_signup_requires_roster_entry(client, db):
    response = client.post(
        "/users/signup",
        json={"name": "Someone", "email": "someone@campus.edu", "password": "secret123"},
    )

    assert response.status_code == 400
    assert db["users"].count_documents({}) == 0


def test_signup_cannot_pick_privileged_role(client, roster):
    response = client.post(
        "/users/signup",
        json={"name": "Nadia", "email": "nadia@campus.edu", "password": "secret123", "role": "ADMIN"},
    )
    assert response.status_code == 403


def test_duplicate_signup(client, roster):
    payload = {"name": "Nadia", "email": "nadia@campus.edu", "password": "secret123"}
    client.post("/users/signup", json=payload)

    response = client.post("/users/signup", json=payload)

    assert response.status_code == 400


def test_login_with_wrong_password(client, make_user):
    make_user("DRIVER", email="driver@campus.edu", password="correct-horse")

    response = client.post("/users/login", json={"email": "driver@campus.edu", "password": "wrong-horse"})

    assert response.status_code == 401


def test_admin_manages_drivers(client, admin_headers, make_vehicle, db):
    created = client.post(
        "/users/drivers",
        json={"name": "Karim", "email": "karim@campus.edu", "password": "driver123"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    driver_id = created.json()["id"]

    renamed = client.put(f"/users/drivers/{driver_id}", json={"name": "Karim Uddin"}, headers=admin_headers)
    assert renamed.json()["name"] == "Karim Uddin"

    drivers = client.get("/users/drivers", headers=admin_headers).json()
    assert [d["email"] for d in drivers] == ["karim@campus.edu"]

    driver = db["users"].find_one({"email": "karim@campus.edu"})
    vehicle = make_vehicle(driver=driver)
    assert client.delete(f"/users/{driver_id}", headers=admin_headers).status_code == 200
    assert db["vehicles"].find_one({"_id": vehicle["_id"]})["driver_id"] is None


def test_drivers_cannot_list_drivers(client, make_user, headers_for):
    response = client.get("/users/drivers", headers=headers_for(make_user("DRIVER")))
    assert response.status_code == 403


def test_students_list_marks_roster_membership(client, roster, admin_headers):
    client.post("/users/signup", json={"name": "Nadia", "email": "nadia@campus.edu", "password": "secret123"})

    students = client.get("/users/students", headers=admin_headers).json()

    assert students[0]["onRoster"] is True
    assert students[0]["regId"] == "CSE-2021-001"


def test_admin_cannot_delete_self(client, admin, admin_headers):
    response = client.delete(f"/users/{admin['_id']}", headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.parametrize("password", [
    "simplepassword",
    "complex@Password123!",
    "a" * 100,
    "émojis🔥password",
])
def test_password_hashing_round_trip(password):
    hashed = hash_password(password)

    assert verify_password(password, hashed)
    assert not verify_password(password + "wrong", hashed)


def test_verify_against_malformed_hash():
    assert verify_password("secret123", "not-a-bcrypt-hash") is False
