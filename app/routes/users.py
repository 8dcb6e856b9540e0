from fastapi import APIRouter, HTTPException, Depends
from pymongo.database import Database
from app.database import get_db
from app.dependencies.roles import admin_required
from app.models.user import user_helper
from app.schemas.user import DriverCreate, DriverUpdate, UserCreate, UserInDB, UserLogin, UserRole
from app.utils.auth_token import create_access_token
from app.utils.dates import utc_now
from app.utils.object_ids import parse_object_id
from app.utils.password_hashing import hash_password, verify_password
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _ensure_email_free(db: Database, email: str, exclude_id=None):
    query = {"email": email}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    if db["users"].find_one(query):
        raise HTTPException(status_code=400, detail="User with this email already exists")


def _insert_user(db: Database, name: str, email: str, password: str, role: str) -> dict:
    now = utc_now()
    user = {
        "name": name,
        "email": email,
        "password": hash_password(password),
        "role": role,
        "created_at": now,
        "updated_at": now,
    }
    db["users"].insert_one(user)
    return user


@router.post("/signup", response_model=UserInDB, status_code=201)
def signup(user: UserCreate, db: Database = Depends(get_db)):
    """Self registration, open to students on the campus roster only.

    Drivers and admins are created by an admin.
    """
    role = (user.role or UserRole.STUDENT).value
    if role != UserRole.STUDENT.value:
        raise HTTPException(status_code=403, detail="Only students can sign up")

    email = user.email.lower()
    _ensure_email_free(db, email)

    if not db["students"].find_one({"email": email}):
        logger.warning(f"Signup rejected for {email}: not on the student roster")
        raise HTTPException(status_code=400, detail="User is not a Student. Database doesn't contain this email.")

    created = _insert_user(db, user.name.strip(), email, user.password, role)
    logger.info(f"✅ Student {email} signed up")
    return user_helper(created)


@router.post("/login")
def login_user(login_data: UserLogin, db: Database = Depends(get_db)):
    user = db["users"].find_one({"email": login_data.email.lower()})

    if not user or not verify_password(login_data.password, user["password"]):
        raise HTTPException(status_code=401, detail="email or password is invalid")

    token_data = {
        "user_id": str(user["_id"]),
        "email": user["email"],
        "role": user["role"]
    }

    return {
        "access_token": create_access_token(token_data),
        "token_type": "bearer",
        "user": user_helper(user),
    }


@router.get("/students")
def get_students(db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    """Registered students, newest first, flagged against the roster."""
    roster = {s["email"]: s for s in db["students"].find()}
    students = []
    for user in db["users"].find({"role": UserRole.STUDENT.value}).sort("created_at", -1):
        entry = user_helper(user)
        record = roster.get(user["email"])
        entry["regId"] = record.get("reg_id") if record else None
        entry["onRoster"] = record is not None
        students.append(entry)
    return students


@router.get("/drivers")
def get_drivers(db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    return [user_helper(u) for u in db["users"].find({"role": UserRole.DRIVER.value}).sort("created_at", -1)]


@router.post("/drivers", response_model=UserInDB, status_code=201)
def create_driver(payload: DriverCreate, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    email = payload.email.lower()
    _ensure_email_free(db, email)
    driver = _insert_user(db, payload.name.strip(), email, payload.password, UserRole.DRIVER.value)
    logger.info(f"🧑‍✈️ Driver {email} created by {current_user['email']}")
    return user_helper(driver)


@router.put("/drivers/{driver_id}", response_model=UserInDB)
def update_driver(
    driver_id: str,
    payload: DriverUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(admin_required),
):
    oid = parse_object_id(driver_id, "driver ID")
    driver = db["users"].find_one({"_id": oid})
    if not driver or driver["role"] != UserRole.DRIVER.value:
        raise HTTPException(status_code=404, detail="Driver not found")

    update_data = {"updated_at": utc_now()}
    if payload.name is not None:
        update_data["name"] = payload.name.strip()
    if payload.email is not None and payload.email.lower() != driver["email"]:
        _ensure_email_free(db, payload.email.lower(), exclude_id=oid)
        update_data["email"] = payload.email.lower()
    if payload.password:
        update_data["password"] = hash_password(payload.password)

    db["users"].update_one({"_id": oid}, {"$set": update_data})
    return user_helper(db["users"].find_one({"_id": oid}))


@router.delete("/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    oid = parse_object_id(user_id, "user ID")
    if user_id == current_user["user_id"]:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    user = db["users"].find_one({"_id": oid})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user["role"] == UserRole.DRIVER.value:
        # vehicles keep running without a driver until reassigned
        released = db["vehicles"].update_many({"driver_id": oid}, {"$set": {"driver_id": None, "updated_at": utc_now()}})
        if released.modified_count:
            logger.info(f"Released {released.modified_count} vehicle(s) from driver {user_id}")

    db["users"].delete_one({"_id": oid})
    return {"message": "User deleted"}
