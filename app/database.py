from pymongo import MongoClient, ASCENDING, GEOSPHERE
from pymongo.database import Database
from app.config import MONGO_URI, MONGO_DB_NAME
import logging

logger = logging.getLogger(__name__)

client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=5000)

db = client[MONGO_DB_NAME]


def get_db() -> Database:
    """FastAPI dependency returning the application database.

    Route handlers take the database through this dependency so tests can
    swap it with ``app.dependency_overrides[get_db]``.
    """
    return db


def ping_database() -> bool:
    try:
        client.admin.command("ping")
        logger.info("✅ MongoDB connected")
        return True
    except Exception as e:
        logger.error(f"❌ MongoDB connection error: {e}")
        return False


def ensure_indexes(database: Database):
    """Create the uniqueness and lookup indexes the trip model relies on."""
    database["vehicles"].create_index("registration_number", unique=True)
    database["stops"].create_index("name", unique=True)
    database["routes"].create_index("name", unique=True)
    database["users"].create_index("email", unique=True)
    database["students"].create_index("email", unique=True)
    # One trip per (schedule, calendar day); "date" holds the day's UTC start
    database["trips"].create_index(
        [("schedule_id", ASCENDING), ("date", ASCENDING)], unique=True
    )
    database["trips"].create_index("status")
    database["schedules"].create_index(
        [("vehicle_id", ASCENDING), ("days_of_week", ASCENDING)]
    )


def ensure_geo_indexes(database: Database):
    database["stops"].create_index([("location", GEOSPHERE)])
    database["trips"].create_index([("live_location", GEOSPHERE)])
