from dotenv import load_dotenv
import os

load_dotenv()

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "campusTransitDB")

SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "12"))

# "Today" for schedules and trips is the campus calendar day, not the UTC one
CAMPUS_TIMEZONE = os.getenv("CAMPUS_TIMEZONE", "Asia/Dhaka")

# Map point shown for vehicles that have not reported a location yet
FALLBACK_LATITUDE = float(os.getenv("FALLBACK_LATITUDE", "22.6125"))
FALLBACK_LONGITUDE = float(os.getenv("FALLBACK_LONGITUDE", "92.1647"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
