from fastapi import FastAPI
from fastapi import Response
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError
from contextlib import asynccontextmanager
from app.config import CORS_ORIGINS, LOG_LEVEL
from app.database import db, ensure_geo_indexes, ensure_indexes, ping_database
from app.exceptions import TransitError, database_error_handler, transit_error_handler
from app.middleware.request_logging import request_logging_middleware
from app.routes import analytics, bus_routes, requisitions, schedules, stops, trips, users, vehicles
from app.routes.websockets import ws_router
import logging

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 FastAPI starting up...")

    if ping_database():
        try:
            ensure_indexes(db)
            ensure_geo_indexes(db)
            logger.info("✅ Indexes ensured")
        except PyMongoError as e:
            logger.error(f"⚠️ Index creation failed: {e}")

    yield

    # Shutdown
    logger.info("🔄 FastAPI shutting down...")


app = FastAPI(title="Campus Transit Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.middleware("http")(request_logging_middleware)

app.add_exception_handler(TransitError, transit_error_handler)
app.add_exception_handler(PyMongoError, database_error_handler)

# Include routers
app.include_router(users.router)
app.include_router(vehicles.router)
app.include_router(stops.router)
app.include_router(bus_routes.router)
app.include_router(schedules.router)
app.include_router(trips.router)
app.include_router(requisitions.router)
app.include_router(analytics.router)
app.include_router(ws_router)


@app.get("/")
def read_root():
    return {"message": "Server is running"}


@app.get("/health")
def health_check():
    """Liveness check; also reports whether MongoDB answers."""
    database_ok = ping_database()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unreachable",
    }


@app.head("/healthz")
def healthz_head():
    return Response(status_code=200)
