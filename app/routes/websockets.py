from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from pymongo.database import Database
from typing import Optional
from app.database import get_db
from app.services.location_reporter import fleet_snapshot
from app.utils.auth_token import verify_access_token
from app.utils.ws_manager import fleet_manager
import logging

logger = logging.getLogger(__name__)

ws_router = APIRouter(tags=["WebSocket"])

ALLOWED_ROLES = ("ADMIN", "DRIVER", "STUDENT")


@ws_router.websocket("/ws/fleet")
async def fleet_updates(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    db: Database = Depends(get_db),
):
    """Live map feed.

    Browsers cannot set headers on a websocket, so the access token comes in
    the ``token`` query parameter. Sends the current snapshot on connect;
    afterwards every trip start, end, cancel and location report pushes a
    fresh one. Incoming text is only read to notice disconnects.
    """
    payload = verify_access_token(token) if token else None
    if not payload or payload.get("role") not in ALLOWED_ROLES:
        logger.warning("Rejected /ws/fleet connection without a valid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await fleet_manager.connect(websocket)
    logger.info(f"🛰️ Fleet subscriber {payload.get('email')} connected ({len(fleet_manager.active_connections)} total)")
    try:
        vehicles = await run_in_threadpool(fleet_snapshot, db)
        await websocket.send_json({"type": "fleet_snapshot", "vehicles": vehicles})
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Fleet subscriber disconnected")
    finally:
        fleet_manager.disconnect(websocket)
