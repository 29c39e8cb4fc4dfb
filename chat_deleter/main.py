#!/usr/bin/env python3
"""
Chat Deleter Web Application
FastAPI server with WebSocket support for real-time updates
"""

import asyncio
import json
import logging
from typing import Dict, Optional, Set, Union

from fastapi import BackgroundTasks, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from chat_deleter.config import configure_logging, interval_warnings, load_settings
from chat_deleter.discord_service import DeleterService
from chat_deleter.models import ChannelMap
from chat_deleter.reporting import BroadcastStatusReporter, CompositeStatusReporter, LoggingStatusReporter
from chat_deleter.settings_store import AppSettingsStore, ShelveStore


settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

logger.info(f"Starting Chat Deleter with log level: {settings.log_level}")

app = FastAPI(title="Chat Deleter", description="Bulk delete exported chat messages, safely resumable")


class ConnectionManager:
    """Manage WebSocket connections"""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.add(websocket)

    def disconnect(self, websocket: WebSocket):
        self.active_connections.discard(websocket)

    async def broadcast(self, message_type: str, data: Dict):
        """Broadcast message to all connected clients"""
        message = {"type": message_type, "data": data}
        disconnected = set()

        for connection in self.active_connections:
            try:
                await connection.send_text(json.dumps(message, default=str))
                # Force immediate send without buffering
                await asyncio.sleep(0)
            except (WebSocketDisconnect, RuntimeError):
                disconnected.add(connection)

        # Remove disconnected clients
        for conn in disconnected:
            self.active_connections.discard(conn)


# WebSocket connection manager
manager = ConnectionManager()

# Global state
service = DeleterService.from_settings(
    settings,
    AppSettingsStore(ShelveStore(settings.store_path)),
    CompositeStatusReporter(LoggingStatusReporter(), BroadcastStatusReporter(manager.broadcast))
)


# Request/Response models
class ImportRequest(BaseModel):
    content: str


class StartRequest(BaseModel):
    content: Optional[str] = None


class IntervalRequest(BaseModel):
    interval: Union[int, float, str, None] = None


def _summary_response(channels: ChannelMap) -> Dict:
    summary = service.summarize(channels)
    return {
        "channels": len(channels),
        "summary": summary,
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


@app.get("/status")
def get_status():
    """Whether a deletion run is in progress"""
    return {"running": service.is_running()}


@app.post("/import")
def import_payload(request: ImportRequest):
    """Validate and store an exported channel map"""
    if service.is_active():
        raise HTTPException(status_code=409, detail="Cannot import while deletion is in progress.")

    result = service.import_payload(request.content)
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.error)

    response = _summary_response(result.channels)
    if result.is_empty:
        response["warning"] = "JSON data is empty. Nothing to do."
    return response


@app.get("/import")
def get_imported_payload():
    """Summary of the stored payload, as left by the last completed run"""
    result = service.load_stored_payload()
    if not result.ok:
        return {"channels": 0, "summary": None}
    return _summary_response(result.channels)


@app.get("/stats")
def get_stats():
    """Cumulative deletion statistics"""
    return service.get_stats().to_dict()


@app.get("/settings/interval")
def get_interval():
    interval = service.get_interval()
    return {"interval": interval, "warnings": interval_warnings(interval)}


@app.put("/settings/interval")
def set_interval(request: IntervalRequest):
    """Store the delay between deletions, clamped to the allowed range"""
    if service.is_active():
        raise HTTPException(status_code=409, detail="Cannot change the interval while deletion is in progress.")

    interval = service.set_interval(request.interval)
    return {"interval": interval, "warnings": interval_warnings(request.interval)}


@app.post("/start")
async def start_deletion(request: StartRequest, background_tasks: BackgroundTasks):
    """Start the deletion process in the background"""
    if service.is_active():
        raise HTTPException(status_code=409, detail="Deletion is already in progress")

    if request.content and request.content.strip():
        result = service.import_payload(request.content)
    else:
        result = service.load_stored_payload()

    if not result.ok:
        logger.error(f"Refusing to start: {result.error}")
        raise HTTPException(status_code=400, detail=result.error)

    if result.is_empty:
        raise HTTPException(status_code=400, detail="JSON data is empty. Nothing to do.")

    async def run_deletion():
        try:
            outcome = await service.start_deletion(result.channels)
            await manager.broadcast("deletion_finished", outcome.to_dict())
        except Exception as e:
            logger.error(f"Deletion run crashed: {e}", exc_info=True)
            await manager.broadcast("error", {"message": f"Deletion failed: {str(e)}"})

    background_tasks.add_task(run_deletion)

    return {
        "status": "started",
        "interval": service.get_interval(),
        "channels": len(result.channels)
    }


@app.post("/stop")
def stop_deletion():
    """Stop the running deletion at the next message boundary"""
    if not service.stop_deletion():
        raise HTTPException(status_code=409, detail="No deletion process is running.")
    return {"status": "stopping"}


@app.post("/clear")
def clear_data():
    """Clear all message data and statistics"""
    if not service.clear_all_data():
        raise HTTPException(status_code=409, detail="Cannot clear data while deletion is in progress.")
    return {"status": "cleared"}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for real-time updates"""
    await manager.connect(websocket)

    try:
        while True:
            # Keep connection alive, clients only listen
            await websocket.receive_text()

    except WebSocketDisconnect:
        manager.disconnect(websocket)

# To run this application, use:
# uvicorn chat_deleter.main:app --reload
