"""FastAPI entrypoint."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .commands import CommandQueue
from .config import settings
from .hub import BroadcastHub
from .models import TelemetryUpdate
from .state import StateStore
from .ws import viewer_stream

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="field-relay", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)


def _decode_body(body: bytes, content_type: str) -> dict[str, Any]:
    if not body:
        return {}
    if content_type.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True))
    try:
        payload = json.loads(body)
    except ValueError:
        LOGGER.warning("Ignoring undecodable sensor payload (%d bytes)", len(body))
        return {}
    if not isinstance(payload, dict):
        LOGGER.warning("Ignoring sensor payload that is not an object: %r", payload)
        return {}
    return payload


def ingest_sensor_data(payload: dict[str, Any], store: StateStore, hub: BroadcastHub) -> dict[str, Any]:
    LOGGER.info("Received data from field device: %s", payload)
    snapshot = store.apply(TelemetryUpdate.from_payload(payload))
    delivered = hub.publish(snapshot)
    data = snapshot.model_dump()
    LOGGER.info("Broadcasted data to %d viewer(s): %s", delivered, data)
    return {"message": "Data received and broadcasted", "data": data}


def poll_command(commands: CommandQueue) -> dict[str, Any]:
    return commands.dequeue()


@app.on_event("startup")
def startup() -> None:
    app.state.store = StateStore()
    app.state.commands = CommandQueue()
    app.state.hub = BroadcastHub(
        app.state.store,
        app.state.commands,
        queue_size=settings.viewer_queue_size,
    )
    LOGGER.info("%s listening on port %d", settings.service_name, settings.port)
    LOGGER.info("Field device posts data to /api/sensor-data and polls /api/commands")
    LOGGER.info("Viewers connect to ws://<host>:%d/ws", settings.port)


@app.get("/health")
def health() -> dict:
    return {
        "status": "ok",
        "service": settings.service_name,
        "viewers": app.state.hub.viewer_count,
        "pending_commands": len(app.state.commands),
    }


@app.post("/api/sensor-data")
async def post_sensor_data(request: Request) -> dict:
    body = await request.body()
    payload = _decode_body(body, request.headers.get("content-type", ""))
    return ingest_sensor_data(payload, app.state.store, app.state.hub)


@app.get("/api/sensor-data")
def get_sensor_data() -> dict:
    return app.state.store.current().model_dump()


@app.get("/api/commands")
def get_command() -> dict:
    return poll_command(app.state.commands)


@app.websocket("/ws")
async def viewer_ws(websocket: WebSocket) -> None:
    await viewer_stream(websocket, app.state.hub)
