"""WebSocket handlers."""

import asyncio
import json
import logging

from fastapi import WebSocket, WebSocketDisconnect

from .hub import COMMAND_STATUS_EVENT, ERROR_EVENT, SEND_COMMAND_EVENT, BroadcastHub, ViewerChannel, make_event

LOGGER = logging.getLogger(__name__)


def handle_viewer_message(message: dict, hub: BroadcastHub, channel: ViewerChannel) -> dict:
    if not isinstance(message, dict):
        raise ValueError("Viewer messages must be JSON objects.")
    event = str(message.get("event", ""))
    if not event:
        raise ValueError("Missing `event` in message.")

    if event == SEND_COMMAND_EVENT:
        status = hub.submit_command(channel, message.get("data"))
        return make_event(COMMAND_STATUS_EVENT, status)

    raise ValueError(f"Unsupported event: {event}")


def _decode_frame(frame: dict) -> dict:
    text = frame.get("text")
    if text is None:
        # Binary frames carry UTF-8 JSON too; UnicodeDecodeError is a ValueError.
        text = (frame.get("bytes") or b"").decode("utf-8")
    return json.loads(text)


async def _pump_events(websocket: WebSocket, channel: ViewerChannel) -> None:
    try:
        while True:
            event = await channel.next_event()
            await websocket.send_json(event)
    except (WebSocketDisconnect, RuntimeError) as exc:
        # Send on a closed socket; the receive loop notices the disconnect.
        LOGGER.debug("Stopped sending to viewer %s: %s", channel.viewer_id, exc)


async def viewer_stream(websocket: WebSocket, hub: BroadcastHub) -> None:
    await websocket.accept()
    channel = hub.open_channel()
    sender = asyncio.create_task(_pump_events(websocket, channel))
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            try:
                response = handle_viewer_message(_decode_frame(frame), hub, channel)
            except ValueError as exc:
                response = make_event(ERROR_EVENT, {"ok": False, "error": str(exc)})
            channel.offer(response)
    except WebSocketDisconnect:
        return
    finally:
        # Unregister before any await.
        hub.disconnect(channel)
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
