#!/usr/bin/env python3
"""
device-info - FastAPI + WebSocket bridge serving telemetry documents
"""

import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from battery_monitor import MonitorHandle, start_monitoring, stop_monitoring
from device_info import (
    READERS,
    get_battery_info,
    get_device_info,
    get_document_info,
    get_merged_device_info,
)
from linux_services import LinuxPlatformServices
from platform_services import PlatformServices

logger = logging.getLogger(__name__)

HOST = os.environ.get("DEVICE_INFO_HOST", "127.0.0.1")
PORT = int(os.environ.get("DEVICE_INFO_PORT", "8766"))

# Module-level state; services may be injected before startup
services: PlatformServices = None
_monitor: MonitorHandle = None
_ws_clients: set = set()         # connected WebSocket instances


async def _broadcast_battery(action: str, battery_info: str):
    """Send one battery event to all connected WebSocket clients."""
    msg = {
        "type": "battery",
        "action": action,
        "info": json.loads(battery_info),
    }
    for client in list(_ws_clients):
        try:
            await client.send_json(msg)
        except Exception as e:
            logger.debug(f"Dropping WebSocket client: {e}")
            _ws_clients.discard(client)


def _make_battery_sink(loop: asyncio.AbstractEventLoop):
    """Return a sync sink that schedules WS broadcasts from the watcher thread."""
    def _on_battery(action: str, battery_info: str):
        asyncio.run_coroutine_threadsafe(_broadcast_battery(action, battery_info), loop)
    return _on_battery


@asynccontextmanager
async def lifespan(app: FastAPI):
    global services, _monitor
    if services is None:
        services = LinuxPlatformServices()

    _monitor = MonitorHandle(sink=_make_battery_sink(asyncio.get_running_loop()))
    if await asyncio.to_thread(start_monitoring, services, _monitor):
        logger.info("Battery events will be pushed on /ws/battery")
    else:
        logger.error("Battery monitoring unavailable; /ws/battery will stay silent")
    try:
        yield
    finally:
        await asyncio.to_thread(stop_monitoring, services, _monitor)


app = FastAPI(title="Device Info Server", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json_response(body: str) -> Response:
    return Response(content=body, media_type="application/json")


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "monitoring": bool(_monitor and _monitor.active),
        "clients": len(_ws_clients),
    }


@app.get("/device-info")
async def device_info(flat: bool = False):
    # flat=true merges every document into one level, later kinds winning
    build = get_merged_device_info if flat else get_device_info
    return _json_response(await asyncio.to_thread(build, services))


@app.get("/{kind}")
async def document(kind: str):
    if kind not in READERS:
        raise HTTPException(status_code=404, detail=f"Unknown document kind: {kind}")
    return _json_response(await asyncio.to_thread(get_document_info, services, kind))


@app.websocket("/ws/battery")
async def battery_socket(ws: WebSocket):
    await ws.accept()
    # Broadcasts only reach accepted sockets
    _ws_clients.add(ws)
    client = ws.client
    logger.info(f"WebSocket connected: {client}")
    try:
        while True:
            raw = await ws.receive_text()

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await ws.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            msg_type = data.get("type") if isinstance(data, dict) else None
            if msg_type == "battery":
                info = await asyncio.to_thread(get_battery_info, services)
                await ws.send_json({"type": "battery", "action": "snapshot", "info": json.loads(info)})
            else:
                await ws.send_json({
                    "type": "error",
                    "message": f"Unknown message type: {msg_type}",
                })

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {client}")
    except Exception as e:
        logger.error(f"WebSocket connection error: {e}", exc_info=True)
    finally:
        _ws_clients.discard(ws)


def main():
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
