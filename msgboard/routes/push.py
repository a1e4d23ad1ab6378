# msgboard/routes/push.py
"""
Push delivery endpoints.

Endpoints:
    WS  /ws               - One JSON text frame per domain event (the message)
    GET /messages/stream  - The same events as Server-Sent Events

Each connection registers a push subscriber for its lifetime. Frames are
queued by the delivery coordinator and written to the socket here, so a slow
or dead connection never blocks delivery to other subscribers.
"""

import asyncio
from collections.abc import AsyncGenerator
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, WebSocket
from sse_starlette.sse import EventSourceResponse
from starlette.websockets import WebSocketDisconnect

from ..core.config import Settings
from ..core.constants import SSE_PATH, WEBSOCKET_PATH
from ..dependencies import client_handle, get_app_settings, get_message_service
from ..services.message_service import MessageService
from ..services.messaging.registry import PushSubscriber
from ..services.messaging.sse_stream import create_sse_stream

logger = logging.getLogger(__name__)

router = APIRouter(tags=["push"])


async def _pump_frames(websocket: WebSocket, subscriber: PushSubscriber) -> None:
    while True:
        frame = await subscriber.next_frame()
        if frame is None:
            # Closed server-side (shutdown or outbox overflow)
            try:
                await websocket.close(code=1001)
            except RuntimeError:
                pass
            return
        try:
            await websocket.send_text(frame.to_json())
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.warning(
                "[WS] Send failed, dropping connection",
                extra={"token": subscriber.token, "error": str(e)},
            )
            return


async def _drain_incoming(websocket: WebSocket) -> None:
    # Clients never send anything meaningful; read until they go away.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket(WEBSOCKET_PATH)
async def websocket_messages(
    websocket: WebSocket,
    service: MessageService = Depends(get_message_service),
) -> None:
    handle = client_handle(websocket)
    # Registered before accept so nothing published after the handshake is missed.
    subscriber = service.registry.register_push(handle)
    pump: Optional[asyncio.Task[None]] = None
    try:
        await websocket.accept()
        logger.info("[WS] Client connected", extra={"token": subscriber.token, "handle": handle})
        # Receiving stays on the handler task; only sending runs alongside it.
        pump = asyncio.create_task(_pump_frames(websocket, subscriber))
        await _drain_incoming(websocket)
    finally:
        service.registry.unregister(subscriber.token)
        logger.info("[WS] Client disconnected", extra={"token": subscriber.token, "handle": handle})
        if pump is not None:
            pump.cancel()
            await asyncio.gather(pump, return_exceptions=True)


@router.get(
    SSE_PATH,
    responses={200: {"description": "SSE stream of new_message and reaction_update events"}},
)
async def stream_messages(
    request: Request,
    service: MessageService = Depends(get_message_service),
    settings: Settings = Depends(get_app_settings),
) -> EventSourceResponse:
    """
    SSE endpoint for real-time message streaming.

    Emits a ``connected`` event, then ``new_message`` and ``reaction_update``
    events whose data is the JSON message, with heartbeats while idle.
    """
    handle = client_handle(request)

    # Registered when streaming starts, so an unstarted response holds no subscriber.
    async def event_generator() -> AsyncGenerator[dict[str, str], None]:
        subscriber = service.registry.register_push(handle)
        logger.info("[SSE] Connection established", extra={"token": subscriber.token})
        try:
            async for event in create_sse_stream(
                subscriber,
                heartbeat_interval=settings.sse_heartbeat_interval,
            ):
                yield event
        finally:
            service.registry.unregister(subscriber.token)
            logger.info("[SSE] Connection closed", extra={"token": subscriber.token})

    return EventSourceResponse(
        event_generator(),
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
        media_type="text/event-stream",
    )
