"""
WebSocket Routes

Command socket endpoint plus connection management endpoints.
"""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from eventhub.router import CommandRouter
from eventhub.schemas.command import CommandResult
from eventhub.services.websocket_manager import WebSocketManager, get_websocket_manager, result_message

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("")
async def command_socket(websocket: WebSocket):
    """
    Command socket.

    Each text or binary frame carries one command ``[<reserved>, <reserved>,
    {ops, code, user, sig, created_at?, data?, tags?}]``. Every command gets exactly one
    ``result`` frame back, including malformed ones; the connection stays
    open until the client closes it.
    """
    manager = get_websocket_manager()
    command_router: CommandRouter = websocket.app.state.command_router

    connection_id = await manager.connect(websocket)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

            data = message.get("text")
            if data is None:
                data = message.get("bytes") or b""
            await manager.mark_activity(connection_id)

            try:
                command, result = await command_router.handle_frame(data)
            except Exception:
                logger.exception(f"Unhandled error on connection {connection_id}")
                command, result = None, CommandResult(code=500, message="Internal server error")

            await manager.send(connection_id, result_message(command, result))

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {connection_id}")
    finally:
        await manager.disconnect(connection_id)


@router.get("/stats")
async def get_websocket_stats(
    manager: WebSocketManager = Depends(get_websocket_manager),
) -> dict:
    """Current connection count and commands handled by open connections."""
    return manager.get_stats()


@router.post("/cleanup")
async def cleanup_connections(
    timeout_seconds: int = 300,
    manager: WebSocketManager = Depends(get_websocket_manager),
) -> dict:
    """Close connections that have been idle for longer than ``timeout_seconds``."""
    cleaned = await manager.cleanup_stale_connections(timeout_seconds)

    return {
        "cleaned": cleaned,
        "message": f"Removed {cleaned} stale connections",
    }
