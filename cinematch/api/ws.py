"""
CineMatch WebSocket Gateway

One live connection per user. Clients authenticate with ``/ws?token=<jwt>``
and exchange JSON frames:

    {"type": "ping"}                                   -> {"type": "pong"}
    {"type": "join", "room_id": ...}                   -> {"type": "room.joined", ...}
    {"type": "leave", "room_id": ...}                  -> {"type": "room.left", ...}
    {"type": "send", "room_id": ..., "text": ...}      -> "message.received" to the room

Match notifications (``matchRequest``, ``mutualMatch``) are pushed on the
same connection by the notification dispatcher.
"""

import json
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

from cinematch.core.auth_utils import verify_token
from cinematch.core.errors import (
    CineMatchError,
    MembershipError,
    NotFoundError,
    StorageUnavailable,
    ValidationError,
)
from cinematch.core.logging import get_logger
from cinematch.dependencies import get_chat_service, get_registry
from cinematch.realtime import PresenceRegistry
from cinematch.services.chat_service import ChatService

logger = get_logger(__name__)

router = APIRouter()


def _error_frame(message: str, code: str = "bad_request") -> Dict[str, Any]:
    return {"type": "error", "code": code, "message": message}


def _error_code(error: CineMatchError) -> str:
    if isinstance(error, ValidationError):
        return "validation_error"
    if isinstance(error, MembershipError):
        return "forbidden"
    if isinstance(error, NotFoundError):
        return "not_found"
    if isinstance(error, StorageUnavailable):
        return "unavailable"
    return "error"


def _parse_room_id(data: Dict[str, Any]) -> UUID:
    raw = data.get("room_id")
    if not raw:
        raise ValidationError("Missing room_id")
    try:
        return UUID(str(raw))
    except ValueError as e:
        raise ValidationError(f"Invalid room_id: {raw}") from e


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    """Handle one live connection for its whole lifetime."""
    token_data = verify_token(token) if token else None
    if token_data is None:
        logger.info("Rejected WebSocket connection with missing or invalid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    user_id = token_data.user_id
    registry = get_registry(websocket)
    chat_service = get_chat_service(websocket)

    registry.on_connect(user_id, websocket)
    logger.info(f"New WebSocket connection for user {user_id}")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json(_error_frame("Invalid JSON format"))
                continue
            if not isinstance(data, dict):
                await websocket.send_json(_error_frame("Frame must be a JSON object"))
                continue

            try:
                await handle_frame(websocket, user_id, data, registry, chat_service)
            except CineMatchError as e:
                await websocket.send_json(_error_frame(str(e), _error_code(e)))
            except WebSocketDisconnect:
                raise
            except Exception as e:
                logger.error(f"Error handling frame from user {user_id}: {e}")
                await websocket.send_json(
                    _error_frame("Internal server error", "internal_error")
                )

    except WebSocketDisconnect:
        logger.info(f"WebSocket connection closed for user {user_id}")
    finally:
        # A newer connection for the same user keeps its entry
        registry.on_disconnect(user_id, websocket)


async def handle_frame(
    websocket: WebSocket,
    user_id: str,
    data: Dict[str, Any],
    registry: PresenceRegistry,
    chat_service: ChatService,
) -> None:
    """Handle one incoming frame."""
    frame_type = data.get("type")

    if frame_type == "ping":
        await websocket.send_json({"type": "pong"})

    elif frame_type == "join":
        room_id = _parse_room_id(data)
        await run_in_threadpool(chat_service.join, room_id, user_id)
        registry.join_group(room_id, user_id)
        await websocket.send_json({"type": "room.joined", "room_id": str(room_id)})

    elif frame_type == "leave":
        room_id = _parse_room_id(data)
        registry.leave_group(room_id, user_id)
        await websocket.send_json({"type": "room.left", "room_id": str(room_id)})

    elif frame_type == "send":
        room_id = _parse_room_id(data)
        text = data.get("text")
        if text is not None and not isinstance(text, str):
            raise ValidationError("Message text must be a string")
        # Joined subscribers, the sender included, get it through the room broadcast
        await run_in_threadpool(chat_service.append, room_id, user_id, text)

    else:
        await websocket.send_json(
            _error_frame(f"Unknown message type: {frame_type}", "unknown_type")
        )
