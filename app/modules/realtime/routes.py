from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from app.modules.groups.service import GroupService
from app.modules.realtime.broadcaster import GroupBroadcaster, WebSocketConnection
from app.modules.realtime.schemas import (
    WsInbound, WsOutbound, GroupTopicRequest,
    JOIN_EVENT, LEAVE_EVENT, PING_EVENT,
    JOINED_EVENT, LEFT_EVENT, PONG_EVENT, ERROR_EVENT
)
from app.modules.users.schemas import UserResponse
from app.core.access import can_access_group
from app.core.dependencies import authenticate_token, get_auth_service, get_broadcaster
from app.core.exceptions import AppError, AuthorizationError, ValidationError
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def group_socket(
    websocket: WebSocket,
    token: Optional[str] = None,
    auth_service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_supabase),
    broadcaster: GroupBroadcaster = Depends(get_broadcaster)
):
    """
    Realtime group chat channel.

    Connect with ``?token=<access token>``, then send
    ``{"event": "group:join", "data": {"groupId": "..."}}`` to start
    receiving ``group:message`` events for that group.
    """
    try:
        user = authenticate_token(token, auth_service, supabase)
    except AppError as e:
        logger.info(f"Rejected websocket connection: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection = WebSocketConnection(websocket, user.id)
    logger.info(f"Websocket {connection.id} connected for user {user.id}")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
            try:
                if message.get("text") is None:
                    raise ValidationError("Only text frames are supported")
                reply = _handle_frame(message["text"], user, connection, supabase, broadcaster)
            except AppError as e:
                reply = WsOutbound(event=ERROR_EVENT, data={"kind": e.kind, "message": e.detail})
            await connection.send_json(reply.model_dump())
    except WebSocketDisconnect:
        pass
    finally:
        topics = broadcaster.disconnect(connection)
        logger.info(f"Websocket {connection.id} disconnected (was in {len(topics)} topic(s))")


def _handle_frame(
    raw: str,
    user: UserResponse,
    connection: WebSocketConnection,
    supabase: Client,
    broadcaster: GroupBroadcaster
) -> WsOutbound:
    try:
        frame = WsInbound.model_validate_json(raw)
    except PydanticValidationError:
        raise ValidationError('Frames must be JSON like {"event": "...", "data": {...}}')

    if frame.event == PING_EVENT:
        return WsOutbound(event=PONG_EVENT)

    if frame.event in (JOIN_EVENT, LEAVE_EVENT):
        try:
            group_id = GroupTopicRequest.model_validate(frame.data).group_id
        except PydanticValidationError:
            raise ValidationError("groupId is required")

        if frame.event == LEAVE_EVENT:
            broadcaster.leave(group_id, connection)
            return WsOutbound(event=LEFT_EVENT, data={"groupId": group_id})

        group = GroupService(supabase).get_group(group_id)
        if not can_access_group(user, group).read:
            raise AuthorizationError("Not a member of this group")
        broadcaster.join(group_id, connection)
        logger.info(f"Websocket {connection.id} joined group {group_id}")
        return WsOutbound(event=JOINED_EVENT, data={"groupId": group_id})

    raise ValidationError(f"Unknown event: {frame.event}")
