from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile as StarletteUploadFile
from app.database.supabase_client import get_supabase
from app.modules.group_messages.media_storage import get_media_storage
from app.modules.group_messages.schemas import (
    GroupMessageCreate, GroupMessageEnvelope, GroupMessageListEnvelope
)
from app.modules.group_messages.service import GroupMessageService
from app.modules.realtime.broadcaster import GroupBroadcaster
from app.modules.users.schemas import UserResponse
from app.core.dependencies import GroupContext, get_broadcaster, require_admin, require_group_access
from app.core.exceptions import ValidationError
from supabase import Client
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["group-messages"])


def get_group_message_service(
    supabase: Client = Depends(get_supabase),
    storage=Depends(get_media_storage)
) -> GroupMessageService:
    return GroupMessageService(supabase, storage)


@router.get("/groups/{group_id}/messages", response_model=GroupMessageListEnvelope)
async def list_messages(
    page: int = 1,
    limit: Optional[int] = None,
    ctx: GroupContext = Depends(require_group_access("read")),
    service: GroupMessageService = Depends(get_group_message_service)
):
    """One page of messages, oldest to newest within the page (page 1 = most recent)"""
    return {"messages": service.list_messages(ctx.group, ctx.user, page=page, limit=limit)}


@router.post("/groups/{group_id}/messages", response_model=GroupMessageEnvelope, status_code=201)
async def send_message(
    request: Request,
    ctx: GroupContext = Depends(require_group_access("write")),
    service: GroupMessageService = Depends(get_group_message_service),
    broadcaster: GroupBroadcaster = Depends(get_broadcaster)
):
    """
    Post a message to the group.

    Accepts either a JSON body ``{"text": "..."}`` or a multipart form with a
    single ``media`` file (and an optional ``text`` field). The message is
    persisted first and only then published to the group's realtime topic.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        text = form.get("text")
        text = text if isinstance(text, str) else None
        upload = form.get("media")
        if isinstance(upload, StarletteUploadFile):
            message = await service.create_media_message(ctx.group, ctx.user, upload, text=text)
        else:
            message = service.create_message(ctx.group, ctx.user, text=text)
    else:
        try:
            payload = GroupMessageCreate.model_validate(await request.json())
        except ValueError:
            raise ValidationError('Expected a JSON body like {"text": "..."} or a multipart "media" upload')
        message = service.create_message(ctx.group, ctx.user, text=payload.text)

    await broadcaster.publish_created(message)
    return {"message": message}


@router.delete("/group-messages/{message_id}", status_code=200)
async def delete_message(
    message_id: str,
    admin: UserResponse = Depends(require_admin),
    service: GroupMessageService = Depends(get_group_message_service),
    broadcaster: GroupBroadcaster = Depends(get_broadcaster)
):
    """Delete a message (admin only, regardless of sender)"""
    message = service.get_message(message_id)
    service.delete_message(message_id, admin)
    await broadcaster.publish_deleted(message.group_id, message_id)
    return {}
