import os
import time
from fastapi import UploadFile
from supabase import Client
from app.config import settings
from app.core.access import can_access_group
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.database.supabase_client import invalid_id_as_not_found
from app.modules.group_messages.media_storage import ALLOWED_MEDIA_TYPES
from app.modules.group_messages.schemas import GroupMessageResponse, MessageMedia
from app.modules.groups.schemas import GroupResponse
from app.modules.users.schemas import UserResponse
from app.modules.users.service import UserService
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class GroupMessageService:
    def __init__(self, supabase: Client, storage=None):
        self.supabase = supabase
        self.storage = storage

    def create_message(
        self,
        group: GroupResponse,
        sender: UserResponse,
        text: Optional[str] = None,
        media: Optional[MessageMedia] = None
    ) -> GroupMessageResponse:
        """Persist a message. Publishing it is the caller's job and must happen after this returns."""
        if not can_access_group(sender, group).write:
            raise AuthorizationError("Not a member of this group")

        text = text.strip() if text else None
        if not text and media is None:
            raise ValidationError("Message must have text or media")

        result = self.supabase.table("group_messages").insert({
            "group_id": group.id,
            "sender_id": sender.id,
            "text": text or None,
            "media": media.model_dump() if media else None,
        }).execute()

        message = GroupMessageResponse(**result.data[0])
        message.sender = UserService(self.supabase).get_summaries([sender.id]).get(sender.id)
        logger.info(f"Message {message.id} created in group {group.id} by {sender.id}")
        return message

    async def create_media_message(
        self,
        group: GroupResponse,
        sender: UserResponse,
        upload: UploadFile,
        text: Optional[str] = None
    ) -> GroupMessageResponse:
        """Store an uploaded attachment, then persist a message referencing it"""
        if not can_access_group(sender, group).write:
            raise AuthorizationError("Not a member of this group")
        if self.storage is None:
            raise RuntimeError("Media storage is not configured")

        content_type = upload.content_type or "application/octet-stream"
        if content_type not in ALLOWED_MEDIA_TYPES:
            raise ValidationError("Unsupported file type")

        content = await upload.read()
        if not content:
            raise ValidationError("Uploaded file is empty")
        if len(content) > settings.media_max_bytes:
            raise ValidationError(f"File too large (max {settings.media_max_bytes // (1024 * 1024)} MB)")

        key = self._media_key(group.id, upload.filename)
        url = self.storage.upload_file(content, key, content_type)
        media = MessageMedia(
            url=url,
            type="image" if content_type.startswith("image/") else "file",
            key=key,
            mimetype=content_type,
            size=len(content),
        )

        try:
            return self.create_message(group, sender, text=text, media=media)
        except Exception:
            # the message row never landed, so the object would be orphaned
            self.storage.delete_file(key)
            raise

    def get_message(self, message_id: str) -> GroupMessageResponse:
        with invalid_id_as_not_found("Message not found"):
            result = self.supabase.table("group_messages")\
                .select("*")\
                .eq("id", message_id)\
                .limit(1)\
                .execute()

        if not result.data:
            raise NotFoundError("Message not found")

        return GroupMessageResponse(**result.data[0])

    def list_messages(
        self,
        group: GroupResponse,
        requester: UserResponse,
        page: int = 1,
        limit: Optional[int] = None
    ) -> List[GroupMessageResponse]:
        """
        Return one page of a group's messages.

        Pages are cut newest first (page 1 holds the latest ``limit``
        messages) and each page is returned oldest to newest. A page past the
        end of the history is an empty list.
        """
        if not can_access_group(requester, group).read:
            raise AuthorizationError("Not a member of this group")

        page = max(1, page or 1)
        if not limit:
            limit = settings.messages_default_limit
        limit = min(settings.messages_max_limit, max(1, limit))
        offset = (page - 1) * limit

        result = self.supabase.table("group_messages")\
            .select("*")\
            .eq("group_id", group.id)\
            .order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()

        messages = [GroupMessageResponse(**row) for row in reversed(result.data or [])]
        senders = UserService(self.supabase).get_summaries(m.sender_id for m in messages)
        for message in messages:
            message.sender = senders.get(message.sender_id)
        return messages

    def delete_message(self, message_id: str, requester: UserResponse) -> GroupMessageResponse:
        """Delete a single message (admins only, whoever sent it)"""
        if not requester.is_admin:
            raise AuthorizationError("Only admins can delete messages")

        message = self.get_message(message_id)
        self.supabase.table("group_messages")\
            .delete()\
            .eq("id", message_id)\
            .execute()

        if message.media and message.media.key and self.storage is not None:
            self.storage.delete_file(message.media.key)

        logger.info(f"Message {message_id} deleted from group {message.group_id} by {requester.id}")
        return message

    def delete_messages_for_group(self, group_id: str) -> int:
        result = self.supabase.table("group_messages")\
            .delete()\
            .eq("group_id", group_id)\
            .execute()
        return len(result.data or [])

    @staticmethod
    def _media_key(group_id: str, filename: Optional[str]) -> str:
        ext = os.path.splitext(filename or "")[1].lower()
        return f"{settings.media_folder}/group-{group_id}-{int(time.time() * 1000)}{ext}"
