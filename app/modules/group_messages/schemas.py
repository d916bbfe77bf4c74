from pydantic import BaseModel
from typing import Optional, List, Literal
from datetime import datetime

from app.modules.users.schemas import UserSummary


MediaType = Literal["image", "file"]


class MessageMedia(BaseModel):
    url: str
    type: MediaType = "file"
    key: Optional[str] = None
    mimetype: Optional[str] = None
    size: Optional[int] = None


class GroupMessageCreate(BaseModel):
    text: Optional[str] = None


class GroupMessageResponse(BaseModel):
    id: str
    group_id: str
    sender_id: str
    text: Optional[str] = None
    media: Optional[MessageMedia] = None
    sender: Optional[UserSummary] = None
    created_at: datetime

    class Config:
        from_attributes = True


class GroupMessageEnvelope(BaseModel):
    message: GroupMessageResponse


class GroupMessageListEnvelope(BaseModel):
    messages: List[GroupMessageResponse]
