from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime


class GroupCreate(BaseModel):
    name: str


class GroupResponse(BaseModel):
    id: str
    name: str
    members: List[str] = []
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class GroupEnvelope(BaseModel):
    group: GroupResponse


class GroupListEnvelope(BaseModel):
    groups: List[GroupResponse]


class GroupMemberAddByEmail(BaseModel):
    email: EmailStr


class GroupMemberRemove(BaseModel):
    user_id: str = Field(alias="userId")

    class Config:
        populate_by_name = True
