"""WebSocket frame envelopes for the group chat channel."""
from pydantic import BaseModel, Field
from typing import Any, Dict


# Client -> Server
JOIN_EVENT = "group:join"
LEAVE_EVENT = "group:leave"
PING_EVENT = "ping"

# Server -> Client
JOINED_EVENT = "group:joined"
LEFT_EVENT = "group:left"
PONG_EVENT = "pong"
ERROR_EVENT = "error"


class WsInbound(BaseModel):
    """Client -> Server."""

    event: str  # group:join | group:leave | ping
    data: Dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server -> Client."""

    event: str  # group:message | group:joined | group:left | pong | error
    data: Dict[str, Any] = {}


class GroupTopicRequest(BaseModel):
    group_id: str = Field(min_length=1, alias="groupId")

    class Config:
        populate_by_name = True
