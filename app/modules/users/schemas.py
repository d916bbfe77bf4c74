from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


UserRole = Literal["user", "admin"]


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    role: str = "user"
    is_premium: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class UserSummary(BaseModel):
    """Sender details embedded in group messages."""
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None


class UserAccessUpdate(BaseModel):
    role: Optional[UserRole] = None
    is_premium: Optional[bool] = Field(default=None, alias="isPremium")

    class Config:
        populate_by_name = True
