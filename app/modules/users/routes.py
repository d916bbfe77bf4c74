from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.users.schemas import UserResponse, UserAccessUpdate
from app.modules.users.service import UserService
from app.modules.realtime.service import SubscriptionService
from app.core.dependencies import get_subscription_service, require_admin
from supabase import Client
from typing import List

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_supabase)) -> UserService:
    return UserService(supabase)


@router.get("", response_model=List[UserResponse])
async def list_users(
    limit: int = 10,
    offset: int = 0,
    premium_only: bool = False,
    admin: UserResponse = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """List user profiles (admin only). premium_only=true lists premium users."""
    return service.list_users(limit=limit, offset=offset, premium_only=premium_only)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    admin: UserResponse = Depends(require_admin),
    service: UserService = Depends(get_user_service)
):
    """Get user by ID (admin only)"""
    return service.get_user_by_id(user_id)


@router.patch("/{user_id}/access", response_model=UserResponse)
async def update_user_access(
    user_id: str,
    access: UserAccessUpdate,
    admin: UserResponse = Depends(require_admin),
    service: UserService = Depends(get_user_service),
    subscriptions: SubscriptionService = Depends(get_subscription_service)
):
    """Grant or revoke admin role / premium status (admin only)"""
    user = service.update_access(user_id, access)
    subscriptions.resync_user(user_id)
    return user
