from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.groups.schemas import (
    GroupCreate, GroupEnvelope, GroupListEnvelope,
    GroupMemberAddByEmail, GroupMemberRemove
)
from app.modules.groups.service import GroupService
from app.modules.realtime.broadcaster import GroupBroadcaster
from app.modules.realtime.service import SubscriptionService
from app.modules.users.schemas import UserResponse
from app.core.dependencies import (
    GroupContext, get_broadcaster, get_subscription_service,
    require_admin, require_premium, require_group_access
)
from supabase import Client

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


@router.post("", response_model=GroupEnvelope, status_code=201)
async def create_group(
    group_data: GroupCreate,
    admin: UserResponse = Depends(require_admin),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group (admin only)"""
    return {"group": service.create_group(group_data.name, admin.id)}


@router.get("", response_model=GroupListEnvelope)
async def list_groups(
    limit: int = 50,
    offset: int = 0,
    user: UserResponse = Depends(require_premium),
    service: GroupService = Depends(get_group_service)
):
    """List groups: admins see all of them, premium users the ones they belong to"""
    member_id = None if user.is_admin else user.id
    return {"groups": service.list_groups(member_id=member_id, limit=limit, offset=offset)}


@router.get("/{group_id}", response_model=GroupEnvelope)
async def get_group(ctx: GroupContext = Depends(require_group_access("read"))):
    """Get group by ID (members and admins)"""
    return {"group": ctx.group}


@router.patch("/{group_id}/add-member", response_model=GroupEnvelope)
async def add_member(
    group_id: str,
    member_data: GroupMemberAddByEmail,
    ctx: GroupContext = Depends(require_group_access("moderate")),
    service: GroupService = Depends(get_group_service)
):
    """Add a premium user to the group by email (admin only)"""
    return {"group": service.add_member_by_email(group_id, member_data.email)}


@router.patch("/{group_id}/remove-member", response_model=GroupEnvelope)
async def remove_member(
    group_id: str,
    member_data: GroupMemberRemove,
    ctx: GroupContext = Depends(require_group_access("moderate")),
    service: GroupService = Depends(get_group_service),
    subscriptions: SubscriptionService = Depends(get_subscription_service)
):
    """Remove a member from the group (admin only); their live subscriptions end with their access"""
    group = service.remove_member(group_id, member_data.user_id)
    subscriptions.resync_user(member_data.user_id)
    return {"group": group}


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    ctx: GroupContext = Depends(require_group_access("moderate")),
    service: GroupService = Depends(get_group_service),
    broadcaster: GroupBroadcaster = Depends(get_broadcaster)
):
    """Delete group and all of its messages (admin only)"""
    service.delete_group(group_id)
    broadcaster.close_group(group_id)
    return None
