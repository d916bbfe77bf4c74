"""
Core dependencies for route protection and group access checks
"""

from dataclasses import dataclass
from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from starlette.requests import HTTPConnection
from app.core.access import GroupAccess, can_access_group
from app.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from app.database.supabase_client import get_supabase, get_auth_client
from app.modules.auth.service import AuthService
from app.modules.groups.schemas import GroupResponse
from app.modules.groups.service import GroupService
from app.modules.realtime.broadcaster import GroupBroadcaster
from app.modules.realtime.service import SubscriptionService
from app.modules.users.schemas import UserResponse
from app.modules.users.service import UserService
from supabase import Client
from typing import Dict
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


@dataclass
class GroupContext:
    """What a group-scoped endpoint needs: who is calling, the group, and what they may do with it."""
    user: UserResponse
    group: GroupResponse
    access: GroupAccess


def get_auth_service(
    auth_client: Client = Depends(get_auth_client),
    supabase: Client = Depends(get_supabase)
) -> AuthService:
    return AuthService(auth_client, supabase)


def get_broadcaster(connection: HTTPConnection) -> GroupBroadcaster:
    """The per-process broadcaster created in app.main; works for HTTP and websocket routes."""
    return connection.app.state.broadcaster


def get_subscription_service(
    supabase: Client = Depends(get_supabase),
    broadcaster: GroupBroadcaster = Depends(get_broadcaster)
) -> SubscriptionService:
    return SubscriptionService(supabase, broadcaster)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict:
    """Extract current auth user info from the bearer token"""
    return auth_service.get_current_user(credentials.credentials)


def authenticate_token(token: str, auth_service: AuthService, supabase: Client) -> UserResponse:
    """Resolve an access token to the caller's profile (role, premium flag)"""
    if not token:
        raise AuthenticationError("You are not logged in")
    user_data = auth_service.get_current_user(token)
    return load_profile(user_data, supabase)


def load_profile(user_data: Dict, supabase: Client) -> UserResponse:
    try:
        return UserService(supabase).get_user_by_id(user_data["id"])
    except NotFoundError:
        raise AuthenticationError("The user belonging to this token no longer exists")


def get_current_user(
    user_data: Dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> UserResponse:
    """Current caller's profile"""
    return load_profile(user_data, supabase)


def require_admin(user: UserResponse = Depends(get_current_user)) -> UserResponse:
    if not user.is_admin:
        raise AuthorizationError("You do not have permission to perform this action")
    return user


def require_premium(user: UserResponse = Depends(get_current_user)) -> UserResponse:
    """Admins always pass; everyone else needs premium"""
    if user.is_admin or user.is_premium:
        return user
    raise AuthorizationError("Premium access required")


def require_group_access(capability: str):
    """Factory for a dependency that loads {group_id} and checks one capability (read, write or moderate)"""
    def check_group_access(
        group_id: str,
        user: UserResponse = Depends(get_current_user),
        supabase: Client = Depends(get_supabase)
    ) -> GroupContext:
        group = GroupService(supabase).get_group(group_id)
        access = can_access_group(user, group)
        if not access.allows(capability):
            logger.info(f"User {user.id} denied {capability} on group {group_id}")
            raise AuthorizationError("Not a member of this group")
        return GroupContext(user=user, group=group, access=access)
    return check_group_access
