"""
Group access capability.

Every group-scoped REST endpoint and every websocket join asks the same
question through ``can_access_group``:

- admins can read, write and moderate any group;
- premium members can read and write their own groups;
- everyone else gets nothing.

Losing premium status revokes chat access without touching membership.
"""

from dataclasses import dataclass

from app.modules.groups.schemas import GroupResponse
from app.modules.users.schemas import UserResponse


@dataclass(frozen=True)
class GroupAccess:
    read: bool = False
    write: bool = False
    moderate: bool = False

    def allows(self, capability: str) -> bool:
        return bool(getattr(self, capability))


NO_ACCESS = GroupAccess()
MEMBER_ACCESS = GroupAccess(read=True, write=True)
ADMIN_ACCESS = GroupAccess(read=True, write=True, moderate=True)

CAPABILITIES = ("read", "write", "moderate")


def can_access_group(user: UserResponse, group: GroupResponse) -> GroupAccess:
    if user.is_admin:
        return ADMIN_ACCESS
    if user.is_premium and user.id in group.members:
        return MEMBER_ACCESS
    return NO_ACCESS
