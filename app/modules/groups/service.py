from supabase import Client
from app.core.exceptions import NotFoundError, ValidationError
from app.database.supabase_client import invalid_id_as_not_found
from app.modules.groups.schemas import GroupResponse
from app.modules.group_messages.service import GroupMessageService
from app.modules.users.service import UserService
from typing import Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_group(self, name: str, created_by: str) -> GroupResponse:
        """Create a new group with no members"""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Group name is required")

        result = self.supabase.table("groups").insert({
            "name": name,
            "created_by": created_by
        }).execute()

        group = GroupResponse(**result.data[0])
        logger.info(f"Group {group.id} ({group.name!r}) created by {created_by}")
        return group

    def get_group(self, group_id: str) -> GroupResponse:
        """Get group by ID, with its member ids"""
        with invalid_id_as_not_found("Group not found"):
            result = self.supabase.table("groups")\
                .select("*")\
                .eq("id", group_id)\
                .limit(1)\
                .execute()

        if not result.data:
            raise NotFoundError("Group not found")

        row = result.data[0]
        return GroupResponse(**row, members=self._members_by_group([row["id"]]).get(row["id"], []))

    def list_groups(
        self,
        member_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[GroupResponse]:
        """List groups newest first. With member_id only the groups that user belongs to."""
        query = self.supabase.table("groups").select("*")
        if member_id is not None:
            group_ids = self._group_ids_for_user(member_id)
            if not group_ids:
                return []
            query = query.in_("id", group_ids)

        result = query.order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()

        rows = result.data or []
        members = self._members_by_group([row["id"] for row in rows])
        return [GroupResponse(**row, members=members.get(row["id"], [])) for row in rows]

    def is_member(self, group_id: str, user_id: str) -> bool:
        try:
            with invalid_id_as_not_found("Group not found"):
                result = self.supabase.table("group_members")\
                    .select("id")\
                    .eq("group_id", group_id)\
                    .eq("user_id", user_id)\
                    .limit(1)\
                    .execute()
        except NotFoundError:
            return False
        return bool(result.data)

    def add_member_by_email(self, group_id: str, email: str) -> GroupResponse:
        """Resolve email to a user and add them; adding an existing member is a no-op"""
        self.get_group(group_id)

        user = UserService(self.supabase).get_user_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_premium:
            raise ValidationError("Only premium users can be added")

        # single-row insert; the unique (group_id, user_id) constraint makes a repeat a no-op
        self.supabase.table("group_members").upsert(
            {"group_id": group_id, "user_id": user.id},
            on_conflict="group_id,user_id",
            ignore_duplicates=True
        ).execute()

        logger.info(f"Group {group_id} membership changed: added {user.id}")
        return self.get_group(group_id)

    def remove_member(self, group_id: str, user_id: str) -> GroupResponse:
        """Remove a member; removing a non-member is a no-op"""
        self.get_group(group_id)

        if self.is_member(group_id, user_id):
            self.supabase.table("group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()
            logger.info(f"Group {group_id} membership changed: removed {user_id}")

        return self.get_group(group_id)

    def delete_group(self, group_id: str) -> None:
        """Delete the group, its memberships and every message that belongs to it"""
        self.get_group(group_id)

        deleted = GroupMessageService(self.supabase).delete_messages_for_group(group_id)

        self.supabase.table("group_members")\
            .delete()\
            .eq("group_id", group_id)\
            .execute()

        self.supabase.table("groups")\
            .delete()\
            .eq("id", group_id)\
            .execute()

        logger.info(f"Group {group_id} deleted along with {deleted} message(s)")

    def _group_ids_for_user(self, user_id: str) -> List[str]:
        result = self.supabase.table("group_members")\
            .select("group_id")\
            .eq("user_id", user_id)\
            .execute()
        return [row["group_id"] for row in (result.data or [])]

    def _members_by_group(self, group_ids: Iterable[str]) -> Dict[str, List[str]]:
        """group_id -> member user ids in the order they joined"""
        group_ids = list(group_ids)
        if not group_ids:
            return {}
        result = self.supabase.table("group_members")\
            .select("group_id, user_id")\
            .in_("group_id", group_ids)\
            .order("created_at")\
            .execute()

        members: Dict[str, List[str]] = {}
        for row in result.data or []:
            members.setdefault(row["group_id"], []).append(row["user_id"])
        return members
