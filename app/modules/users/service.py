from supabase import Client
from app.core.exceptions import NotFoundError, ValidationError
from app.database.supabase_client import invalid_id_as_not_found
from app.modules.users.schemas import UserResponse, UserAccessUpdate, UserSummary
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_user_by_id(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        with invalid_id_as_not_found("User not found"):
            result = self.supabase.table("user_profiles")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()

        if not result.data:
            raise NotFoundError("User not found")

        return UserResponse(**result.data[0])

    def get_user_by_email(self, email: str) -> Optional[UserResponse]:
        """Get user profile by email (case-insensitive, emails are stored lower-case)"""
        result = self.supabase.table("user_profiles")\
            .select("*")\
            .eq("email", email.strip().lower())\
            .limit(1)\
            .execute()

        if not result.data:
            return None

        return UserResponse(**result.data[0])

    def ensure_profile(self, user_id: str, email: str, full_name: Optional[str] = None) -> UserResponse:
        """Create the profile row for a freshly registered auth user if it is missing"""
        existing = self.supabase.table("user_profiles")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        if existing.data:
            return UserResponse(**existing.data[0])

        result = self.supabase.table("user_profiles").insert({
            "id": user_id,
            "email": email.strip().lower(),
            "full_name": full_name,
            "role": "user",
            "is_premium": False,
        }).execute()
        logger.info(f"Created profile for user {user_id}")
        return UserResponse(**result.data[0])

    def list_users(
        self,
        limit: int = 10,
        offset: int = 0,
        premium_only: bool = False
    ) -> List[UserResponse]:
        """List user profiles, newest first. premium_only restricts to premium users."""
        query = self.supabase.table("user_profiles").select("*")
        if premium_only:
            query = query.eq("is_premium", True)
        result = query.order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return [UserResponse(**user) for user in result.data]

    def update_access(self, user_id: str, access: UserAccessUpdate) -> UserResponse:
        """Change a user's role and/or premium flag"""
        update_data = {}
        if access.role is not None:
            update_data["role"] = access.role
        if access.is_premium is not None:
            update_data["is_premium"] = access.is_premium
        if not update_data:
            raise ValidationError("Nothing to update: provide role and/or isPremium")
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        with invalid_id_as_not_found("User not found"):
            result = self.supabase.table("user_profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

        if not result.data:
            raise NotFoundError("User not found")

        logger.info(f"Updated access for user {user_id}: {update_data}")
        return UserResponse(**result.data[0])

    def get_summaries(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        """Map user_id -> UserSummary for the given ids; unknown ids are left out"""
        ids = list({uid for uid in user_ids if uid})
        if not ids:
            return {}
        result = self.supabase.table("user_profiles")\
            .select("id, email, full_name, role")\
            .in_("id", ids)\
            .execute()
        return {row["id"]: UserSummary(**row) for row in (result.data or [])}
