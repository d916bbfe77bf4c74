from supabase import Client
from app.core.access import can_access_group
from app.core.exceptions import NotFoundError
from app.modules.groups.service import GroupService
from app.modules.realtime.broadcaster import GroupBroadcaster
from app.modules.users.service import UserService
import logging

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Keeps live websocket subscriptions in line with current group access."""

    def __init__(self, supabase: Client, broadcaster: GroupBroadcaster):
        self.supabase = supabase
        self.broadcaster = broadcaster

    def resync_user(self, user_id: str) -> int:
        """
        Re-check every group this user is subscribed to and drop the
        subscriptions they may no longer read (removed from the group, premium
        revoked, profile or group gone). Returns the number of connections dropped.
        """
        group_ids = self.broadcaster.groups_for_user(user_id)
        if not group_ids:
            return 0

        try:
            user = UserService(self.supabase).get_user_by_id(user_id)
        except NotFoundError:
            user = None

        groups = GroupService(self.supabase)
        dropped = 0
        for group_id in group_ids:
            try:
                group = groups.get_group(group_id)
            except NotFoundError:
                group = None
            if user is None or group is None or not can_access_group(user, group).read:
                dropped += self.broadcaster.leave_user(group_id, user_id)

        if dropped:
            logger.info(f"Revoked {dropped} live subscription(s) of user {user_id}")
        return dropped
