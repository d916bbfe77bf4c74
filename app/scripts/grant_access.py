"""
Grant Access Script
Promotes an existing user (looked up by email) to admin and/or premium.
Used to bootstrap the first admin, who can then manage others via
PATCH /api/v1/users/{user_id}/access.

    python -m app.scripts.grant_access someone@example.com --admin --premium
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.database.supabase_client import get_supabase
from app.core.exceptions import AppError
from app.modules.users.schemas import UserAccessUpdate
from app.modules.users.service import UserService
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def grant_access(service: UserService, email: str, admin: bool, premium: bool, revoke: bool = False):
    """Apply the requested flags to the user with this email"""
    user = service.get_user_by_email(email)
    if user is None:
        raise AppError(f"No user profile with email {email}")

    access = UserAccessUpdate(
        role=("user" if revoke else "admin") if admin else None,
        is_premium=(not revoke) if premium else None,
    )
    updated = service.update_access(user.id, access)
    logger.info(f"{updated.email}: role={updated.role} premium={updated.is_premium}")
    return updated


def main(argv=None):
    parser = argparse.ArgumentParser(description="Grant or revoke admin/premium access")
    parser.add_argument("email")
    parser.add_argument("--admin", action="store_true", help="set role to admin")
    parser.add_argument("--premium", action="store_true", help="set premium flag")
    parser.add_argument("--revoke", action="store_true", help="revoke instead of grant")
    args = parser.parse_args(argv)

    if not (args.admin or args.premium):
        parser.error("pass --admin and/or --premium")

    try:
        grant_access(UserService(get_supabase()), args.email, args.admin, args.premium, args.revoke)
    except AppError as e:
        logger.error(e.detail)
        sys.exit(1)


if __name__ == "__main__":
    main()
