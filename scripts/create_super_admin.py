#!/usr/bin/env python3
"""
CLI script to create (or promote) the superuser profile.

Usage (interactive):
    python scripts/create_super_admin.py

Usage (non-interactive):
    python scripts/create_super_admin.py --email admin@example.com --name "Jane Doe"
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from academy_admin.database import close_db, get_db_context
from academy_admin.models import Role
from academy_admin.services.profile_service import get_profile_service
from academy_admin.utils.security import create_access_token
from academy_admin.utils.validations import is_valid_email


async def create_super_admin(email: str | None = None, name: str = "") -> bool:
    """Create a superuser profile, or promote an existing one."""
    print("\n" + "=" * 50)
    print("Academy Admin - Superuser Setup")
    print("=" * 50 + "\n")

    if not email:
        while True:
            email = input("Enter email address: ").strip().lower()
            if is_valid_email(email):
                break
            print("Please enter a valid email address.")
    elif not is_valid_email(email):
        print("Invalid email address.")
        return False

    async with get_db_context() as db:
        profile = await get_profile_service().set_role(db, email, Role.SUPERUSER, create=True, full_name=name)

    print("=" * 50)
    print("Superuser Ready")
    print("=" * 50)
    print(f"  Email: {profile.email}")
    print(f"  Name: {profile.full_name or '-'}")
    print(f"  ID: {profile.id}")
    print(f"  Token: {create_access_token(profile.email, profile.role, name=profile.full_name)}")
    print("=" * 50 + "\n")
    return True


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Create the academy-admin superuser")
    parser.add_argument("--email", "-e", help="Superuser e-mail address")
    parser.add_argument("--name", "-n", default="", help="Full name")
    args = parser.parse_args()

    try:
        success = await create_super_admin(email=args.email, name=args.name)
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\nAborted by user.")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        sys.exit(1)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
