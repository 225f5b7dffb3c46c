"""
Maintenance script: promote an existing StudyHub account to admin.

Usage:
    python set_admin.py someone@example.com [--revoke]
"""
import argparse
import asyncio
import sys

from sqlalchemy import select

from studyhub.config import settings
from studyhub.database import Database
from studyhub.models.database_models import User, UserRole

# Color codes for terminal output
GREEN = "\033[92m"
RED = "\033[91m"
BLUE = "\033[94m"
RESET = "\033[0m"


def print_status(message: str, status: bool):
    """Print colored status message."""
    symbol = f"{GREEN}✓{RESET}" if status else f"{RED}✗{RESET}"
    print(f"{symbol} {message}")


async def set_role(email: str, role: UserRole) -> bool:
    """Set *role* on the user with *email*. Returns False if no such user."""
    database = Database(settings.DATABASE_URL)
    try:
        async with database.session_factory() as session:
            result = await session.execute(select(User).where(User.email == email.lower()))
            user = result.scalar_one_or_none()
            if user is None:
                print_status(f"No user with e-mail {email}", False)
                return False

            previous = user.role
            user.role = role
            await session.commit()
            print_status(f"{user.email}: {previous.value} → {role.value}", True)
            return True
    finally:
        await database.dispose()


def main():
    parser = argparse.ArgumentParser(description="Grant or revoke StudyHub admin rights.")
    parser.add_argument("email", help="e-mail address of an existing account")
    parser.add_argument("--revoke", action="store_true", help="demote the account back to user")
    args = parser.parse_args()

    print(f"{BLUE}Database: {settings.DATABASE_URL.split('@')[-1]}{RESET}")
    role = UserRole.USER if args.revoke else UserRole.ADMIN

    try:
        ok = asyncio.run(set_role(args.email, role))
    except Exception as e:
        print_status(f"Database error: {e}", False)
        sys.exit(1)

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
