#!/usr/bin/env python3
"""Grant (or revoke) the admin role for an existing RecipeHub account.

Usage:
    python scripts/promote_admin.py someone@example.com
    python scripts/promote_admin.py someone@example.com --revoke
"""
import argparse
import asyncio
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.user_tables import UserRow
from src.models import Role


async def set_role(session: AsyncSession, email: str, role: Role) -> bool:
    """Returns False when no account has that email."""
    result = await session.execute(
        update(UserRow).where(UserRow.email == email).values(role=role.value)
    )
    await session.commit()
    return result.rowcount > 0


async def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("email")
    parser.add_argument("--revoke", action="store_true", help="demote back to a regular user")
    args = parser.parse_args(argv)

    from src.db.engine import async_session, engine

    role = Role.USER if args.revoke else Role.ADMIN
    async with async_session() as session:
        found = await set_role(session, args.email, role)
    await engine.dispose()

    if not found:
        print(f"ERROR: no user with email {args.email}")
        return 1
    print(f"✓ {args.email} is now {role.value}")
    return 0


if __name__ == "__main__":
    exit(asyncio.run(main()))
