#!/usr/bin/env python3
"""
Admin User Bootstrap Script

Self-registration only creates pending observers, so the first administrator
is created here. Run this after the database migrations.

Usage:
    ADMIN_PASSWORD='...' python bootstrap_admin.py admin admin@caffe.org.jm
"""

import asyncio
import os
import sys

import asyncpg

from app.core.config import settings
from app.core.security import hash_password
from app.core.validation import PasswordValidator
from app.services.users import create_user, generate_observer_id, get_user_by_username


async def bootstrap_admin_user(username: str, email: str, password: str) -> bool:
    """Create an active admin account unless the username is already taken."""
    is_valid, error = PasswordValidator.validate(password)
    if not is_valid:
        print(f"❌ {error}")
        return False

    conn = await asyncpg.connect(settings.DATABASE_URL)
    try:
        existing = await get_user_by_username(conn, username)
        if existing:
            print(f"ℹ️  User {username} already exists with role {existing['role']}")
            return existing["role"] == "admin"

        user = await create_user(
            conn,
            username=username,
            email=email.lower(),
            password_hash=hash_password(password),
            first_name="System",
            last_name="Administrator",
            observer_id=await generate_observer_id(conn),
            role="admin",
            status="active",
        )
        print(f"✅ Created admin user {user['username']} (ID: {user['id']})")
        return True
    finally:
        await conn.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(2)

    password = os.environ.get("ADMIN_PASSWORD")
    if not password:
        print("❌ Set ADMIN_PASSWORD in the environment")
        sys.exit(2)

    success = asyncio.run(bootstrap_admin_user(sys.argv[1], sys.argv[2], password))
    sys.exit(0 if success else 1)
