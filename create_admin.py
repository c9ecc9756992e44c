import asyncio
import sys

from app.core.config import settings
from app.core.enums import UserRole
from app.core.redis import close_redis
from app.core.security import hash_password
from app.models.user import User
from app.storage.factory import build_storage


async def create_admin_user(email: str, password: str) -> bool:
    if settings.STORAGE_BACKEND != "redis":
        print("Error: STORAGE_BACKEND must be 'redis'; in-memory accounts do not outlive this script")
        return False

    try:
        storage = await build_storage()
        user = User(
            email=email.strip().lower(),
            name="Administrator",
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
            email_verified=True,
        )

        if not await storage.users.insert(user):
            print(f"Error: User '{email}' already exists")
            return False

        print(f"Admin user '{user.email}' created successfully")
        print(f"User ID: {user.id}")
        print(f"Role: {user.role}")
        return True

    except Exception as e:
        print(f"Error creating admin user: {str(e)}")
        return False
    finally:
        await close_redis()


def main():
    if len(sys.argv) < 3:
        print("Usage: python create_admin.py <email> <password>")
        sys.exit(1)

    email = sys.argv[1]
    password = sys.argv[2]

    if not email or not password:
        print("Error: email and password cannot be empty")
        sys.exit(1)

    success = asyncio.run(create_admin_user(email, password))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
