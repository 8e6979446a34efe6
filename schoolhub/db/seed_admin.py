"""
Seed script to create the first admin account.

Run once (e.g. after schema_check) with env set:
  DEFAULT_ADMIN_EMAIL=admin@yourschool.com
  DEFAULT_ADMIN_PASSWORD=YourSecurePassword

Creates a users row with role admin (if no user with that email exists) and the
system_settings row with its defaults.
"""
import asyncio

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth.models import User
from schoolhub.auth.security import hash_password
from schoolhub.core.config import settings
from schoolhub.core.enums import UserRole
from schoolhub.core.models import SETTINGS_ROW_ID, SystemSettings
from schoolhub.db.session import AsyncSessionLocal

# Used when DEFAULT_ADMIN_EMAIL / DEFAULT_ADMIN_PASSWORD are not set
FALLBACK_ADMIN_EMAIL = "admin@school.com"
FALLBACK_ADMIN_PASSWORD = "admin123"


async def seed_admin(db: AsyncSession) -> None:
    email = settings.default_admin_email or FALLBACK_ADMIN_EMAIL
    password = settings.default_admin_password or FALLBACK_ADMIN_PASSWORD

    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    admin = result.scalar_one_or_none()
    if admin is None:
        db.add(
            User(
                first_name="System",
                last_name="Admin",
                email=email,
                password_hash=hash_password(password),
                role=UserRole.ADMIN.value,
            )
        )
        print(f"Created admin user {email}.")
    else:
        print(f"Admin user {email} already exists.")

    if await db.get(SystemSettings, SETTINGS_ROW_ID) is None:
        db.add(SystemSettings(id=SETTINGS_ROW_ID))
        print("Created default system settings.")

    await db.commit()
    print("Admin seed done.")


async def main() -> None:
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db)
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main())
