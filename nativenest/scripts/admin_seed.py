import asyncio
from nativenest.core.security import create_access_token
from nativenest.domain.users.crud import get_role_by_name, get_user_by_email
from nativenest.domain.users.models import User, RoleName
from nativenest.core.config import ADMIN_EMAIL, ADMIN_NAME
from nativenest.core.database import AsyncSessionLocal


async def seed_admin_user(db) -> User | None:
    if not ADMIN_EMAIL:
        print("Missing ADMIN_EMAIL - skipping seed...")
        return None

    admin_role = await get_role_by_name(RoleName.ADMIN, db)
    if not admin_role:
        print("ADMIN role missing - run migrations first")
        return None

    user = await get_user_by_email(ADMIN_EMAIL, db)

    if not user:
        user = User(name=ADMIN_NAME, email=ADMIN_EMAIL, roles=[admin_role])
        db.add(user)
    elif admin_role.name not in {r.name for r in user.roles}:
        user.roles.append(admin_role)

    await db.flush()
    return user


async def main():
    async with AsyncSessionLocal() as db:
        user = await seed_admin_user(db)
        await db.commit()
        if user:
            print(f"Admin OK: {user.email}")
            print(f"Bootstrap token: {create_access_token(user.id)}")


if __name__ == "__main__":
    asyncio.run(main())
