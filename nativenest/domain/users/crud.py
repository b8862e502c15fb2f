from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy import select
from .models import Role, User


async def get_role_by_name(name: str, db: AsyncSession) -> Role | None:
    stmt = select(Role).where(Role.name == name)
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_user_by_email(email: str, db: AsyncSession) -> User | None:
    stmt = select(User).options(selectinload(User.roles)).where(User.email == email)
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_active_user_by_id(user_id: int, db: AsyncSession) -> User | None:
    stmt = select(User).options(selectinload(User.roles)).where(User.id == user_id, User.is_active.is_(True))
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_user_with_role_by_phone(phone_number: str, role: str, db: AsyncSession) -> User | None:
    stmt = (
        select(User)
        .where(
            User.phone_number == phone_number,
            User.is_active.is_(True),
            User.roles.any(Role.name == role),
        )
    )
    result = await db.execute(stmt)
    return result.scalars().first()
