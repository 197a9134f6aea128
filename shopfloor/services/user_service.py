"""Signed-in user cache. One row; saving replaces whoever was there."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import store_now, unit_of_work
from ..models import User
from ..schemas.auth import UserIn, UserOut
from .validation import parse_input


async def save_user(
    db: AsyncSession, user_id: str, email: str, role: str, tenant_id: str, token: str
) -> UserOut:
    data = parse_input(UserIn, id=user_id, email=email, role=role, tenant_id=tenant_id, token=token)
    async with unit_of_work(db):
        await db.execute(delete(User))
        user = User(**data.model_dump(), created_at=store_now(db))
        db.add(user)
    return UserOut.model_validate(user)


async def get_user(db: AsyncSession) -> UserOut | None:
    user = (await db.execute(select(User).limit(1))).scalars().first()
    return UserOut.model_validate(user) if user else None


async def clear_user(db: AsyncSession) -> None:
    async with unit_of_work(db):
        await db.execute(delete(User))
