from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user_model import UserModel
from core.auth import get_password_hash, verify_password


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserCrud:

    def __init__(self):
        self.table = UserModel

    async def create_user(self, session: AsyncSession, user_data: dict) -> UserModel:
        """Store a new account; without a display name the email's local part is used."""
        email = normalize_email(user_data["email"])
        user = UserModel(
            email=email,
            display_name=user_data.get("display_name") or email.split("@")[0],
            hashed_password=get_password_hash(user_data["password"]),
        )
        session.add(user)
        await session.flush()
        await session.refresh(user)
        return user

    async def get_user_by_email(self, session: AsyncSession, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.email == normalize_email(email))
        result = await session.execute(stmt)
        return result.scalars().first()

    async def get_user_by_uuid(self, session: AsyncSession, user_uuid: UUID) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.uuid == user_uuid)
        result = await session.execute(stmt)
        return result.scalars().first()

    async def authenticate(self, session: AsyncSession, email: str, password: str) -> Optional[UserModel]:
        user = await self.get_user_by_email(session, email)
        if user is None or not verify_password(password, user.hashed_password):
            return None
        return user


user_crud = UserCrud()
