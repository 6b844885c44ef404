"""
UserRepository: account lookups and creation
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import User


class UserRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Emails are stored lowercased, so the lookup is case-insensitive."""
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_user(self, user_data: dict) -> User:
        """Insert a user from email, password_hash and optional name; not committed."""
        user = User(
            email=user_data["email"].lower(),
            password_hash=user_data["password_hash"],
            name=user_data.get("name"),
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user
