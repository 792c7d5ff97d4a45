"""
Identity service for user lookups.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.models.user import User, UserRole


class IdentityService:
    """Service for user identity operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email address (case-insensitive)."""
        result = await self.session.execute(
            select(User).where(User.email == email.lower().strip())
        )
        return result.scalar_one_or_none()

    async def create_user(
        self,
        email: str,
        display_name: str,
        role: UserRole = UserRole.SUBSCRIBER,
    ) -> User:
        """
        Create a user account.

        Raises:
            ValueError: If the email is already registered
        """
        if await self.get_user_by_email(email):
            raise ValueError("Email already registered")

        user = User(
            email=email.lower().strip(),
            display_name=display_name.strip(),
            role=role,
        )
        self.session.add(user)
        await self.session.flush()
        return user
