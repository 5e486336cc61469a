# app/domains/user/service.py
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions.user import UserAlreadyExistsError, UserNotFoundError
from models import User


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_subject(self, auth_subject: str) -> Optional[User]:
        """Get a user by the identity provider's subject."""
        result = await self.db.execute(select(User).where(User.auth_subject == auth_subject))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def create_user(self, auth_subject: str, email: str = None, username: str = None) -> User:
        """Create a new user."""
        user = User(auth_subject=auth_subject, email=email, username=username)

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def get_or_create_user(self, auth_subject: str, token_payload: dict) -> User:
        """Get existing user or create new one from a verified token payload."""
        user = await self.get_user_by_subject(auth_subject)
        if not user:
            user = await self.create_user(
                auth_subject=auth_subject,
                email=token_payload.get("email"),
                username=token_payload.get("username"),
            )
        return user

    async def update_user(self, user_id: UUID, username: str = None, email: str = None) -> User:
        """Update user information."""
        user = await self.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError()

        try:
            if username is not None:
                user.username = username
            if email is not None:
                user.email = email

            await self.db.commit()
            await self.db.refresh(user)
            return user
        except IntegrityError as e:
            await self.db.rollback()
            raise UserAlreadyExistsError("Email is already in use") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e
