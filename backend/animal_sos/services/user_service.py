import uuid
from typing import Optional

import structlog
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.core import security
from animal_sos.core.config import settings
from animal_sos.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from animal_sos.models.user import User, UserRole
from animal_sos.schemas.identity import Identity
from animal_sos.schemas.user import ProfileUpdate, Token, UserCreate, UserOut, UserPublic
from animal_sos.services.mailer import mask_email
from animal_sos.services.report_service import require_text

logger = structlog.get_logger()


class UserService:
    """
    Accounts: registration, nickname availability, login and profile edits.
    Self-registered accounts are always citizens.
    """

    @staticmethod
    def to_public(user: User) -> UserPublic:
        return UserPublic(
            id=user.id,
            name=user.name,
            nickname=user.nickname,
            avatar_url=user.avatar_url or settings.DEFAULT_AVATAR_URL,
            bio=user.bio,
            role=user.role,
        )

    @classmethod
    def to_out(cls, user: User) -> UserOut:
        return UserOut(
            **cls.to_public(user).model_dump(),
            email=user.email,
            phone=user.phone,
            created_at=user.created_at,
        )

    @classmethod
    async def _by_email(cls, session: AsyncSession, email: str) -> Optional[User]:
        result = await session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    @classmethod
    async def _nickname_taken(cls, session: AsyncSession, nickname: str) -> bool:
        count = await session.scalar(
            select(func.count(User.id)).where(func.lower(User.nickname) == nickname.lower())
        )
        return bool(count)

    @classmethod
    async def nickname_available(cls, session: AsyncSession, nickname: str) -> tuple[bool, bool]:
        """
        Returns (available, valid). Nicknames compare case-insensitively.
        """
        nickname = (nickname or "").strip()
        if len(nickname) < settings.MIN_NICKNAME_LENGTH:
            return False, False
        return not await cls._nickname_taken(session, nickname), True

    @classmethod
    async def register(cls, session: AsyncSession, payload: UserCreate) -> UserOut:
        name = require_text(payload.name, "name")
        nickname = require_text(payload.nickname, "nickname")
        if len(nickname) < settings.MIN_NICKNAME_LENGTH:
            raise ValidationError(
                f"nickname must be at least {settings.MIN_NICKNAME_LENGTH} characters"
            )

        if await cls._nickname_taken(session, nickname):
            raise ConflictError("Nickname already in use")
        if await cls._by_email(session, payload.email) is not None:
            raise ConflictError("Email already registered")

        user = User(
            name=name,
            nickname=nickname,
            email=payload.email.strip().lower(),
            phone=(payload.phone or "").strip() or None,
            avatar_url=(payload.avatar_url or "").strip() or None,
            role=UserRole.CITIZEN,
            password_hash=security.get_password_hash(payload.password),
        )
        session.add(user)
        try:
            await session.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration
            await session.rollback()
            raise ConflictError("Email or nickname already in use")

        logger.info("user_registered", user_id=str(user.id), email_hash=mask_email(user.email))
        return cls.to_out(user)

    @classmethod
    async def login(cls, session: AsyncSession, email: str, password: str) -> Token:
        user = await cls._by_email(session, email)
        if user is None or not security.verify_password(password, user.password_hash):
            logger.info("login_failed", email_hash=mask_email(email))
            raise AuthenticationError("Invalid email or password")

        access_token = security.create_access_token(user.id, user.role.value)
        logger.info("login_succeeded", user_id=str(user.id))
        return Token(access_token=access_token, user=cls.to_out(user))

    @classmethod
    async def _get_model(cls, session: AsyncSession, user_id: uuid.UUID) -> User:
        user = await session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @classmethod
    async def get_profile(cls, session: AsyncSession, user_id: uuid.UUID) -> UserPublic:
        return cls.to_public(await cls._get_model(session, user_id))

    @classmethod
    async def get_me(cls, session: AsyncSession, identity: Identity) -> UserOut:
        return cls.to_out(await cls._get_model(session, identity.user_id))

    @classmethod
    async def update_profile(
        cls, session: AsyncSession, identity: Identity, patch: ProfileUpdate
    ) -> UserOut:
        user = await cls._get_model(session, identity.user_id)

        fields = patch.model_dump(exclude_unset=True)
        if "name" in fields:
            user.name = require_text(fields["name"], "name")
        if "bio" in fields:
            user.bio = (fields["bio"] or "").strip() or None
        if "avatar_url" in fields:
            user.avatar_url = (fields["avatar_url"] or "").strip() or None

        await session.commit()
        logger.info("profile_updated", user_id=str(user.id), fields=sorted(fields))
        return cls.to_out(user)
