import secrets
from datetime import timedelta

import structlog
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.core.config import settings
from animal_sos.core.exceptions import NotFoundError, ValidationError
from animal_sos.core.security import get_password_hash, verify_password
from animal_sos.core.time_utils import get_utc_now, as_utc
from animal_sos.models.user import PasswordResetCode, User
from animal_sos.services.mailer import Mailer, mask_email

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 6


class PasswordResetService:
    """
    Forgot-password flow: mail a 6-digit code, verify it, set a new password.
    """

    @staticmethod
    def generate_code() -> str:
        return f"{secrets.randbelow(10 ** 6):06d}"

    @classmethod
    async def _get_user(cls, session: AsyncSession, email: str) -> User | None:
        result = await session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    @classmethod
    async def request_reset(cls, session: AsyncSession, email: str) -> None:
        user = await cls._get_user(session, email)
        if user is None:
            raise NotFoundError("No account registered with this email")

        code = cls.generate_code()
        now = get_utc_now()

        # Nothing is stored unless the mail goes out
        await Mailer.send_reset_code(user.email, code)

        await session.execute(
            update(PasswordResetCode)
            .where(PasswordResetCode.user_id == user.id, PasswordResetCode.used_at.is_(None))
            .values(used_at=now)
        )
        session.add(
            PasswordResetCode(
                user_id=user.id,
                code_hash=get_password_hash(code),
                expires_at=now + timedelta(minutes=settings.RESET_CODE_TTL_MINUTES),
                created_at=now,
            )
        )
        await session.commit()
        logger.info("password_reset_requested", email_hash=mask_email(user.email))

    @classmethod
    async def _find_live_code(
        cls, session: AsyncSession, email: str, code: str
    ) -> tuple[User, PasswordResetCode]:
        invalid = ValidationError("Invalid or expired code")

        user = await cls._get_user(session, email)
        if user is None:
            raise invalid

        result = await session.execute(
            select(PasswordResetCode)
            .where(PasswordResetCode.user_id == user.id, PasswordResetCode.used_at.is_(None))
            .order_by(PasswordResetCode.created_at.desc())
        )
        now = get_utc_now()
        for row in result.scalars().all():
            if as_utc(row.expires_at) < now:
                continue
            if verify_password(code, row.code_hash):
                return user, row
        raise invalid

    @classmethod
    async def verify_code(cls, session: AsyncSession, email: str, code: str) -> None:
        await cls._find_live_code(session, email, code)

    @classmethod
    async def reset_password(
        cls, session: AsyncSession, email: str, code: str, new_password: str
    ) -> None:
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        user, row = await cls._find_live_code(session, email, code)
        user.password_hash = get_password_hash(new_password)
        row.used_at = get_utc_now()
        await session.commit()
        logger.info("password_reset_completed", email_hash=mask_email(user.email))
