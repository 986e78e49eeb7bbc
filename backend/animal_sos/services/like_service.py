import uuid

import structlog
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.core.exceptions import NotFoundError
from animal_sos.models.report import Like, Report

logger = structlog.get_logger()


class LikeService:

    @classmethod
    async def toggle_like(cls, session: AsyncSession, report_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """
        Likes the report if the user has not yet, otherwise removes the like.
        Returns the resulting liked state.
        """
        if await session.get(Report, report_id) is None:
            raise NotFoundError("Report not found")

        result = await session.execute(
            select(Like).where(Like.report_id == report_id, Like.user_id == user_id)
        )
        existing = result.scalar_one_or_none()

        if existing is not None:
            await session.delete(existing)
            await session.commit()
            logger.info("report_unliked", report_id=str(report_id), user_id=str(user_id))
            return False

        session.add(Like(report_id=report_id, user_id=user_id))
        try:
            await session.commit()
        except IntegrityError:
            # A concurrent toggle inserted the same pair first
            await session.rollback()
            logger.info("report_like_race", report_id=str(report_id), user_id=str(user_id))
            return True

        logger.info("report_liked", report_id=str(report_id), user_id=str(user_id))
        return True

    @classmethod
    async def has_liked(cls, session: AsyncSession, report_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        count = await session.scalar(
            select(func.count(Like.id)).where(Like.report_id == report_id, Like.user_id == user_id)
        )
        return bool(count)

    @classmethod
    async def likes_count(cls, session: AsyncSession, report_id: uuid.UUID) -> int:
        count = await session.scalar(select(func.count(Like.id)).where(Like.report_id == report_id))
        return count or 0
