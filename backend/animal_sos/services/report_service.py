import uuid
from datetime import timedelta
from typing import List, Optional

import structlog
from sqlalchemy import select, func, delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.core.config import settings
from animal_sos.core.exceptions import (
    AuthorizationError,
    ExpiredEditWindowError,
    NotFoundError,
    ValidationError,
)
from animal_sos.core.time_utils import get_utc_now, as_utc
from animal_sos.models.report import Report, ReportStatus, Comment, Like, AgencyNote
from animal_sos.models.user import User
from animal_sos.schemas.identity import Identity
from animal_sos.schemas.report import (
    AgencyStats,
    MediaRef,
    ReportCreate,
    ReportFilter,
    ReportOut,
    ReportUpdate,
    UserStats,
)

logger = structlog.get_logger()


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class ReportService:
    """
    Report lifecycle: creation, author edits inside the edit window,
    cascading deletion, agency status changes and the listing/stat queries.
    """

    @staticmethod
    def edit_window() -> timedelta:
        return timedelta(minutes=settings.REPORT_EDIT_WINDOW_MINUTES)

    @staticmethod
    def _summary_query():
        """
        Reports joined with their author's display fields and live counts.
        Counts are computed per query, never cached.
        """
        likes_count = (
            select(func.count(Like.id))
            .where(Like.report_id == Report.id)
            .correlate(Report)
            .scalar_subquery()
            .label("likes_count")
        )
        comments_count = (
            select(func.count(Comment.id))
            .where(Comment.report_id == Report.id)
            .correlate(Report)
            .scalar_subquery()
            .label("comments_count")
        )
        stmt = select(
            Report,
            likes_count,
            comments_count,
            User.name.label("author_name"),
            User.avatar_url.label("author_avatar"),
        ).outerjoin(User, User.id == Report.author_id)
        return stmt, likes_count, comments_count

    @staticmethod
    def to_out(
        report: Report,
        likes_count: int = 0,
        comments_count: int = 0,
        author_name: Optional[str] = None,
        author_avatar: Optional[str] = None,
    ) -> ReportOut:
        media = None
        if report.media_url and report.media_kind:
            media = MediaRef(url=report.media_url, kind=report.media_kind)

        # Anonymous reports never expose author identity, whatever is stored
        anonymous = report.is_anonymous
        return ReportOut(
            id=report.id,
            title=report.title,
            description=report.description,
            location=report.location,
            media=media,
            is_anonymous=anonymous,
            status=report.status,
            author_id=None if anonymous else report.author_id,
            author_name=None if anonymous else author_name,
            author_avatar=None if anonymous else author_avatar,
            likes_count=likes_count or 0,
            comments_count=comments_count or 0,
            created_at=report.created_at,
            updated_at=report.updated_at,
        )

    @classmethod
    async def _get_model(cls, session: AsyncSession, report_id: uuid.UUID) -> Report:
        report = await session.get(Report, report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    @classmethod
    async def get_report(cls, session: AsyncSession, report_id: uuid.UUID) -> ReportOut:
        stmt, _, _ = cls._summary_query()
        result = await session.execute(stmt.where(Report.id == report_id))
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Report not found")
        return cls.to_out(*row)

    @classmethod
    async def create_report(
        cls, session: AsyncSession, identity: Optional[Identity], payload: ReportCreate
    ) -> ReportOut:
        title = require_text(payload.title, "title")
        description = require_text(payload.description, "description")

        author_id = None
        if identity is not None and not payload.is_anonymous:
            author_id = identity.user_id

        now = get_utc_now()
        report = Report(
            author_id=author_id,
            title=title,
            description=description,
            location=_optional_text(payload.location),
            media_url=payload.media.url if payload.media else None,
            media_kind=payload.media.kind if payload.media else None,
            is_anonymous=payload.is_anonymous,
            status=ReportStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        session.add(report)
        await session.commit()

        logger.info(
            "report_created",
            report_id=str(report.id),
            anonymous=report.is_anonymous,
            has_media=report.media_url is not None,
        )
        return await cls.get_report(session, report.id)

    @classmethod
    async def update_report(
        cls,
        session: AsyncSession,
        report_id: uuid.UUID,
        identity: Identity,
        patch: ReportUpdate,
    ) -> ReportOut:
        report = await cls._get_model(session, report_id)

        if report.author_id is None or report.author_id != identity.user_id:
            raise AuthorizationError("Only the author can edit this report")

        age = get_utc_now() - as_utc(report.created_at)
        if age > cls.edit_window():
            raise ExpiredEditWindowError()

        changes = patch.model_dump(exclude_unset=True)
        if "title" in changes:
            report.title = require_text(changes["title"], "title")
        if "description" in changes:
            report.description = require_text(changes["description"], "description")
        if "location" in changes:
            report.location = _optional_text(changes["location"])

        report.updated_at = get_utc_now()
        await session.commit()

        logger.info("report_updated", report_id=str(report.id), fields=sorted(changes))
        return await cls.get_report(session, report.id)

    @classmethod
    async def delete_report(
        cls, session: AsyncSession, report_id: uuid.UUID, identity: Identity
    ) -> None:
        report = await cls._get_model(session, report_id)

        if report.author_id is None or report.author_id != identity.user_id:
            raise AuthorizationError("Only the author can delete this report")

        # Comments, likes and notes go in the same transaction as the report
        try:
            await session.execute(delete(Comment).where(Comment.report_id == report_id))
            await session.execute(delete(Like).where(Like.report_id == report_id))
            await session.execute(delete(AgencyNote).where(AgencyNote.report_id == report_id))
            await session.delete(report)
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error("report_delete_failed", report_id=str(report_id), error=str(e))
            raise

        logger.info("report_deleted", report_id=str(report_id))

    @classmethod
    async def change_status(
        cls,
        session: AsyncSession,
        report_id: uuid.UUID,
        identity: Identity,
        new_status: str | ReportStatus,
    ) -> ReportOut:
        """
        Overwrites the status unconditionally. No transition graph is enforced:
        any status may move to any other, including itself. Last write wins.
        """
        if not identity.is_agency:
            raise AuthorizationError("Only agency users can change report status")

        try:
            status = ReportStatus(new_status)
        except ValueError:
            allowed = ", ".join(s.value for s in ReportStatus)
            raise ValidationError(f"Invalid status '{new_status}'. Expected one of: {allowed}")

        report = await cls._get_model(session, report_id)
        previous = report.status
        report.status = status
        report.updated_at = get_utc_now()
        await session.commit()

        logger.info(
            "report_status_changed",
            report_id=str(report.id),
            from_status=previous.value if previous else None,
            to_status=status.value,
            changed_by=str(identity.user_id),
        )
        return await cls.get_report(session, report.id)

    @classmethod
    async def list_reports(
        cls, session: AsyncSession, filters: Optional[ReportFilter] = None
    ) -> List[ReportOut]:
        filters = filters or ReportFilter()
        if filters.anonymous_only and filters.identified_only:
            raise ValidationError("anonymous_only and identified_only cannot both be set")

        stmt, _, _ = cls._summary_query()

        if filters.author_id is not None:
            stmt = stmt.where(Report.author_id == filters.author_id)
        if filters.anonymous_only:
            stmt = stmt.where(Report.is_anonymous.is_(True))
        if filters.identified_only:
            stmt = stmt.where(Report.is_anonymous.is_(False))
        if filters.status is not None:
            stmt = stmt.where(Report.status == filters.status)

        term = (filters.search_term or "").strip().lower()
        if term:
            stmt = stmt.where(
                or_(
                    func.lower(Report.title).contains(term, autoescape=True),
                    func.lower(Report.description).contains(term, autoescape=True),
                )
            )

        stmt = stmt.order_by(Report.created_at.desc())
        result = await session.execute(stmt)
        return [cls.to_out(*row) for row in result.all()]

    @classmethod
    async def popular_reports(cls, session: AsyncSession) -> List[ReportOut]:
        stmt, likes_count, comments_count = cls._summary_query()
        stmt = (
            stmt.where(Report.status != ReportStatus.RESOLVED)
            .order_by(likes_count.desc(), comments_count.desc(), Report.created_at.desc())
            .limit(settings.POPULAR_REPORTS_LIMIT)
        )
        result = await session.execute(stmt)
        return [cls.to_out(*row) for row in result.all()]

    @classmethod
    async def agency_stats(cls, session: AsyncSession, identity: Identity) -> AgencyStats:
        if not identity.is_agency:
            raise AuthorizationError("Only agency users can view report statistics")

        result = await session.execute(
            select(Report.status, func.count(Report.id)).group_by(Report.status)
        )
        by_status = {status: 0 for status in ReportStatus}
        for status, count in result.all():
            by_status[ReportStatus(status)] = count

        return AgencyStats(
            total=sum(by_status.values()),
            pending=by_status[ReportStatus.PENDING],
            in_progress=by_status[ReportStatus.SEEN] + by_status[ReportStatus.IN_PROGRESS],
            resolved=by_status[ReportStatus.RESOLVED],
            by_status=by_status,
        )

    @classmethod
    async def user_stats(cls, session: AsyncSession, user_id: uuid.UUID) -> UserStats:
        reports_count = await session.scalar(
            select(func.count(Report.id)).where(Report.author_id == user_id)
        )
        likes_received = await session.scalar(
            select(func.count(Like.id))
            .join(Report, Report.id == Like.report_id)
            .where(Report.author_id == user_id)
        )
        comments_count = await session.scalar(
            select(func.count(Comment.id)).where(Comment.author_id == user_id)
        )
        return UserStats(
            reports_count=reports_count or 0,
            likes_received=likes_received or 0,
            comments_count=comments_count or 0,
        )
