import uuid
from typing import List

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.core.exceptions import AuthorizationError, NotFoundError
from animal_sos.core.time_utils import get_utc_now
from animal_sos.models.report import AgencyNote, Report
from animal_sos.models.user import User
from animal_sos.schemas.identity import Identity
from animal_sos.schemas.note import AgencyNoteOut
from animal_sos.services.report_service import require_text

logger = structlog.get_logger()


class AgencyNoteService:
    """
    Internal notes agencies keep on a report. Write-once, agency-only.
    """

    @staticmethod
    def _require_agency(identity: Identity) -> None:
        if not identity.is_agency:
            raise AuthorizationError("Agency notes are restricted to agency users")

    @classmethod
    async def add_note(
        cls, session: AsyncSession, report_id: uuid.UUID, identity: Identity, content: str
    ) -> AgencyNoteOut:
        cls._require_agency(identity)
        text = require_text(content, "content")
        if await session.get(Report, report_id) is None:
            raise NotFoundError("Report not found")

        note = AgencyNote(
            report_id=report_id,
            author_id=identity.user_id,
            content=text,
            created_at=get_utc_now(),
        )
        session.add(note)
        await session.commit()

        author = await session.get(User, identity.user_id)
        logger.info("agency_note_added", note_id=str(note.id), report_id=str(report_id))
        return AgencyNoteOut(
            id=note.id,
            report_id=note.report_id,
            author_id=note.author_id,
            author_name=author.name if author else None,
            content=note.content,
            created_at=note.created_at,
        )

    @classmethod
    async def list_notes(
        cls, session: AsyncSession, report_id: uuid.UUID, identity: Identity
    ) -> List[AgencyNoteOut]:
        cls._require_agency(identity)
        if await session.get(Report, report_id) is None:
            raise NotFoundError("Report not found")

        result = await session.execute(
            select(AgencyNote, User.name)
            .outerjoin(User, User.id == AgencyNote.author_id)
            .where(AgencyNote.report_id == report_id)
            .order_by(AgencyNote.created_at.asc())
        )
        return [
            AgencyNoteOut(
                id=note.id,
                report_id=note.report_id,
                author_id=note.author_id,
                author_name=author_name,
                content=note.content,
                created_at=note.created_at,
            )
            for note, author_name in result.all()
        ]
