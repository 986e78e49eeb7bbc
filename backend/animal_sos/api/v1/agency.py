import uuid
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.api.deps import get_current_identity
from animal_sos.db.session import get_db
from animal_sos.schemas.identity import Identity
from animal_sos.schemas.note import AgencyNoteCreate, AgencyNoteOut
from animal_sos.schemas.report import AgencyStats
from animal_sos.services.note_service import AgencyNoteService
from animal_sos.services.report_service import ReportService

router = APIRouter()


@router.get("/stats", response_model=AgencyStats)
async def agency_stats(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Report tally per status for the agency dashboard. Recomputed on every call.
    """
    return await ReportService.agency_stats(db, identity)


@router.get("/reports/{report_id}/notes", response_model=List[AgencyNoteOut])
async def read_notes(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await AgencyNoteService.list_notes(db, report_id, identity)


@router.post(
    "/reports/{report_id}/notes",
    response_model=AgencyNoteOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_note(
    report_id: uuid.UUID,
    payload: AgencyNoteCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await AgencyNoteService.add_note(db, report_id, identity, payload.content)
