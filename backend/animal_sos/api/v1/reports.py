import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.api.deps import get_current_identity
from animal_sos.db.session import get_db
from animal_sos.models.report import ReportStatus
from animal_sos.schemas.identity import Identity
from animal_sos.schemas.report import (
    LikeSummary,
    LikeToggleResponse,
    ReportCreate,
    ReportFilter,
    ReportOut,
    ReportUpdate,
    StatusChangeRequest,
)
from animal_sos.services.like_service import LikeService
from animal_sos.services.report_service import ReportService

router = APIRouter()


@router.post("/", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
async def create_report(
    payload: ReportCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Submit a new report. Anonymous reports are stored without an author.
    """
    return await ReportService.create_report(db, identity, payload)


@router.get("/", response_model=List[ReportOut])
async def list_reports(
    author_id: Optional[uuid.UUID] = None,
    anonymous_only: bool = False,
    identified_only: bool = False,
    status: Optional[ReportStatus] = None,
    search: Optional[str] = Query(None, alias="q", max_length=200),
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    filters = ReportFilter(
        author_id=author_id,
        anonymous_only=anonymous_only,
        identified_only=identified_only,
        status=status,
        search_term=search,
    )
    return await ReportService.list_reports(db, filters)


@router.get("/popular", response_model=List[ReportOut])
async def popular_reports(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Unresolved reports with the most likes, then the most comments.
    """
    return await ReportService.popular_reports(db)


@router.get("/{report_id}", response_model=ReportOut)
async def read_report(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await ReportService.get_report(db, report_id)


@router.patch("/{report_id}", response_model=ReportOut)
async def update_report(
    report_id: uuid.UUID,
    patch: ReportUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Author edit of title, description and location, within the edit window.
    """
    return await ReportService.update_report(db, report_id, identity, patch)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    await ReportService.delete_report(db, report_id, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{report_id}/status", response_model=ReportOut)
async def change_report_status(
    report_id: uuid.UUID,
    body: StatusChangeRequest,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Agency-only status change. Any status may be set from any other.
    """
    return await ReportService.change_status(db, report_id, identity, body.status)


@router.post("/{report_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    liked = await LikeService.toggle_like(db, report_id, identity.user_id)
    return LikeToggleResponse(liked=liked)


@router.get("/{report_id}/likes", response_model=LikeSummary)
async def like_summary(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return LikeSummary(
        count=await LikeService.likes_count(db, report_id),
        liked=await LikeService.has_liked(db, report_id, identity.user_id),
    )
