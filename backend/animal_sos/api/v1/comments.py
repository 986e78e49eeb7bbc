import uuid
from typing import List
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.api.deps import get_current_identity
from animal_sos.db.session import get_db
from animal_sos.schemas.comment import CommentCreate, CommentOut, CommentUpdate, ThreadEntry
from animal_sos.schemas.identity import Identity
from animal_sos.services.comment_service import CommentService

router = APIRouter()


@router.get("/", response_model=List[ThreadEntry])
async def read_thread(
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Comments of a report as root comments (newest first) with their replies
    (oldest first).
    """
    return await CommentService.thread_for_report(db, report_id)


@router.post("/", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def add_comment(
    report_id: uuid.UUID,
    payload: CommentCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await CommentService.add_comment(
        db, report_id, identity, payload.content, payload.parent_id
    )


@router.put("/{comment_id}", response_model=CommentOut)
async def edit_comment(
    report_id: uuid.UUID,
    comment_id: uuid.UUID,
    payload: CommentUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await CommentService.edit_comment(db, report_id, comment_id, identity, payload.content)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    report_id: uuid.UUID,
    comment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    await CommentService.delete_comment(db, report_id, comment_id, identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
