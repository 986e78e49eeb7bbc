import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.api.deps import get_current_identity
from animal_sos.db.session import get_db
from animal_sos.schemas.identity import Identity
from animal_sos.schemas.report import UserStats
from animal_sos.schemas.user import ProfileUpdate, UserOut, UserPublic
from animal_sos.services.report_service import ReportService
from animal_sos.services.user_service import UserService

router = APIRouter()


@router.get("/me", response_model=UserOut)
async def read_me(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await UserService.get_me(db, identity)


@router.patch("/me", response_model=UserOut)
async def update_me(
    patch: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Edit the caller's own name, bio and avatar.
    """
    return await UserService.update_profile(db, identity, patch)


@router.get("/{user_id}", response_model=UserPublic)
async def read_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await UserService.get_profile(db, user_id)


@router.get("/{user_id}/stats", response_model=UserStats)
async def user_stats(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Profile counters: reports filed, likes received on them, comments written.
    """
    return await ReportService.user_stats(db, user_id)
