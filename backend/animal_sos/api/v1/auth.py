from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from animal_sos.db.session import get_db
from animal_sos.schemas.auth import (
    ForgotPasswordRequest,
    MessageResponse,
    ResetPasswordRequest,
    VerifyResetCodeRequest,
)
from animal_sos.schemas.user import (
    LoginRequest,
    NicknameAvailability,
    NicknameCheckRequest,
    Token,
    UserCreate,
    UserOut,
)
from animal_sos.services.password_reset_service import PasswordResetService
from animal_sos.services.user_service import UserService

router = APIRouter()


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(payload: UserCreate, db: AsyncSession = Depends(get_db)):
    """
    Create a citizen account. Email and nickname must both be unused.
    """
    return await UserService.register(db, payload)


@router.post("/login", response_model=Token)
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """
    Exchange email and password for a bearer token.
    """
    return await UserService.login(db, request.email, request.password)


@router.post("/check-nickname", response_model=NicknameAvailability)
async def check_nickname(request: NicknameCheckRequest, db: AsyncSession = Depends(get_db)):
    available, valid = await UserService.nickname_available(db, request.nickname)
    return NicknameAvailability(available=available, valid=valid)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    await PasswordResetService.request_reset(db, request.email)
    return MessageResponse(message="A reset code was sent to your email")


@router.post("/verify-reset-code", response_model=MessageResponse)
async def verify_reset_code(request: VerifyResetCodeRequest, db: AsyncSession = Depends(get_db)):
    await PasswordResetService.verify_code(db, request.email, request.code)
    return MessageResponse(message="Code is valid")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await PasswordResetService.reset_password(db, request.email, request.code, request.new_password)
    return MessageResponse(message="Password updated")
