from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from uuid import UUID
from datetime import datetime
from animal_sos.models.user import UserRole

class UserCreate(BaseModel):
    name: str = Field(..., max_length=120)
    nickname: str = Field(..., max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = Field(None, max_length=30)
    avatar_url: Optional[str] = Field(None, max_length=500)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class NicknameCheckRequest(BaseModel):
    nickname: str

class NicknameAvailability(BaseModel):
    available: bool
    valid: bool

class ProfileUpdate(BaseModel):
    """Self-service profile edit. Email, nickname and role are fixed."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, max_length=120)
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = Field(None, max_length=500)

class UserPublic(BaseModel):
    id: UUID
    name: str
    nickname: Optional[str] = None
    avatar_url: str
    bio: Optional[str] = None
    role: UserRole

class UserOut(UserPublic):
    """The caller's own account, contact fields included."""
    email: str
    phone: Optional[str] = None
    created_at: datetime

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
