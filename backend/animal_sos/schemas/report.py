from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional
from uuid import UUID
from datetime import datetime
from animal_sos.models.report import ReportStatus, MediaKind

class MediaRef(BaseModel):
    """Reference returned by the media upload collaborator."""
    url: str = Field(..., max_length=1000)
    kind: MediaKind

class ReportCreate(BaseModel):
    title: str = Field(..., max_length=200)
    description: str
    location: Optional[str] = Field(None, max_length=500)
    media: Optional[MediaRef] = None
    is_anonymous: bool = False

class ReportUpdate(BaseModel):
    """Author edit. Media and anonymity are not patchable."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=500)

class StatusChangeRequest(BaseModel):
    status: str

class ReportFilter(BaseModel):
    author_id: Optional[UUID] = None
    anonymous_only: bool = False
    identified_only: bool = False
    status: Optional[ReportStatus] = None
    search_term: Optional[str] = None

class ReportOut(BaseModel):
    id: UUID
    title: str
    description: str
    location: Optional[str] = None
    media: Optional[MediaRef] = None
    is_anonymous: bool
    status: ReportStatus
    # Always None for anonymous reports
    author_id: Optional[UUID] = None
    author_name: Optional[str] = None
    author_avatar: Optional[str] = None
    likes_count: int = 0
    comments_count: int = 0
    created_at: datetime
    updated_at: datetime

class AgencyStats(BaseModel):
    total: int
    pending: int
    in_progress: int  # seen + in_progress
    resolved: int
    by_status: Dict[ReportStatus, int]

class UserStats(BaseModel):
    reports_count: int
    likes_received: int
    comments_count: int

class LikeToggleResponse(BaseModel):
    liked: bool

class LikeSummary(BaseModel):
    count: int
    liked: bool
