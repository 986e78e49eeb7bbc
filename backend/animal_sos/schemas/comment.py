from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime

class CommentCreate(BaseModel):
    content: str
    parent_id: Optional[UUID] = None

class CommentUpdate(BaseModel):
    content: str

class CommentOut(BaseModel):
    id: UUID
    report_id: UUID
    author_id: UUID
    author_name: Optional[str] = None
    author_avatar: Optional[str] = None
    content: str
    parent_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

class ThreadEntry(BaseModel):
    """A root comment with its replies, oldest reply first."""
    root: CommentOut
    replies: List[CommentOut]
    reply_count: int
