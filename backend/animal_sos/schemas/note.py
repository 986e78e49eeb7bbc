from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime

class AgencyNoteCreate(BaseModel):
    content: str

class AgencyNoteOut(BaseModel):
    id: UUID
    report_id: UUID
    author_id: UUID
    author_name: Optional[str] = None
    content: str
    created_at: datetime
