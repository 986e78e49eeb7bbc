import uuid
import enum
from sqlalchemy import (
    Column, String, Boolean, DateTime, Enum, ForeignKey, Text, Uuid, UniqueConstraint,
)

from animal_sos.core.time_utils import get_utc_now
from animal_sos.db.base import Base


def _enum_values(e):
    return [m.value for m in e]


class ReportStatus(str, enum.Enum):
    PENDING = 'pending'
    SEEN = 'seen'
    IN_PROGRESS = 'in_progress'
    RESOLVED = 'resolved'


class MediaKind(str, enum.Enum):
    IMAGE = 'image'
    VIDEO = 'video'


class Report(Base):
    __tablename__ = "reports"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # NULL when submitted anonymously
    author_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(500), nullable=True)

    media_url = Column(String(1000), nullable=True)
    media_kind = Column(Enum(MediaKind, values_callable=_enum_values, name="media_kind"), nullable=True)

    is_anonymous = Column(Boolean, default=False, nullable=False)
    status = Column(
        Enum(ReportStatus, values_callable=_enum_values, name="report_status"),
        default=ReportStatus.PENDING,
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    report_id = Column(Uuid(as_uuid=True), ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    # Not a foreign key: replies outlive a deleted root comment
    parent_id = Column(Uuid(as_uuid=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("report_id", "user_id", name="uq_likes_report_user"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    report_id = Column(Uuid(as_uuid=True), ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)


class AgencyNote(Base):
    """
    Internal note on a report. Visible to agency users only; never edited or deleted.
    """
    __tablename__ = "agency_notes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    report_id = Column(Uuid(as_uuid=True), ForeignKey("reports.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)
