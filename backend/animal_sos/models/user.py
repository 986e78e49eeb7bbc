import uuid
import enum
from sqlalchemy import Column, String, DateTime, Enum, ForeignKey, Uuid

from animal_sos.core.time_utils import get_utc_now
from animal_sos.db.base import Base


class UserRole(str, enum.Enum):
    CITIZEN = 'citizen'
    AGENCY = 'agency'


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False)
    nickname = Column(String(50), unique=True, nullable=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(String(500), nullable=True)
    phone = Column(String(30), nullable=True)
    role = Column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e], name="user_role"),
        default=UserRole.CITIZEN,
        nullable=False,
    )
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)


class PasswordResetCode(Base):
    """
    One-time code mailed to a user who forgot their password.
    Only the hash of the code is stored.
    """
    __tablename__ = "password_reset_codes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code_hash = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=get_utc_now, nullable=False)
