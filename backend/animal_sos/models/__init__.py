from animal_sos.models.user import User, UserRole, PasswordResetCode
from animal_sos.models.report import (
    Report, ReportStatus, MediaKind, Comment, Like, AgencyNote,
)

__all__ = [
    "User", "UserRole", "PasswordResetCode",
    "Report", "ReportStatus", "MediaKind", "Comment", "Like", "AgencyNote",
]
