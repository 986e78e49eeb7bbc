from uuid import UUID
from pydantic import BaseModel
from animal_sos.models.user import UserRole

class Identity(BaseModel):
    """Caller identity as supplied by the session layer. Trusted as given."""
    user_id: UUID
    role: UserRole

    @property
    def is_agency(self) -> bool:
        return self.role == UserRole.AGENCY
