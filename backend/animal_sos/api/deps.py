from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import ValidationError

from animal_sos.core import security
from animal_sos.schemas.identity import Identity

bearer_scheme = HTTPBearer(auto_error=False)


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    """
    Decodes the bearer token into an explicit Identity.
    The session layer is trusted: the user row is not looked up.
    """
    if credentials is None:
        raise _credentials_error()
    try:
        payload = security.decode_access_token(credentials.credentials)
        return Identity(user_id=payload.get("sub"), role=payload.get("role"))
    except (JWTError, ValidationError):
        raise _credentials_error()
