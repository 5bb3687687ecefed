"""Authentication utilities for CineMatch.

Tokens are issued by the identity service; this module only verifies them.
The ``sub`` claim carries the user id.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from cinematch.core.config import settings
from cinematch.core.logging import get_logger

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    """Data embedded in JWT token."""

    user_id: str
    exp: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: dict):
        """Create TokenData from JWT payload, converting timestamp back to datetime."""
        exp = payload.get("exp")
        if isinstance(exp, (int, float)):
            exp = datetime.fromtimestamp(exp, tz=timezone.utc)
        return cls(user_id=payload.get("sub") or "", exp=exp)


def verify_token(token: str) -> Optional[TokenData]:
    """Verify and decode a JWT token. Returns None when the token is unusable."""
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except JWTError as e:
        logger.debug(f"Rejected token: {e}")
        return None

    token_data = TokenData.from_payload(payload)
    if not token_data.user_id:
        return None
    return token_data


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """FastAPI dependency resolving the authenticated user id."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    token_data = verify_token(credentials.credentials)
    if token_data is None:
        raise credentials_exception
    return token_data.user_id
