import logging
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from .config import Settings, get_settings
from .exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as 401 by our own handler.
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    userId: str
    email: Optional[str] = None
    token: str


def decode_access_token(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def create_access_token(user_id: str, email: Optional[str] = None, settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    claims: Dict[str, Any] = {"userId": user_id}
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    if not credentials or not credentials.credentials:
        raise UnauthorizedError()
    payload = decode_access_token(credentials.credentials, settings)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")
    user_id = payload.get("userId")
    if not isinstance(user_id, str) or not user_id:
        logger.warning("Rejected token without a userId claim")
        raise UnauthorizedError("Invalid token payload")
    return CurrentUser(userId=user_id, email=payload.get("email"), token=credentials.credentials)
