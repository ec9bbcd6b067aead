"""
Token utilities
JWT issue and verification for request context and signalling upgrades
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any

from jose import JWTError, jwt

from bizops.core.config import settings
from bizops.core.exceptions import UnauthorizedError
from bizops.core.logging import get_logger

logger = get_logger("security")

DEFAULT_TOKEN_EXPIRE_MINUTES = 60


def create_access_token(
    user_id: str,
    organization_id: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT carrying the user and organization claims"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=DEFAULT_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": user_id, "org_id": organization_id, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verify JWT token and return its claims

    Raises:
        UnauthorizedError: token is malformed, expired, or lacks sub/org_id
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"Rejected token: {e}")
        raise UnauthorizedError("Invalid token")

    if not payload.get("sub") or not payload.get("org_id"):
        raise UnauthorizedError("Token missing user or organization claim")
    return payload
