import logging
from datetime import datetime, timedelta
from typing import Optional, Union
from jose import JWTError, jwt
import bcrypt
from marketplace.core.config import settings

logger = logging.getLogger(__name__)

def _as_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode('utf-8') if isinstance(value, str) else value

def verify_password(plain_password: str, hashed_password: Union[str, bytes]) -> bool:
    """Check an admin password against its bcrypt hash"""
    try:
        return bcrypt.checkpw(_as_bytes(plain_password), _as_bytes(hashed_password))
    except ValueError as e:
        # malformed hash stored for the admin
        logger.warning(f"Could not verify password hash ({type(hashed_password).__name__}): {e}")
        return False

def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_as_bytes(password), bcrypt.gensalt()).decode('utf-8')

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a JWT. ``sub`` is the account id and ``kind`` one of customer/provider/admin."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.utcnow() + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> Optional[dict]:
    """Claims of a valid token, None for anything expired, tampered or malformed."""
    if not token:
        return None
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None
