from jose import JWTError, jwt
from datetime import datetime, timedelta
from app.config import SECRET_KEY, ACCESS_TOKEN_EXPIRE_HOURS
import logging

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    """Create a signed access token carrying user_id, email and role"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_access_token(token: str) -> dict | None:
    """
    Verify an access token.

    Expiration is checked while decoding; an expired token raises
    ExpiredSignatureError (a JWTError).

    Returns:
        dict: Token payload if valid
        None: If token is expired or invalid
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        logger.debug("Access token verified successfully")
        return payload
    except JWTError as e:
        logger.warning(f"Access token verification failed: {str(e)}")
        return None
