from passlib.context import CryptContext
import hashlib
import logging
import warnings

logger = logging.getLogger(__name__)

# Suppress bcrypt version warnings
warnings.filterwarnings("ignore", category=UserWarning, module="passlib")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _truncate_password(password: str) -> str:
    """Keep passwords within bcrypt's 72 byte limit"""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > 72:
        # Hash long passwords first so the input length is fixed
        password = hashlib.sha256(password_bytes).hexdigest()
    return password


def hash_password(password: str) -> str:
    return pwd_context.hash(_truncate_password(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(_truncate_password(plain_password), hashed_password)
    except ValueError as e:
        # Malformed or unknown hash format in the stored record
        logger.warning(f"Password verification error: {e}")
        return False
