import logging
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt
from passlib.context import CryptContext
from cvforge.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)

# passlib verifies hashes written by older deployments; new hashes use bcrypt directly
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    """Encode and clamp to bcrypt's 72-byte limit without splitting a UTF-8 sequence."""
    password_bytes = password.encode("utf-8")
    if len(password_bytes) <= BCRYPT_MAX_BYTES:
        return password_bytes

    logger.warning("Password exceeds 72 bytes, truncating before hashing")
    truncated = password_bytes[:BCRYPT_MAX_BYTES]
    return truncated.decode("utf-8", errors="ignore").encode("utf-8")


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password string (bcrypt format, compatible with passlib)
    """
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """Verify a password against its hash. Returns False for accounts without one."""
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        # Not a bcrypt-native hash; let passlib identify it
        return pwd_context.verify(password, hashed)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None, **claims) -> str:
    """Issue a JWT whose subject is the user id."""
    to_encode = {"sub": user_id, **claims}
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
