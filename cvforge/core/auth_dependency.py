from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlalchemy.orm import Session
from cvforge.core.config import SECRET_KEY, ALGORITHM
from cvforge.core.errors import Unauthorized, Forbidden
from cvforge.db.session import get_db
from cvforge.db.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_current_user_id(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    """Resolve the current user id from the bearer token."""
    if not token:
        raise Unauthorized()
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid token")

    user_id = payload.get("sub")
    if user_id is None:
        raise Unauthorized("Invalid token")
    return user_id


def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> User:
    """Get current User object from JWT token. A token for a deleted user is unauthorized."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise Unauthorized("User no longer exists")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise Forbidden("Admin access required")
    return user
