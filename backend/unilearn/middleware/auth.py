"""Authentication: bcrypt password hashing, JWT bearer tokens, role guards."""

from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from unilearn.config import settings
from unilearn.database import get_db
from unilearn.models.user import User

security = HTTPBearer()

ROLE_LABELS = {
    "student": "Student",
    "instructor": "Instructor",
    "admin": "Admin",
}


def hash_password(password: str) -> str:
    """bcrypt hash, stored as text in users.password_hash."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def create_access_token(user: User) -> str:
    """Signed token carrying the user id (sub) and role; expires per settings."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": user.id, "role": user.role, "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    payload = decode_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_role(*roles: str):
    """Dependency factory: the current user, if their role is one of `roles`.

    The role is read from the database row, not the token, so a role change
    applies to tokens issued before it.
    """
    label = " or ".join(ROLE_LABELS.get(r, r) for r in roles if r != "admin") or "Admin"

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail=f"{label} role required")
        return current_user

    return dependency


# Admins pass every staff check.
require_instructor = require_role("instructor", "admin")
require_student = require_role("student")
