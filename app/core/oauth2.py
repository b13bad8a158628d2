import jwt
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, status, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas import user as schemas
from app.models import user as models
from app.core.config import settings

logger = logging.getLogger("uvicorn.error")

# Bearer header is optional: the httpOnly cookie is the primary carrier.
bearer_scheme = HTTPBearer(auto_error=False)

SECRET_KEY = settings.secret_key
ALGORITHM = settings.algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes


def create_access_token(data: dict):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc)})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def token_for(user: models.User) -> str:
    return create_access_token({"id": user.id, "email": user.email, "role": user.role.value})


def verify_access_token(token: str, credentials_exception):
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = payload.get("id")
        role = payload.get("role")
        if user_id is None or role is None:
            raise credentials_exception
        return schemas.TokenData(id=int(user_id), email=payload.get("email", ""), role=role)
    except (jwt.PyJWTError, ValueError):
        raise credentials_exception


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Cookie first, then the Authorization header."""
    token = request.cookies.get(settings.cookie_name)
    if token:
        return token
    if credentials is not None and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return None


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    token = extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    token_data = verify_access_token(token, credentials_exception)

    user = db.query(models.User).filter(models.User.id == token_data.id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return {"user": user, "token_data": token_data}


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    """Like `get_current_user` but returns None instead of failing on public routes."""
    token = extract_token(request, credentials)
    if not token:
        return None
    try:
        return await get_current_user(request, credentials, db)
    except HTTPException:
        logger.info("Ignoring invalid token on public route")
        return None


async def is_admin_middleware(current_user: dict = Depends(get_current_user)):
    """Lets the request through only when the authenticated user is an ADMIN."""
    user = current_user["user"]
    if user.role != models.UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as an admin",
        )

    return current_user
