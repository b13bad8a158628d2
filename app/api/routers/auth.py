import logging

from fastapi import Depends, HTTPException, APIRouter, status, Response
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.db.session import get_db
from app.models import user as models
from app.core import security as utils
from app.core import oauth2
from app.core.config import settings
from app.schemas import user as schemas
from app.schemas.common import Envelope, MessageOut, envelope

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def set_auth_cookie(response: Response, token: str):
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


def clear_auth_cookie(response: Response):
    response.delete_cookie(
        key=settings.cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=Envelope[schemas.AuthOut])
def register_user(users: schemas.UserRegister, response: Response, db: Session = Depends(get_db)):
    if db.query(models.User).filter(models.User.email == users.email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")

    new_user = models.User(
        **users.model_dump(exclude={"password", "confirm_password"}),
        password=utils.hash_password(users.password),
        role=models.UserRole.USER,
    )
    try:
        db.add(new_user)
        db.commit()
        db.refresh(new_user)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")

    token = oauth2.token_for(new_user)
    set_auth_cookie(response, token)
    logger.info(f"Registered user {new_user.id} ({new_user.email})")
    return envelope({"user": new_user, "token": token})


@router.post("/login", response_model=Envelope[schemas.AuthOut])
def login_user(user_cred: schemas.UserLogin, response: Response, db: Session = Depends(get_db)):
    user = db.query(models.User).filter(models.User.email == user_cred.email).first()

    if not user or not utils.verify(user_cred.password, user.password):
        logger.warning(f"Failed login attempt for {user_cred.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = oauth2.token_for(user)
    set_auth_cookie(response, token)
    logger.info(f"User {user.id} logged in")
    return envelope({"user": user, "token": token})


@router.post("/logout", response_model=Envelope[MessageOut])
def logout_user(response: Response):
    clear_auth_cookie(response)
    return envelope({"message": "Logged out successfully"})


@router.get("/me", response_model=Envelope[schemas.UserOut])
def get_current_user_info(current_user: dict = Depends(oauth2.get_current_user)):
    return envelope(current_user["user"])
