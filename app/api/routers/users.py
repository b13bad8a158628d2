import logging
from typing import List, Optional

from fastapi import Depends, HTTPException, APIRouter, status, Response
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.db.session import get_db
from app.models import user as models
from app.core import security as utils
from app.core import oauth2
from app.schemas import user as schemas
from app.schemas.common import Envelope, CountEnvelope, MessageOut, envelope
from app.api.routers.auth import clear_auth_cookie

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/users", tags=["Users"])


def _get_user_or_404(db: Session, id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Envelope[schemas.UserCreatedOut])
def create_user(
    users: schemas.UserCreate,
    db: Session = Depends(get_db),
    current_user: Optional[dict] = Depends(oauth2.get_optional_user),
):
    if db.query(models.User).filter(models.User.email == users.email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")

    # Only admins may choose the role
    is_admin = current_user is not None and current_user["user"].is_admin
    role = users.role if is_admin else models.UserRole.USER

    new_user = models.User(
        **users.model_dump(exclude={"password", "role"}),
        password=utils.hash_password(users.password),
        role=role,
    )
    try:
        db.add(new_user)
        db.commit()
        db.refresh(new_user)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")
    logger.info(f"Created user {new_user.id} with role {role.value}")
    return envelope({"message": "User created successfully", "user": new_user})


@router.get("", response_model=CountEnvelope[List[schemas.UserOut]])
def get_users(db: Session = Depends(get_db), current_user: dict = Depends(oauth2.is_admin_middleware)):
    users = db.query(models.User).order_by(models.User.id).all()
    return envelope(users, count=len(users))


@router.post("/change-password", response_model=Envelope[MessageOut])
def change_password(
    passwords: schemas.ChangePassword,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.get_current_user),
):
    if not passwords.current_password or not passwords.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password and new password are required",
        )

    user = current_user["user"]
    if not utils.verify(passwords.current_password, user.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    user.password = utils.hash_password(passwords.new_password)
    db.commit()
    logger.info(f"User {user.id} changed password")
    return envelope({"message": "Password changed successfully"})


@router.get("/{id}", response_model=Envelope[schemas.UserWithOrders])
def get_single_user(id: int, db: Session = Depends(get_db), current_user: dict = Depends(oauth2.is_admin_middleware)):
    return envelope(_get_user_or_404(db, id))


@router.put("/{id}", response_model=Envelope[schemas.UserOut])
def update_user(
    id: int,
    user_update: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.get_current_user),
):
    me = current_user["user"]
    if not me.is_admin and me.id != id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to update this user")

    user = _get_user_or_404(db, id)
    data = user_update.model_dump(exclude_unset=True, exclude_none=True)

    if "role" in data and not me.is_admin:
        data.pop("role")
    if "password" in data:
        data["password"] = utils.hash_password(data["password"])
    if "email" in data and data["email"] != user.email:
        taken = db.query(models.User).filter(models.User.email == data["email"], models.User.id != id).first()
        if taken:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")

    for field, value in data.items():
        setattr(user, field, value)
    try:
        db.commit()
    except IntegrityError:
        # Email taken by a parallel request after the check above
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")
    db.refresh(user)
    return envelope(user)


@router.delete("/{id}", response_model=Envelope[MessageOut])
def delete_user(
    id: int,
    response: Response,
    db: Session = Depends(get_db),
    current_user: dict = Depends(oauth2.get_current_user),
):
    me = current_user["user"]
    if not me.is_admin and me.id != id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to delete this user")

    user = _get_user_or_404(db, id)
    db.delete(user)
    db.commit()

    if me.id == id:
        clear_auth_cookie(response)
    logger.info(f"User {id} deleted by user {me.id}")
    return envelope({"message": "User deleted successfully"})
