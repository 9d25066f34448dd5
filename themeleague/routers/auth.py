import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from ..database import get_db
from ..dependencies import get_current_user
from ..exceptions import ValidationFailed
from ..models.models import User
from ..schemas.user import Token, UserCreate, UserLogin, UserResponse
from ..utils.security import (
    create_access_token,
    get_password_hash,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=201)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    """Create an account; usernames and emails are unique"""
    taken = (
        db.query(User)
        .filter(or_(User.email == user_in.email, User.username == user_in.username))
        .first()
    )
    if taken:
        field = "Email" if taken.email == user_in.email else "Username"
        raise ValidationFailed(f"{field} is already registered")

    user = User(
        username=user_in.username,
        email=user_in.email,
        password_hash=get_password_hash(user_in.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"User {user.user_id} registered as {user.username}")
    return user


@router.post("/login", response_model=Token)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token"""
    user = db.query(User).filter(User.email == credentials.email).first()
    if user is None or not verify_password(
        credentials.password, user.password_hash
    ):
        logger.warning(f"Rejected login for {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Token(
        access_token=create_access_token({"sub": str(user.user_id)}),
        token_type="bearer",
    )


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
