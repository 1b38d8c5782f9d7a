from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clipfeed.auth import get_current_user
from clipfeed.database import atomic, get_db
from clipfeed.errors import ValidationError
from clipfeed.models import User
from clipfeed.schemas import TokenOut, UserCreate, UserPrivate
from clipfeed.utils import create_access_token, hash_password, verify_password

router = APIRouter(prefix="/api/auth", tags=["Auth"])

DUPLICATE_USER = "User with this email or username already exists"


def _token_for(user):
    return create_access_token(data={"sub": user.id})


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    # Check if the username or email is already registered
    existing_user = db.query(User).filter(or_(User.email == user.email, User.username == user.username)).first()
    if existing_user:
        raise ValidationError(DUPLICATE_USER)

    new_user = User(username=user.username, email=user.email, hashed_password=hash_password(user.password))
    with atomic(db):
        db.add(new_user)
        try:
            db.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration
            raise ValidationError(DUPLICATE_USER) from exc
    db.refresh(new_user)

    return {
        "message": "User registered successfully",
        "access_token": _token_for(new_user),
        "user": new_user,
    }


@router.post("/login", response_model=TokenOut)
def login_user(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    # The username field accepts either the username or the email
    user = db.query(User).filter(or_(User.username == form_data.username, User.email == form_data.username)).first()

    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    return {"access_token": _token_for(user), "user": user}


@router.get("/me", response_model=UserPrivate)
def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user
