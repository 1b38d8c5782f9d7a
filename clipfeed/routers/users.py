import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from clipfeed.auth import get_current_user
from clipfeed.config import settings
from clipfeed.database import atomic, get_db
from clipfeed.engagement import EdgeKind, RelationshipGuard
from clipfeed.errors import NotFound, ValidationError
from clipfeed.media import IMAGE_EXTENSIONS, MediaStorage, get_media, read_upload
from clipfeed.models import Follow, User
from clipfeed.schemas import FollowStatus, MessageOut, UserOut, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


def _get_user(db, user_id):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


@router.put("/profile", response_model=UserOut)
def update_profile(
    bio: Optional[str] = Form(None, max_length=200),
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media),
):
    old_avatar = None
    if avatar is not None and avatar.filename:
        data, suffix = read_upload(
            avatar, IMAGE_EXTENSIONS, "image/", settings.MAX_AVATAR_SIZE, "Only image files are allowed!"
        )
        old_avatar = current_user.avatar_ref
        current_user.avatar_ref = media.store(data, "avatars", suffix)
    if bio is not None:
        current_user.bio = bio

    with atomic(db):
        db.add(current_user)
    db.refresh(current_user)

    # Placeholder avatars are not ours to delete
    if old_avatar and media.owns(old_avatar):
        try:
            media.delete(old_avatar)
        except (OSError, ValueError):
            logger.warning("Could not remove old avatar %s", old_avatar, exc_info=True)
    return current_user


@router.get("/search/query", response_model=List[UserOut])
def search_users(query: Optional[str] = None, db: Session = Depends(get_db)):
    if not query:
        raise ValidationError("Search query is required")
    return (
        db.query(User)
        .filter(or_(
            User.username.icontains(query, autoescape=True),
            User.bio.icontains(query, autoescape=True),
        ))
        .order_by(User.followers.desc())
        .limit(20)
        .all()
    )


@router.get("/suggested/users", response_model=List[UserOut])
def get_suggested_users(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    followed = select(Follow.following_id).where(Follow.follower_id == current_user.id)
    return (
        db.query(User)
        .filter(User.id != current_user.id, User.id.not_in(followed))
        .order_by(User.followers.desc(), User.created_at.desc())
        .limit(10)
        .all()
    )


@router.get("/id/{user_id}", response_model=UserOut)
def get_user_by_id(user_id: str, db: Session = Depends(get_db)):
    return _get_user(db, user_id)


@router.post("/follow/{user_id}", response_model=MessageOut)
def follow_user(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    guard = RelationshipGuard(db)
    if user_id != current_user.id:
        _get_user(db, user_id)
    guard.create_edge(EdgeKind.FOLLOW, current_user.id, user_id)
    return {"message": "Successfully followed user"}


@router.delete("/unfollow/{user_id}", response_model=MessageOut)
def unfollow_user(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    guard = RelationshipGuard(db)
    if user_id != current_user.id:
        _get_user(db, user_id)
    guard.remove_edge(EdgeKind.FOLLOW, current_user.id, user_id)
    return {"message": "Successfully unfollowed user"}


@router.get("/check-follow/{user_id}", response_model=FollowStatus)
def check_follow(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"is_following": RelationshipGuard(db).exists(EdgeKind.FOLLOW, current_user.id, user_id)}


@router.get("/{user_id}/followers", response_model=List[UserSummary])
def get_followers(user_id: str, db: Session = Depends(get_db)):
    _get_user(db, user_id)
    follows = (
        db.query(Follow)
        .filter(Follow.following_id == user_id)
        .order_by(Follow.created_at.desc())
        .all()
    )
    return [follow.follower for follow in follows]


@router.get("/{user_id}/following", response_model=List[UserSummary])
def get_following(user_id: str, db: Session = Depends(get_db)):
    _get_user(db, user_id)
    follows = (
        db.query(Follow)
        .filter(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
        .all()
    )
    return [follow.followed for follow in follows]


@router.get("/{username}", response_model=UserOut)
def get_user_by_username(username: str, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == username).first()
    if not user:
        raise NotFound("User not found")
    return user
