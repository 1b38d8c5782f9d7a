import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from clipfeed.config import settings
from clipfeed.database import Base


def new_id():
    return uuid.uuid4().hex


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("followers >= 0", name="ck_users_followers_non_negative"),
        CheckConstraint("following >= 0", name="ck_users_following_non_negative"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    username = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    bio = Column(Text, nullable=False, default="")
    avatar_ref = Column(String(255), nullable=False, default=settings.DEFAULT_AVATAR)
    followers = Column(Integer, nullable=False, default=0)
    following = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (
        CheckConstraint("likes >= 0", name="ck_videos_likes_non_negative"),
        CheckConstraint("comments >= 0", name="ck_videos_comments_non_negative"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    owner_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    media_ref = Column(String(255), nullable=False)
    caption = Column(String(150), nullable=False)
    likes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    views = Column(Integer, nullable=False, default=0)
    shares = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), index=True, nullable=False, default=utcnow)

    owner = relationship("User")
    tag_links = relationship("VideoTag", cascade="all, delete-orphan", lazy="selectin")

    @property
    def tags(self):
        return sorted(link.name for link in self.tag_links)


class VideoTag(Base):
    __tablename__ = "video_tags"

    video_id = Column(String(32), ForeignKey("videos.id"), primary_key=True)
    name = Column(String(50), primary_key=True, index=True)


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint("likes >= 0", name="ck_comments_likes_non_negative"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    video_id = Column(String(32), ForeignKey("videos.id"), index=True, nullable=False)
    author_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    content = Column(String(300), nullable=False)
    likes = Column(Integer, nullable=False, default=0)
    # Not a foreign key: deleting a reply leaves its own replies in place.
    parent_id = Column(String(32), index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    author = relationship("User")


class Follow(Base):
    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        CheckConstraint("follower_id <> following_id", name="ck_follows_no_self_loop"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    follower_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    following_id = Column(String(32), ForeignKey("users.id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    follower = relationship("User", foreign_keys=[follower_id])
    followed = relationship("User", foreign_keys=[following_id])


class VideoLike(Base):
    __tablename__ = "video_likes"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_video_likes_pair"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    video_id = Column(String(32), ForeignKey("videos.id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class CommentLike(Base):
    __tablename__ = "comment_likes"
    __table_args__ = (
        UniqueConstraint("user_id", "comment_id", name="uq_comment_likes_pair"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False)
    comment_id = Column(String(32), ForeignKey("comments.id"), index=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
