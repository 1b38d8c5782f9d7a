from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.]+$")
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    password: str = Field(min_length=6, max_length=72)

class UserSummary(CamelModel):
    id: str
    username: str
    avatar_ref: str

class UserOut(UserSummary):
    bio: str
    followers: int
    following: int
    created_at: datetime

class UserPrivate(UserOut):
    email: EmailStr

class TokenOut(CamelModel):
    message: Optional[str] = None
    access_token: str
    token_type: str = "bearer"
    user: UserPrivate

class VideoOut(CamelModel):
    id: str
    owner_id: str
    owner: UserSummary
    media_ref: str
    caption: str
    tags: List[str]
    likes: int
    comments: int
    views: int
    shares: int
    created_at: datetime
    is_liked: bool = False

class CommentCreate(CamelModel):
    content: str = Field(min_length=1, max_length=300)
    parent_id: Optional[str] = None

class CommentOut(CamelModel):
    id: str
    video_id: str
    author_id: str
    author: UserSummary
    content: str
    likes: int
    parent_id: Optional[str] = None
    created_at: datetime
    is_liked: bool = False

class MessageOut(CamelModel):
    message: str

class FollowStatus(CamelModel):
    is_following: bool

class LikeStatus(CamelModel):
    liked: bool
