from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from clipfeed.auth import get_current_user, get_optional_user
from clipfeed.config import settings
from clipfeed.database import atomic, get_db
from clipfeed.engagement import CascadeDeletionEngine, CounterReconciler, EdgeKind, FeedAssembler, RelationshipGuard
from clipfeed.engagement.feed import DEFAULT_LIMIT, MAX_LIMIT
from clipfeed.errors import NotFound, ValidationError
from clipfeed.media import VIDEO_EXTENSIONS, MediaStorage, get_media, read_upload
from clipfeed.models import Comment, User, Video, VideoTag
from clipfeed.schemas import CommentCreate, CommentOut, LikeStatus, MessageOut, VideoOut

router = APIRouter(prefix="/api/videos", tags=["Videos"])


def _viewer_id(user):
    return user.id if user else None


def _get_video(db, video_id):
    video = db.query(Video).filter(Video.id == video_id).first()
    if not video:
        raise NotFound("Video not found")
    return video


def parse_tags(raw):
    tags = []
    for tag in (raw or "").split(","):
        tag = tag.strip()[:50]
        if tag and tag not in tags:
            tags.append(tag)
    return tags


@router.post("", response_model=VideoOut, status_code=status.HTTP_201_CREATED)
def upload_video(
    video: UploadFile = File(...),
    caption: str = Form(..., min_length=1, max_length=150),
    tags: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media),
):
    if not caption.strip():
        raise ValidationError("Caption is required")
    data, suffix = read_upload(
        video, VIDEO_EXTENSIONS, "video/", settings.MAX_VIDEO_SIZE, "Only video files are allowed!"
    )
    media_ref = media.store(data, "videos", suffix)

    new_video = Video(owner_id=current_user.id, media_ref=media_ref, caption=caption.strip())
    new_video.tag_links = [VideoTag(name=tag) for tag in parse_tags(tags)]
    try:
        with atomic(db):
            db.add(new_video)
    except Exception:
        media.delete(media_ref)
        raise
    db.refresh(new_video)

    return FeedAssembler(db, current_user.id).video(new_video)


@router.get("", response_model=List[VideoOut])
def get_all_videos(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return FeedAssembler(db, _viewer_id(viewer)).recent(page, limit)


@router.get("/search/query", response_model=List[VideoOut])
def search_videos(
    query: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    if not query:
        raise ValidationError("Search query is required")
    return FeedAssembler(db, _viewer_id(viewer)).search(query, page, limit)


@router.get("/feed/following", response_model=List[VideoOut])
def get_following_videos(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return FeedAssembler(db, current_user.id).following(page, limit)


@router.get("/user/{user_id}", response_model=List[VideoOut])
def get_videos_by_user(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return FeedAssembler(db, _viewer_id(viewer)).by_owner(user_id, page, limit)


@router.get("/{video_id}", response_model=VideoOut)
def get_video(video_id: str, viewer: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)):
    video = _get_video(db, video_id)
    with atomic(db):
        db.query(Video).filter(Video.id == video_id).update(
            {Video.views: Video.views + 1}, synchronize_session=False
        )
    # Expired by the commit, so this reloads the new view count
    return FeedAssembler(db, _viewer_id(viewer)).video(video)


@router.post("/{video_id}/like", response_model=MessageOut)
def like_video(video_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _get_video(db, video_id)
    RelationshipGuard(db).create_edge(EdgeKind.LIKE_VIDEO, current_user.id, video_id)
    return {"message": "Video liked successfully"}


@router.delete("/{video_id}/unlike", response_model=MessageOut)
def unlike_video(video_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _get_video(db, video_id)
    RelationshipGuard(db).remove_edge(EdgeKind.LIKE_VIDEO, current_user.id, video_id)
    return {"message": "Video unliked successfully"}


@router.get("/{video_id}/check-like", response_model=LikeStatus)
def check_like(video_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"liked": RelationshipGuard(db).exists(EdgeKind.LIKE_VIDEO, current_user.id, video_id)}


@router.delete("/{video_id}", response_model=MessageOut)
def delete_video(
    video_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media),
):
    CascadeDeletionEngine(db, media).delete_video(video_id, current_user.id)
    return {"message": "Video deleted successfully"}


@router.post("/{video_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def add_comment(
    video_id: str,
    comment: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _get_video(db, video_id)
    content = comment.content.strip()
    if not content:
        raise ValidationError("Comment content is required")

    if comment.parent_id:
        parent = db.query(Comment).filter(Comment.id == comment.parent_id).first()
        if not parent:
            raise NotFound("Parent comment not found")
        if parent.video_id != video_id:
            raise ValidationError("Parent comment belongs to a different video")

    new_comment = Comment(
        video_id=video_id,
        author_id=current_user.id,
        content=content,
        parent_id=comment.parent_id or None,
    )
    with atomic(db):
        db.add(new_comment)
        db.flush()
        CounterReconciler(db).adjust(Video, video_id, "comments", +1)
    db.refresh(new_comment)

    return FeedAssembler(db, current_user.id).enrich_comments([new_comment])[0]


@router.get("/{video_id}/comments", response_model=List[CommentOut])
def get_video_comments(
    video_id: str,
    parent_id: Optional[str] = Query(None, alias="parentId"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return FeedAssembler(db, _viewer_id(viewer)).comments(video_id, parent_id, page, limit)
