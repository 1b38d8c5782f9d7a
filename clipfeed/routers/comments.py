from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clipfeed.auth import get_current_user
from clipfeed.database import get_db
from clipfeed.engagement import CascadeDeletionEngine, EdgeKind, RelationshipGuard
from clipfeed.errors import NotFound
from clipfeed.media import MediaStorage, get_media
from clipfeed.models import Comment, User
from clipfeed.schemas import MessageOut

router = APIRouter(prefix="/api/comments", tags=["Comments & Likes"])


def _get_comment(db, comment_id):
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise NotFound("Comment not found")
    return comment


@router.post("/{comment_id}/like", response_model=MessageOut)
def like_comment(comment_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _get_comment(db, comment_id)
    RelationshipGuard(db).create_edge(EdgeKind.LIKE_COMMENT, current_user.id, comment_id)
    return {"message": "Comment liked successfully"}


@router.delete("/{comment_id}/unlike", response_model=MessageOut)
def unlike_comment(comment_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    _get_comment(db, comment_id)
    RelationshipGuard(db).remove_edge(EdgeKind.LIKE_COMMENT, current_user.id, comment_id)
    return {"message": "Comment unliked successfully"}


@router.delete("/{comment_id}", response_model=MessageOut)
def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    media: MediaStorage = Depends(get_media),
):
    CascadeDeletionEngine(db, media).delete_comment(comment_id, current_user.id)
    return {"message": "Comment deleted successfully"}
