import logging
from dataclasses import dataclass

from sqlalchemy import or_, select

from clipfeed.database import atomic
from clipfeed.engagement.counters import CounterReconciler
from clipfeed.errors import NotFound, NotOwner
from clipfeed.models import Comment, CommentLike, Video, VideoLike

logger = logging.getLogger(__name__)


@dataclass
class CascadeResult:
    videos: int = 0
    comments: int = 0
    video_likes: int = 0
    comment_likes: int = 0


class CascadeDeletionEngine:
    """Deletes a video or comment together with everything that only exists for it.

    Each deletion commits as a single unit; a failure at any step rolls the
    whole cascade back.
    """

    def __init__(self, db, media, counters=None):
        self.db = db
        self.media = media
        self.counters = counters or CounterReconciler(db)

    def delete_video(self, video_id, requester_id):
        video = self.db.query(Video).filter(Video.id == video_id).first()
        if not video:
            raise NotFound("Video not found")
        if video.owner_id != requester_id:
            raise NotOwner("You can only delete your own videos")

        media_ref = video.media_ref
        result = CascadeResult(videos=1)
        comment_ids = select(Comment.id).where(Comment.video_id == video_id)

        with atomic(self.db):
            result.comment_likes = (
                self.db.query(CommentLike)
                .filter(CommentLike.comment_id.in_(comment_ids))
                .delete(synchronize_session=False)
            )
            result.comments = (
                self.db.query(Comment)
                .filter(Comment.video_id == video_id)
                .delete(synchronize_session=False)
            )
            result.video_likes = (
                self.db.query(VideoLike)
                .filter(VideoLike.video_id == video_id)
                .delete(synchronize_session=False)
            )
            self.db.delete(video)

        logger.info("Deleted video %s with cascade %s", video_id, result)

        # The record is gone at this point; a leftover file is only wasted disk.
        try:
            self.media.delete(media_ref)
        except (OSError, ValueError):
            logger.warning("Could not remove media %s for deleted video %s", media_ref, video_id, exc_info=True)
        return result

    def delete_comment(self, comment_id, requester_id):
        comment = self.db.query(Comment).filter(Comment.id == comment_id).first()
        if not comment:
            raise NotFound("Comment not found")
        if comment.author_id != requester_id:
            raise NotOwner("You can only delete your own comments")

        video_id = comment.video_id
        result = CascadeResult()
        reply_ids = select(Comment.id).where(Comment.parent_id == comment_id)

        with atomic(self.db):
            result.comment_likes = (
                self.db.query(CommentLike)
                .filter(or_(CommentLike.comment_id == comment_id, CommentLike.comment_id.in_(reply_ids)))
                .delete(synchronize_session=False)
            )
            # Direct replies only; replies to those replies stay with the video.
            replies = (
                self.db.query(Comment)
                .filter(Comment.parent_id == comment_id)
                .delete(synchronize_session=False)
            )
            self.db.delete(comment)
            result.comments = 1 + replies
            self.counters.decrement_by(Video, video_id, "comments", result.comments)

        logger.info("Deleted comment %s on video %s with cascade %s", comment_id, video_id, result)
        return result
