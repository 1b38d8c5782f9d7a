"""Derived counters kept in lockstep with the edges they summarize.

Every edge change pairs with exactly one ``adjust`` call inside the same unit
of work. All arithmetic happens in the database (``SET f = f + 1``) so
concurrent requests never lose updates, and decrements carry a ``f > 0`` guard
so no counter is driven below zero.
"""
import logging

from sqlalchemy import case, func

from clipfeed.models import Comment, CommentLike, Follow, User, Video, VideoLike

logger = logging.getLogger(__name__)

COUNTER_FIELDS = {
    User: ("followers", "following"),
    Video: ("likes", "comments"),
    Comment: ("likes",),
}


class CounterReconciler:
    """Adjusts and repairs counters. Never commits; callers own the transaction."""

    def __init__(self, db):
        self.db = db

    def _column(self, model, field):
        if field not in COUNTER_FIELDS.get(model, ()):
            raise ValueError(f"{field!r} is not a counter of {model.__name__}")
        return getattr(model, field)

    def adjust(self, model, entity_id, field, delta):
        if delta not in (1, -1):
            raise ValueError("Counter adjustments must be +1 or -1")
        column = self._column(model, field)

        query = self.db.query(model).filter(model.id == entity_id)
        if delta < 0:
            query = query.filter(column > 0)
        updated = query.update({column: column + delta}, synchronize_session=False)
        if not updated:
            logger.debug("Counter %s.%s on %s left unchanged (delta %+d)", model.__name__, field, entity_id, delta)
        return bool(updated)

    def decrement_by(self, model, entity_id, field, amount):
        """Bulk decrement clamped at zero."""
        column = self._column(model, field)
        if amount <= 0:
            return False
        updated = (
            self.db.query(model)
            .filter(model.id == entity_id)
            .update({column: case((column > amount, column - amount), else_=0)}, synchronize_session=False)
        )
        return bool(updated)

    def _write(self, model, entity_id, values):
        self.db.query(model).filter(model.id == entity_id).update(values, synchronize_session=False)
        logger.info("Recounted %s %s: %s", model.__name__, entity_id, values)
        return values

    def recount_user(self, user_id):
        followers = self.db.query(func.count(Follow.id)).filter(Follow.following_id == user_id).scalar()
        following = self.db.query(func.count(Follow.id)).filter(Follow.follower_id == user_id).scalar()
        return self._write(User, user_id, {"followers": followers, "following": following})

    def recount_video(self, video_id):
        likes = self.db.query(func.count(VideoLike.id)).filter(VideoLike.video_id == video_id).scalar()
        comments = self.db.query(func.count(Comment.id)).filter(Comment.video_id == video_id).scalar()
        return self._write(Video, video_id, {"likes": likes, "comments": comments})

    def recount_comment(self, comment_id):
        likes = self.db.query(func.count(CommentLike.id)).filter(CommentLike.comment_id == comment_id).scalar()
        return self._write(Comment, comment_id, {"likes": likes})
