import enum
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from clipfeed.database import atomic
from clipfeed.engagement.counters import CounterReconciler
from clipfeed.errors import DuplicateEdge, EdgeNotFound, NotFound, SelfReferenceNotAllowed
from clipfeed.models import Comment, CommentLike, Follow, User, Video, VideoLike

logger = logging.getLogger(__name__)


class EdgeKind(enum.Enum):
    FOLLOW = "follow"
    LIKE_VIDEO = "like_video"
    LIKE_COMMENT = "like_comment"


@dataclass(frozen=True)
class _EdgeSpec:
    model: type
    source: str
    target: str
    target_model: type
    # (counted model, endpoint whose id is adjusted, counter field)
    counters: tuple
    duplicate_message: str
    missing_message: str
    target_missing_message: str


_EDGES = {
    EdgeKind.FOLLOW: _EdgeSpec(
        Follow, "follower_id", "following_id", User,
        ((User, "target", "followers"), (User, "source", "following")),
        "You are already following this user",
        "You are not following this user",
        "User not found",
    ),
    EdgeKind.LIKE_VIDEO: _EdgeSpec(
        VideoLike, "user_id", "video_id", Video,
        ((Video, "target", "likes"),),
        "You have already liked this video",
        "You have not liked this video",
        "Video not found",
    ),
    EdgeKind.LIKE_COMMENT: _EdgeSpec(
        CommentLike, "user_id", "comment_id", Comment,
        ((Comment, "target", "likes"),),
        "You have already liked this comment",
        "You have not liked this comment",
        "Comment not found",
    ),
}


class RelationshipGuard:
    """At-most-once Follow and Like edges, each paired with its counter update.

    The table's unique constraint decides whether an edge is new. If the insert
    is rejected the transaction is rolled back before any counter is touched;
    if it succeeds the counters move in the same commit.
    """

    def __init__(self, db, counters=None):
        self.db = db
        self.counters = counters or CounterReconciler(db)

    def _filter(self, spec, source_id, target_id):
        model = spec.model
        return self.db.query(model).filter(
            getattr(model, spec.source) == source_id,
            getattr(model, spec.target) == target_id,
        )

    def _adjust(self, spec, source_id, target_id, delta):
        endpoints = {"source": source_id, "target": target_id}
        for model, endpoint, field in spec.counters:
            self.counters.adjust(model, endpoints[endpoint], field, delta)

    def _raise_for_missing_endpoint(self, spec, source_id, target_id):
        if self._filter(spec, source_id, target_id).first() is not None:
            return
        target = spec.target_model
        if not self.db.query(target).filter(target.id == target_id).first():
            raise NotFound(spec.target_missing_message)
        if not self.db.query(User).filter(User.id == source_id).first():
            raise NotFound("User not found")

    def create_edge(self, kind, source_id, target_id):
        spec = _EDGES[kind]
        if kind is EdgeKind.FOLLOW and source_id == target_id:
            raise SelfReferenceNotAllowed("You cannot follow yourself")

        try:
            with atomic(self.db):
                self.db.add(spec.model(**{spec.source: source_id, spec.target: target_id}))
                try:
                    self.db.flush()
                except IntegrityError as exc:
                    raise DuplicateEdge(spec.duplicate_message) from exc
                self._adjust(spec, source_id, target_id, +1)
        except DuplicateEdge:
            # Rolled back by now; a rejected insert may also be a dangling endpoint
            self._raise_for_missing_endpoint(spec, source_id, target_id)
            raise

        logger.info("Created %s edge %s -> %s", kind.value, source_id, target_id)
        return True

    def remove_edge(self, kind, source_id, target_id):
        spec = _EDGES[kind]
        if kind is EdgeKind.FOLLOW and source_id == target_id:
            raise SelfReferenceNotAllowed("You cannot unfollow yourself")

        with atomic(self.db):
            removed = self._filter(spec, source_id, target_id).delete(synchronize_session=False)
            if not removed:
                raise EdgeNotFound(spec.missing_message)
            self._adjust(spec, source_id, target_id, -1)

        logger.info("Removed %s edge %s -> %s", kind.value, source_id, target_id)
        return True

    def exists(self, kind, source_id, target_id):
        if source_id is None:
            return False
        spec = _EDGES[kind]
        return self.db.query(self._filter(spec, source_id, target_id).exists()).scalar()

    def liked_targets(self, kind, user_id, target_ids):
        """Ids among ``target_ids`` that ``user_id`` has an edge to, in one query."""
        target_ids = list(target_ids)
        if user_id is None or not target_ids:
            return set()
        spec = _EDGES[kind]
        model = spec.model
        target = getattr(model, spec.target)
        rows = self.db.query(target).filter(
            getattr(model, spec.source) == user_id,
            target.in_(target_ids),
        )
        return {row[0] for row in rows}
