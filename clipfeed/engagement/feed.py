"""Read-side assembly of video and comment listings.

Listings are paginated with a 1-indexed page number and enriched with a
per-viewer ``is_liked`` flag. The flag for a whole page comes from a single
batched edge lookup, never one lookup per item.
"""
from sqlalchemy import or_, select
from sqlalchemy.orm import joinedload

from clipfeed.engagement.relationships import EdgeKind, RelationshipGuard
from clipfeed.models import Comment, Follow, Video, VideoTag
from clipfeed.schemas import CommentOut, VideoOut

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def paginate(query, page=DEFAULT_PAGE, limit=DEFAULT_LIMIT):
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_LIMIT)
    return query.offset((page - 1) * limit).limit(limit)


class FeedAssembler:
    def __init__(self, db, viewer_id=None, guard=None):
        self.db = db
        self.viewer_id = viewer_id
        self.guard = guard or RelationshipGuard(db)

    def _videos(self):
        return self.db.query(Video).options(joinedload(Video.owner))

    def _enrich(self, rows, kind, schema):
        liked = self.guard.liked_targets(kind, self.viewer_id, [row.id for row in rows])
        return [
            schema.model_validate(row).model_copy(update={"is_liked": row.id in liked})
            for row in rows
        ]

    def enrich_videos(self, videos):
        return self._enrich(videos, EdgeKind.LIKE_VIDEO, VideoOut)

    def enrich_comments(self, comments):
        return self._enrich(comments, EdgeKind.LIKE_COMMENT, CommentOut)

    def video(self, video):
        return self.enrich_videos([video])[0]

    def recent(self, page=DEFAULT_PAGE, limit=DEFAULT_LIMIT):
        query = self._videos().order_by(Video.created_at.desc())
        return self.enrich_videos(paginate(query, page, limit).all())

    def by_owner(self, owner_id, page=DEFAULT_PAGE, limit=DEFAULT_LIMIT):
        query = self._videos().filter(Video.owner_id == owner_id).order_by(Video.created_at.desc())
        return self.enrich_videos(paginate(query, page, limit).all())

    def following(self, page=DEFAULT_PAGE, limit=DEFAULT_LIMIT):
        if self.viewer_id is None:
            return []
        followed = select(Follow.following_id).where(Follow.follower_id == self.viewer_id)
        query = (
            self._videos()
            .filter(Video.owner_id.in_(followed))
            .order_by(Video.created_at.desc())
        )
        return self.enrich_videos(paginate(query, page, limit).all())

    def search(self, term, page=DEFAULT_PAGE, limit=DEFAULT_LIMIT):
        # Substring match; % and _ in the term are literal
        query = (
            self._videos()
            .filter(or_(
                Video.caption.icontains(term, autoescape=True),
                Video.tag_links.any(VideoTag.name.icontains(term, autoescape=True)),
            ))
            .order_by(Video.views.desc(), Video.created_at.desc())
        )
        return self.enrich_videos(paginate(query, page, limit).all())

    def comments(self, video_id, parent_id=None, page=DEFAULT_PAGE, limit=DEFAULT_LIMIT):
        query = (
            self.db.query(Comment)
            .options(joinedload(Comment.author))
            .filter(Comment.video_id == video_id)
        )
        # Top-level and reply listings never mix
        if parent_id is None:
            query = query.filter(Comment.parent_id.is_(None))
        else:
            query = query.filter(Comment.parent_id == parent_id)
        query = query.order_by(Comment.created_at.desc())
        return self.enrich_comments(paginate(query, page, limit).all())
