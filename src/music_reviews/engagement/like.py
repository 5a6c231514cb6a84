"""Like aggregate: the engagement ledger for reviews, albums and tracks.

A like has no payload: its existence is the fact "user liked target". The
aggregate's identifier is the composite key of user, target type and
target id, so storage can never hold two likes for the same triple.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String

from music_reviews.domain import music_reviews


class LikeTargetType(Enum):
    REVIEW = "Review"
    ALBUM = "Album"
    TRACK = "Track"


def like_key(user_id, target_type, target_id):
    return f"{user_id}|{target_type}|{target_id}"


@music_reviews.aggregate
class Like:
    like_id = String(identifier=True, max_length=512)
    user_id = Identifier(required=True)
    target_type = String(required=True, choices=LikeTargetType)
    target_id = Identifier(required=True)
    created_at = DateTime()

    @classmethod
    def record(cls, user_id, target_type, target_id):
        return cls(
            like_id=like_key(user_id, target_type, target_id),
            user_id=user_id,
            target_type=target_type,
            target_id=target_id,
            created_at=datetime.now(UTC),
        )


@music_reviews.repository(part_of=Like)
class LikeRepository:
    def find(self, user_id, target_type, target_id) -> Like | None:
        """The like for this user and target, if there is one."""
        return self._dao.query.filter(like_id=like_key(user_id, target_type, target_id)).all().first

    def count_for(self, target_type, target_id) -> int:
        return self._dao.query.filter(target_type=target_type, target_id=str(target_id)).all().total

    def for_target(self, target_type, target_id, page_size=100) -> list[Like]:
        """Every like of a target."""
        query = self._dao.query.filter(target_type=target_type, target_id=str(target_id)).order_by("created_at")
        likes = []
        while True:
            page = query.offset(len(likes)).limit(page_size).all().items
            likes.extend(page)
            if len(page) < page_size:
                return likes
